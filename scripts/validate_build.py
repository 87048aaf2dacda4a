#!/usr/bin/env python3
"""Pre-push build validation, run before every git push to catch issues early.

Usage: python scripts/validate_build.py

Checks:
  1. All Python files compile (no syntax errors)
  2. App creates successfully in demo mode
  3. Demo selection prices to the expected totals
  4. Demo quote renders, and renders identically twice
"""
import os
import sys
import py_compile
import glob
import random
import tempfile
from datetime import datetime

# Ensure repo root is in path
REPO_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, REPO_ROOT)
os.chdir(REPO_ROOT)

# Keep the real counter / session untouched
_SCRATCH = tempfile.mkdtemp(prefix="svc_calc_build_")
os.environ["CALC_DATA_DIR"] = os.path.join(_SCRATCH, "data")
os.environ["CALC_OUTPUT_DIR"] = os.path.join(_SCRATCH, "output")
os.environ["CALC_CATALOG_MODE"] = "demo"


def check_syntax():
    """Check all .py files for syntax errors."""
    errors = []
    files = glob.glob("service_calculator/**/*.py", recursive=True) + ["app.py", "logging_config.py"]
    for f in files:
        if not os.path.exists(f):
            continue
        try:
            py_compile.compile(f, doraise=True)
        except py_compile.PyCompileError as e:
            errors.append(f"{f}: {e}")
    return errors, len(files)


def check_app_creates():
    """Check the app factory wires up a demo session."""
    try:
        from app import create_app
        from service_calculator.core.session import demo_login
        app = create_app(demo_login(), configure_logging=False)
        if app["checks"]["failed"]:
            return f"{app['checks']['failed']} startup checks failed", None
        return None, app
    except Exception as e:
        return str(e), None


def _demo_selection(catalog):
    services = {s["id"]: s for s in catalog.list_services(active_only=True)}
    std = services["svc-1"]
    return [
        {"service": std, "add_ons": [std["add_ons"][0]]},
        {"service": services["svc-2"], "quantity": 1000, "add_ons": []},
        {"service": services["svc-4"], "quantity": 3, "add_ons": []},
    ]


def check_pricing(app):
    """120 + 25 + 0.15*1000 + 45*3 = 430, 8.5% tax = 36.55."""
    from service_calculator.core.pricing import compute_totals
    bd = compute_totals(_demo_selection(app["catalog"]), 8.5)
    if abs(bd["subtotal"] - 430) > 1e-9 or abs(bd["total"] - 466.55) > 1e-9:
        return f"Unexpected totals: {bd['subtotal']} / {bd['total']}"
    return None


def check_render(app):
    """Render the demo quote twice with the same inputs, bytes must match."""
    from service_calculator.forms.quote_generator import render_quote
    when = datetime(2026, 1, 15, 9, 0)
    client = {"name": "Build Check", "email": "build@example.com"}
    docs = [render_quote(app["business"], _demo_selection(app["catalog"]), client=client,
                         generated_at=when, numbering="random", rng=random.Random(1))
            for _ in range(2)]
    if not docs[0].pdf_bytes.startswith(b"%PDF"):
        return "Output is not a PDF"
    if docs[0].pdf_bytes != docs[1].pdf_bytes:
        return "Same inputs produced different PDF bytes"
    return None


if __name__ == "__main__":
    print("=" * 60)
    print("BUILD VALIDATION")
    print("=" * 60)

    all_ok = True

    # 1. Syntax
    print("\n1. Syntax check...")
    errs, count = check_syntax()
    if errs:
        print(f"   FAIL: {len(errs)} syntax errors")
        for e in errs:
            print(f"   - {e}")
        all_ok = False
    else:
        print(f"   OK: {count} files compiled")

    # 2. App creation
    print("\n2. App creation...")
    err, app = check_app_creates()
    if err:
        print(f"   FAIL: {err}")
        all_ok = False
    else:
        print(f"   OK: {app['catalog'].name} catalog, {app['checks']['passed']} checks passed")

    if app:
        # 3. Pricing
        print("\n3. Pricing...")
        err = check_pricing(app)
        if err:
            print(f"   FAIL: {err}")
            all_ok = False
        else:
            print("   OK: demo totals match")

        # 4. Rendering
        print("\n4. Quote PDF...")
        err = check_render(app)
        if err:
            print(f"   FAIL: {err}")
            all_ok = False
        else:
            print("   OK: renders and is reproducible")

    print("\n" + "=" * 60)
    if all_ok:
        print("BUILD VALIDATION: ALL PASSED")
        print("=" * 60)
        sys.exit(0)
    else:
        print("BUILD VALIDATION: FAILED, do not push")
        print("=" * 60)
        sys.exit(1)
