"""
service_calculator/core/startup_checks.py - Runtime self-test on boot

  1. Path resolution: DATA_DIR / OUTPUT_DIR exist and are writable
  2. DATA_DIR consistency across modules that persist state
  3. Quote counter file readable
  4. Settings valid (catalog mode, numbering mode, tax rate)
  5. Catalog reachable and services priceable
"""

import json
import logging
import os

log = logging.getLogger("svc_calc.startup")


def run_startup_checks(catalog=None, business_id=None) -> dict:
    """Run all startup validation checks.

    Returns:
        {"passed": int, "failed": int, "warnings": int, "details": [...]}
    """
    results = {"passed": 0, "failed": 0, "warnings": 0, "details": []}

    def _pass(msg):
        results["passed"] += 1
        results["details"].append(("PASS", msg))
        log.info("PASS %s", msg)

    def _fail(msg):
        results["failed"] += 1
        results["details"].append(("FAIL", msg))
        log.error("STARTUP CHECK FAILED: %s", msg)

    def _warn(msg):
        results["warnings"] += 1
        results["details"].append(("WARN", msg))
        log.warning("WARN %s", msg)

    # ── 1. Path Validation ────────────────────────────────────────────────────
    try:
        from service_calculator.core.paths import validate_paths, DATA_DIR
        path_result = validate_paths()
        if path_result["ok"]:
            _pass(f"All paths valid (DATA_DIR={DATA_DIR})")
        else:
            for err in path_result["errors"]:
                _fail(err)
        for warn in path_result.get("warnings", []):
            _warn(warn)
    except Exception as e:
        _fail(f"Path validation error: {e}")

    # ── 2. DATA_DIR Cross-Module Consistency ──────────────────────────────────
    try:
        from service_calculator.core.paths import DATA_DIR as canonical
        mismatches = []
        for mod_name in ("service_calculator.forms.quote_numbering",
                         "service_calculator.core.session"):
            mod = __import__(mod_name, fromlist=["DATA_DIR"])
            mod_val = getattr(mod, "DATA_DIR", None)
            if mod_val and os.path.abspath(mod_val) != os.path.abspath(canonical):
                mismatches.append(f"{mod_name}.DATA_DIR={mod_val}")
        if mismatches:
            _fail(f"DATA_DIR mismatch in: {', '.join(mismatches)}")
        else:
            _pass("DATA_DIR consistent across all modules")
    except Exception as e:
        _warn(f"DATA_DIR cross-check skipped: {e}")

    # ── 3. Quote counter ──────────────────────────────────────────────────────
    try:
        from service_calculator.forms.quote_numbering import _counter_path
        path = _counter_path()
        if os.path.exists(path):
            try:
                with open(path) as f:
                    data = json.load(f)
                _pass(f"quote_counter.json: readable (period={data.get('period')}, seq={data.get('seq')})")
            except json.JSONDecodeError:
                _fail("quote_counter.json: exists but corrupt JSON")
        else:
            _warn(f"quote_counter.json: not found at {path} (will auto-create)")
    except Exception as e:
        _warn(f"Quote counter check skipped: {e}")

    # ── 4. Settings ───────────────────────────────────────────────────────────
    try:
        from service_calculator.core.config import validate_all
        report = validate_all()
        if report["warnings"]:
            for w in report["warnings"]:
                _warn(w)
        else:
            _pass(f"Settings valid ({report['set']}/{report['total']} set)")
    except Exception as e:
        _warn(f"Settings check error: {e}")

    # ── 5. Catalog ────────────────────────────────────────────────────────────
    if catalog is not None:
        try:
            from service_calculator.core.pricing import compute_totals
            services = catalog.list_services(business_id, active_only=True)
            compute_totals([{"service": s, "quantity": 1, "add_ons": s.get("add_ons", [])}
                            for s in services])
            _pass(f"{catalog.name} catalog: {len(services)} active services, all priceable")
        except Exception as e:
            _fail(f"{getattr(catalog, 'name', '?')} catalog check failed: {e}")

    # ── Summary ──────────────────────────────────────────────────────────────
    total = results["passed"] + results["failed"] + results["warnings"]
    if results["failed"] > 0:
        log.error("STARTUP: %d/%d checks FAILED, quotes may not work correctly",
                  results["failed"], total)
    else:
        log.info("STARTUP: All %d checks passed (%d warnings)",
                 results["passed"], results["warnings"])

    return results
