"""
service_calculator/core/paths.py - Centralized Path Configuration

Single source of truth for directory paths. Every module imports DATA_DIR /
OUTPUT_DIR from here instead of computing its own.

  DATA_DIR    CALC_DATA_DIR env, else <project>/data. Holds the quote
              counter, the persisted session and logs.
  OUTPUT_DIR  CALC_OUTPUT_DIR env, else <project>/output. Relative PDF
              filenames are written here.
"""

import logging
import os

log = logging.getLogger("svc_calc.paths")

# ── Project Root ──────────────────────────────────────────────────────────────
_THIS_FILE = os.path.abspath(__file__)
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.dirname(_THIS_FILE)))


def _resolve_dir(env_name: str, default: str) -> str:
    env_dir = os.environ.get(env_name, "")
    if env_dir:
        return os.path.abspath(env_dir)
    return default


DATA_DIR = _resolve_dir("CALC_DATA_DIR", os.path.join(PROJECT_ROOT, "data"))
OUTPUT_DIR = _resolve_dir("CALC_OUTPUT_DIR", os.path.join(PROJECT_ROOT, "output"))

# ── Ensure core dirs exist ───────────────────────────────────────────────────
for _d in [DATA_DIR, OUTPUT_DIR]:
    os.makedirs(_d, exist_ok=True)


def validate_paths() -> dict:
    """Runtime validation, call at app startup to catch path issues early.

    Returns:
        {"ok": bool, "errors": [str], "warnings": [str], "resolved": {name: path}}
    """
    result = {"ok": True, "errors": [], "warnings": [], "resolved": {}}

    for name, path in (("PROJECT_ROOT", PROJECT_ROOT), ("DATA_DIR", DATA_DIR),
                       ("OUTPUT_DIR", OUTPUT_DIR)):
        result["resolved"][name] = path
        if not os.path.isdir(path):
            result["errors"].append(f"{name} not found: {path}")
            result["ok"] = False

    # Both dirs receive writes (counter/session, PDFs)
    for name, path in (("DATA_DIR", DATA_DIR), ("OUTPUT_DIR", OUTPUT_DIR)):
        test_file = os.path.join(path, ".write_test")
        try:
            with open(test_file, "w") as f:
                f.write("ok")
            os.remove(test_file)
        except OSError as e:
            result["errors"].append(f"{name} not writable: {e}")
            result["ok"] = False

    if not os.environ.get("CALC_DATA_DIR"):
        result["warnings"].append(
            f"CALC_DATA_DIR not set, using project data dir {DATA_DIR}")

    return result
