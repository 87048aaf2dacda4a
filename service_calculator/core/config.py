"""
config.py - Centralized settings and credentials for the Service Calculator

Single source of truth for environment-driven settings.

Env vars:
  SUPABASE_URL           Supabase project URL (https://<ref>.supabase.co)
  SUPABASE_ANON_KEY      Supabase anon/public API key
  CALC_CATALOG_MODE      auto | demo | supabase  (default: auto)
  CALC_QUOTE_NUMBERING   counter | random        (default: counter)
  CALC_DEFAULT_TAX_RATE  percent used when a business has no tax_rate (default: 0)

Security:
  - Keys are never logged in full (masked to first 8 chars)
  - Sensitive values only ever report set / not set
"""

import logging
import os

log = logging.getLogger("svc_calc.config")

# ─── Setting Definitions ────────────────────────────────────────────────────

_REGISTRY = {
    "supabase_url": {
        "env": "SUPABASE_URL",
        "required": False,
        "desc": "Supabase project URL",
        "used_by": ["catalog", "session"],
    },
    "supabase_anon_key": {
        "env": "SUPABASE_ANON_KEY",
        "fallback": "SUPABASE_KEY",
        "required": False,
        "desc": "Supabase anon API key",
        "used_by": ["catalog", "session"],
        "sensitive": True,
    },
    "catalog_mode": {
        "env": "CALC_CATALOG_MODE",
        "required": True,
        "desc": "Catalog provider: auto, demo or supabase",
        "used_by": ["catalog"],
        "default": "auto",
        "choices": ("auto", "demo", "supabase"),
    },
    "quote_numbering": {
        "env": "CALC_QUOTE_NUMBERING",
        "required": True,
        "desc": "Quote number suffix: counter or random",
        "used_by": ["quote_generator"],
        "default": "counter",
        "choices": ("counter", "random"),
    },
    "default_tax_rate": {
        "env": "CALC_DEFAULT_TAX_RATE",
        "required": False,
        "desc": "Tax percent when the business profile has none",
        "used_by": ["quotes"],
        "default": "0",
    },
}


# ─── Public API ──────────────────────────────────────────────────────────────

def get_key(name: str) -> str:
    """Get a setting by registry name. Returns empty string if not set."""
    entry = _REGISTRY.get(name)
    if not entry:
        log.warning("Unknown setting requested: %s", name)
        return ""

    val = os.environ.get(entry["env"], "").strip()
    if not val and "fallback" in entry:
        val = os.environ.get(entry["fallback"], "").strip()
    if not val and "default" in entry:
        val = entry["default"]
    return val


def is_supabase_configured() -> bool:
    return bool(get_key("supabase_url") and get_key("supabase_anon_key"))


def default_tax_rate() -> float:
    raw = get_key("default_tax_rate")
    try:
        return float(raw)
    except ValueError:
        log.warning("Ignoring non-numeric CALC_DEFAULT_TAX_RATE=%r", raw)
        return 0.0


def mask(value: str) -> str:
    """Mask a secret for safe logging. Shows first 8 chars."""
    if not value:
        return "(not set)"
    if len(value) <= 12:
        return value[:4] + "****"
    return value[:8] + "****" + f"({len(value)} chars)"


def validate_all() -> dict:
    """Validate all settings. Returns status report."""
    results = {}
    warnings = []
    for name, entry in _REGISTRY.items():
        val = get_key(name)
        is_set = bool(val)
        results[name] = {
            "set": is_set,
            "env": entry["env"],
            "desc": entry["desc"],
            "masked": mask(val) if not entry.get("sensitive") else ("set" if is_set else "not set"),
            "required": entry.get("required", False),
            "used_by": entry["used_by"],
        }
        if entry.get("required") and not is_set:
            warnings.append(f"REQUIRED setting missing: {entry['env']} ({entry['desc']})")
        if "choices" in entry and val and val not in entry["choices"]:
            warnings.append(f"{entry['env']}={val!r} is not one of {', '.join(entry['choices'])}")
        if "fallback" in entry:
            results[name]["fallback"] = entry["fallback"]
            results[name]["using_fallback"] = (
                not os.environ.get(entry["env"]) and bool(os.environ.get(entry["fallback"]))
            )

    if bool(get_key("supabase_url")) != bool(get_key("supabase_anon_key")):
        warnings.append("Only one of SUPABASE_URL / SUPABASE_ANON_KEY is set, falling back to demo catalog")

    return {
        "settings": results,
        "total": len(results),
        "set": sum(1 for r in results.values() if r["set"]),
        "missing": sum(1 for r in results.values() if not r["set"]),
        "warnings": warnings,
    }


def startup_check():
    """Run on startup. Logs warnings for missing or invalid settings."""
    report = validate_all()
    log.info("Settings: %d/%d configured", report["set"], report["total"])
    for w in report["warnings"]:
        log.warning("CONFIG: %s", w)
    if is_supabase_configured():
        log.info("Supabase: %s (key %s)", get_key("supabase_url"),
                 mask(get_key("supabase_anon_key")))
    else:
        log.info("Supabase not configured, demo catalog only")
    return report
