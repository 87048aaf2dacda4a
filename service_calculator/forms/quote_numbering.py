"""
Quote numbering and quote dates.

Format: Q{YY}{MM}-{suffix}, e.g. Q2610-0007.

  counter (default)  4-digit sequence per calendar month, persisted to
                     DATA_DIR/quote_counter.json, resets on the 1st.
  random             4 random digits from an injectable random.Random.
                     Kept for parity with older quotes; NOT collision safe.
"""

import json
import logging
import os
import random
import threading
from datetime import datetime, timedelta

log = logging.getLogger("svc_calc.quote_numbering")

try:
    from service_calculator.core.paths import DATA_DIR
except ImportError:
    DATA_DIR = os.path.join(os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))), "data")

NUMBERING_MODES = ("counter", "random")
VALID_DAYS = 30

_counter_lock = threading.Lock()


# ═══════════════════════════════════════════════════════════════════════════════
# DATES
# ═══════════════════════════════════════════════════════════════════════════════

def long_date(dt: datetime) -> str:
    """October 5, 2026"""
    return f"{dt:%B} {dt.day}, {dt.year}"


def expiration_date(dt: datetime, days: int = VALID_DAYS) -> datetime:
    return dt + timedelta(days=days)


def _period(now: datetime) -> str:
    return now.strftime("%y%m")


# ═══════════════════════════════════════════════════════════════════════════════
# COUNTER PERSISTENCE
# ═══════════════════════════════════════════════════════════════════════════════

def _counter_path() -> str:
    return os.path.join(DATA_DIR, "quote_counter.json")


def _load_counter() -> dict:
    try:
        with open(_counter_path()) as f:
            raw = json.load(f)
    except (FileNotFoundError, json.JSONDecodeError):
        return {}
    return raw if isinstance(raw, dict) else {}


def _save_counter(data: dict):
    os.makedirs(DATA_DIR, exist_ok=True)
    with open(_counter_path(), "w") as f:
        json.dump(data, f, indent=2)


def set_quote_counter(seq: int, period: str = None):
    """Manually set the counter, e.g. after importing quotes from another system."""
    if period is None:
        period = _period(datetime.now())
    with _counter_lock:
        _save_counter({"period": period, "seq": int(seq)})
    log.info("Quote counter set to seq=%d period=%s, next will be Q%s-%04d",
             seq, period, period, int(seq) + 1)


def _next_sequence(now: datetime) -> int:
    period = _period(now)
    with _counter_lock:
        data = _load_counter()
        if data.get("period") != period:
            if data:
                log.info("New month detected, resetting quote counter from seq=%d (period=%s)",
                         data.get("seq", 0), data.get("period"))
            data = {"period": period, "seq": 0}
        data["seq"] = int(data.get("seq", 0)) + 1
        _save_counter(data)
        return data["seq"]


# ═══════════════════════════════════════════════════════════════════════════════
# PUBLIC API
# ═══════════════════════════════════════════════════════════════════════════════

def random_suffix(rng: random.Random = None) -> str:
    rng = rng or random.Random()
    return f"{rng.randint(0, 9999):04d}"


def generate_quote_number(now: datetime = None, numbering: str = "counter",
                          rng: random.Random = None) -> str:
    """Q{YY}{MM}-NNNN for the month of `now`."""
    now = now or datetime.now()
    if numbering not in NUMBERING_MODES:
        raise ValueError(f"Unknown quote numbering mode: {numbering!r}")
    if numbering == "random":
        suffix = random_suffix(rng)
    else:
        suffix = f"{_next_sequence(now):04d}"
    return f"Q{_period(now)}-{suffix}"


def peek_next_quote_number(now: datetime = None) -> str:
    """Preview what the next counter number would be without consuming it."""
    now = now or datetime.now()
    period = _period(now)
    data = _load_counter()
    if data.get("period") != period:
        return f"Q{period}-0001"
    return f"Q{period}-{int(data.get('seq', 0)) + 1:04d}"
