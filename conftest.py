"""
Shared pytest fixtures for the Service Calculator test suite.

Every test gets its own DATA_DIR / OUTPUT_DIR and a clean environment (no
Supabase credentials), so nothing touches the real project data or network.
"""
import copy
import json
import os
import sys
from datetime import datetime

import pytest
import requests

_PROJECT_ROOT = os.path.dirname(os.path.abspath(__file__))
if _PROJECT_ROOT not in sys.path:
    sys.path.insert(0, _PROJECT_ROOT)

from service_calculator.seed_data import DEMO_BUSINESS, DEMO_SERVICES  # noqa: E402

_ENV_VARS = ("SUPABASE_URL", "SUPABASE_ANON_KEY", "SUPABASE_KEY", "CALC_CATALOG_MODE",
             "CALC_QUOTE_NUMBERING", "CALC_DEFAULT_TAX_RATE", "CALC_ENV")


# ── Temp data directory (per-test isolation) ──────────────────────────────────

@pytest.fixture(autouse=True)
def temp_data_dir(tmp_path, monkeypatch):
    """Redirect ALL module data/output dirs to an isolated tmp directory."""
    data = str(tmp_path / "data")
    output = str(tmp_path / "output")
    os.makedirs(data, exist_ok=True)
    os.makedirs(output, exist_ok=True)

    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)

    from service_calculator.core import paths, session
    from service_calculator.forms import quote_generator, quote_numbering
    monkeypatch.setattr(paths, "DATA_DIR", data)
    monkeypatch.setattr(paths, "OUTPUT_DIR", output)
    monkeypatch.setattr(quote_numbering, "DATA_DIR", data)
    monkeypatch.setattr(session, "DATA_DIR", data)
    monkeypatch.setattr(quote_generator, "OUTPUT_DIR", output)
    return data


@pytest.fixture
def output_dir(temp_data_dir, tmp_path):
    return str(tmp_path / "output")


# ── Sample data ───────────────────────────────────────────────────────────────

@pytest.fixture
def services():
    """Demo services keyed by id (deep copies, safe to mutate)."""
    return {s["id"]: copy.deepcopy(s) for s in DEMO_SERVICES}


@pytest.fixture
def business():
    return copy.deepcopy(DEMO_BUSINESS)


@pytest.fixture
def client_info():
    return {"name": "John Smith", "email": "john@example.com", "phone": "(555) 987-6543"}


@pytest.fixture
def fixed_now():
    return datetime(2026, 10, 5, 14, 30, 0)


@pytest.fixture
def sample_selection(services):
    """Standard Cleaning + fridge, 1000 sqft Deep Cleaning, 3h labor."""
    std = services["svc-1"]
    return [
        {"service": std, "add_ons": [std["add_ons"][0]]},
        {"service": services["svc-2"], "quantity": 1000, "add_ons": []},
        {"service": services["svc-4"], "quantity": 3, "add_ons": []},
    ]


# ── Fake HTTP session for the Supabase clients ────────────────────────────────

class FakeResponse:
    def __init__(self, status_code=200, payload=None):
        self.status_code = status_code
        self._payload = payload
        self.content = b"" if payload is None else json.dumps(payload).encode()

    def json(self):
        if self._payload is None:
            raise ValueError("no JSON body")
        return self._payload

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error", response=self)


class FakeHTTP:
    """Stands in for requests.Session: records calls, replays queued responses."""

    def __init__(self):
        self.calls = []
        self._queue = []

    def queue(self, status_code=200, payload=None):
        self._queue.append(FakeResponse(status_code, payload))
        return self

    def fail_with(self, exc):
        self._queue.append(exc)
        return self

    def request(self, method, url, **kwargs):
        self.calls.append({"method": method, "url": url, **kwargs})
        if not self._queue:
            return FakeResponse(200, [])
        nxt = self._queue.pop(0)
        if isinstance(nxt, Exception):
            raise nxt
        return nxt


@pytest.fixture
def fake_http():
    return FakeHTTP()
