"""
Tests for the infrastructure layer: settings registry, path validation,
structured logging, startup checks and the app factory.
"""
import json
import logging
import os

import pytest

from service_calculator.core import config
from service_calculator.core.catalog import DemoCatalog
from service_calculator.core.startup_checks import run_startup_checks


# ═══════════════════════════════════════════════════════════════════════════════
# Settings
# ═══════════════════════════════════════════════════════════════════════════════

class TestConfig:

    def test_defaults(self):
        assert config.get_key("catalog_mode") == "auto"
        assert config.get_key("quote_numbering") == "counter"
        assert config.default_tax_rate() == 0.0

    def test_unknown_key(self):
        assert config.get_key("nope") == ""

    def test_fallback_key(self, monkeypatch):
        monkeypatch.setenv("SUPABASE_KEY", "legacy-key")
        assert config.get_key("supabase_anon_key") == "legacy-key"

    def test_supabase_configured(self, monkeypatch):
        assert config.is_supabase_configured() is False
        monkeypatch.setenv("SUPABASE_URL", "https://proj.supabase.co")
        monkeypatch.setenv("SUPABASE_ANON_KEY", "k")
        assert config.is_supabase_configured() is True

    def test_bad_tax_rate_env(self, monkeypatch):
        monkeypatch.setenv("CALC_DEFAULT_TAX_RATE", "lots")
        assert config.default_tax_rate() == 0.0

    def test_mask(self):
        assert config.mask("") == "(not set)"
        assert config.mask("short") == "shor****"
        assert config.mask("eyJhbGciOiJIUzI1NiJ9") == "eyJhbGci****(20 chars)"

    def test_validate_all_clean(self):
        report = config.validate_all()
        assert report["total"] == 5
        assert report["warnings"] == []
        assert report["settings"]["supabase_anon_key"]["masked"] == "not set"

    def test_validate_all_bad_choice(self, monkeypatch):
        monkeypatch.setenv("CALC_QUOTE_NUMBERING", "uuid")
        warnings = config.validate_all()["warnings"]
        assert any("CALC_QUOTE_NUMBERING" in w for w in warnings)

    def test_validate_all_half_configured(self, monkeypatch):
        monkeypatch.setenv("SUPABASE_URL", "https://proj.supabase.co")
        warnings = config.validate_all()["warnings"]
        assert any("Only one of" in w for w in warnings)

    def test_sensitive_never_reported(self, monkeypatch):
        monkeypatch.setenv("SUPABASE_ANON_KEY", "super-secret-anon-key")
        entry = config.validate_all()["settings"]["supabase_anon_key"]
        assert entry["masked"] == "set"


# ═══════════════════════════════════════════════════════════════════════════════
# Paths
# ═══════════════════════════════════════════════════════════════════════════════

class TestPaths:

    def test_validate_paths_ok(self, temp_data_dir):
        from service_calculator.core.paths import validate_paths
        result = validate_paths()
        assert result["ok"], result["errors"]
        assert result["resolved"]["DATA_DIR"] == temp_data_dir

    def test_state_files_follow_data_dir(self, monkeypatch, tmp_path):
        from service_calculator.core import paths, session
        from service_calculator.forms import quote_numbering
        moved = str(tmp_path / "elsewhere")
        for mod in (paths, session, quote_numbering):
            monkeypatch.setattr(mod, "DATA_DIR", moved)
        assert quote_numbering._counter_path() == os.path.join(moved, "quote_counter.json")
        assert session._session_path() == os.path.join(moved, "session.json")

    def test_missing_output_dir(self, monkeypatch, tmp_path):
        from service_calculator.core import paths
        monkeypatch.setattr(paths, "OUTPUT_DIR", str(tmp_path / "gone"))
        result = paths.validate_paths()
        assert result["ok"] is False
        assert any("OUTPUT_DIR" in e for e in result["errors"])


# ═══════════════════════════════════════════════════════════════════════════════
# Logging
# ═══════════════════════════════════════════════════════════════════════════════

class TestLogging:

    @pytest.fixture(autouse=True)
    def _restore_root(self):
        from logging_config import HumanFormatter, JSONFormatter
        root = logging.getLogger()
        level = root.level
        yield
        for h in root.handlers[:]:
            if isinstance(h.formatter, (JSONFormatter, HumanFormatter)):
                root.removeHandler(h)
                h.close()
        root.setLevel(level)

    def test_json_formatter_extras(self):
        from logging_config import JSONFormatter
        rec = logging.LogRecord("svc_calc.quotes", logging.INFO, __file__, 1,
                                "Quote %s stored", ("Q2610-0001",), None)
        rec.quote_number = "Q2610-0001"
        rec.total = 466.55
        out = json.loads(JSONFormatter().format(rec))
        assert out["msg"] == "Quote Q2610-0001 stored"
        assert out["level"] == "INFO"
        assert out["quote_number"] == "Q2610-0001"
        assert out["total"] == 466.55

    def test_human_formatter(self):
        from logging_config import HumanFormatter
        rec = logging.LogRecord("svc_calc", logging.WARNING, __file__, 1, "careful", (), None)
        assert "[W] svc_calc: careful" in HumanFormatter().format(rec)

    def test_setup_logging_writes_file(self, tmp_path):
        from logging_config import setup_logging
        log_dir = str(tmp_path / "logs")
        setup_logging(level="DEBUG", json_logs=True, log_dir=log_dir)
        logging.getLogger("svc_calc.test").info("hello file")
        for h in logging.getLogger().handlers:
            h.flush()
        with open(os.path.join(log_dir, "service_calculator.log")) as f:
            lines = [json.loads(l) for l in f if l.strip()]
        assert any(l["msg"] == "hello file" for l in lines)
        assert logging.getLogger("urllib3").level == logging.WARNING


# ═══════════════════════════════════════════════════════════════════════════════
# Startup checks + app factory
# ═══════════════════════════════════════════════════════════════════════════════

class TestStartup:

    def test_checks_pass_with_demo_catalog(self):
        results = run_startup_checks(DemoCatalog(), "demo-biz-1")
        assert results["failed"] == 0
        assert any("5 active services" in msg for _, msg in results["details"])

    def test_corrupt_counter_fails(self, temp_data_dir):
        with open(os.path.join(temp_data_dir, "quote_counter.json"), "w") as f:
            f.write("{{")
        results = run_startup_checks()
        assert results["failed"] == 1

    def test_unpriceable_catalog_fails(self):
        bad = DemoCatalog(services=[{"id": "x", "name": "Bad", "base_price": "free",
                                     "is_active": True, "add_ons": []}])
        results = run_startup_checks(bad)
        assert any(status == "FAIL" and "catalog" in msg for status, msg in results["details"])

    def test_create_app_demo(self):
        from app import create_app
        from service_calculator.core.session import demo_login
        app = create_app(demo_login(), configure_logging=False)
        assert app["catalog"].name == "demo"
        assert app["business"]["id"] == "demo-biz-1"
        assert app["checks"]["failed"] == 0

    def test_create_app_anonymous_uses_demo_catalog(self):
        from app import create_app
        app = create_app(configure_logging=False)
        assert app["session"].mode == "anonymous"
        assert app["catalog"].name == "demo"
        assert app["business"]["business_name"] == "Pro Cleaning Services"
