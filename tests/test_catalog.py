"""
Tests for core/catalog.py: service validation, DemoCatalog, SupabaseCatalog
(against a fake HTTP session) and provider selection.
"""
import pytest
import requests

from service_calculator.core.catalog import (
    CatalogError, DemoCatalog, InvalidServiceError, SupabaseCatalog, get_catalog,
    validate_service,
)
from service_calculator.core.session import Session
from service_calculator.seed_data import DEMO_SERVICES


# ═══════════════════════════════════════════════════════════════════════════════
# Validation
# ═══════════════════════════════════════════════════════════════════════════════

class TestValidateService:

    def test_normalizes_unit(self):
        svc = validate_service({"name": " Gutter Cleaning ", "base_price": "80", "price_unit": " Foot "})
        assert svc["name"] == "Gutter Cleaning"
        assert svc["base_price"] == 80.0
        assert svc["price_unit"] == "foot"
        assert svc["pricing_model"] == "fixed"
        assert svc["is_active"] is True

    def test_default_unit_is_job(self):
        assert validate_service({"name": "X", "base_price": 1})["price_unit"] == "job"

    def test_name_required(self):
        with pytest.raises(InvalidServiceError, match="name"):
            validate_service({"name": "  ", "base_price": 10})

    def test_negative_price(self):
        with pytest.raises(InvalidServiceError):
            validate_service({"name": "X", "base_price": -1})

    def test_non_numeric_price(self):
        with pytest.raises(InvalidServiceError):
            validate_service({"name": "X", "base_price": "cheap"})

    def test_range_max_below_min(self):
        with pytest.raises(InvalidServiceError, match="Maximum"):
            validate_service({"name": "X", "base_price": 200, "price_max": 100,
                              "pricing_model": "range"})

    def test_unknown_model(self):
        with pytest.raises(InvalidServiceError):
            validate_service({"name": "X", "base_price": 1, "pricing_model": "auction"})

    def test_add_on_price_checked(self):
        with pytest.raises(InvalidServiceError):
            validate_service({"name": "X", "base_price": 1,
                              "add_ons": [{"name": "Y", "price": -3}]})


# ═══════════════════════════════════════════════════════════════════════════════
# Demo catalog
# ═══════════════════════════════════════════════════════════════════════════════

class TestDemoCatalog:

    def test_seeded(self):
        cat = DemoCatalog()
        assert cat.get_business_profile()["business_name"] == "Pro Cleaning Services"
        assert len(cat.list_services()) == 5
        assert len(cat.list_quotes()) == 3

    def test_active_only(self):
        cat = DemoCatalog()
        cat.set_service_active("svc-3", False)
        ids = [s["id"] for s in cat.list_services(active_only=True)]
        assert "svc-3" not in ids
        assert len(cat.list_services()) == 5

    def test_does_not_mutate_seed(self):
        cat = DemoCatalog()
        cat.set_service_active("svc-1", False)
        cat.list_services()[0]["name"] = "changed"
        assert DEMO_SERVICES[0]["is_active"] is True
        assert DEMO_SERVICES[0]["name"] == "Standard Cleaning"

    def test_create_service(self):
        cat = DemoCatalog()
        saved = cat.save_service("demo-biz-1", {"name": "Pressure Washing", "base_price": 0.5,
                                                "price_unit": "SQFT"})
        assert saved["id"].startswith("svc-")
        assert saved["price_unit"] == "sqft"
        assert saved["add_ons"] == []
        assert len(cat.list_services()) == 6

    def test_edit_keeps_add_ons(self):
        cat = DemoCatalog()
        saved = cat.save_service("demo-biz-1", {"id": "svc-1", "name": "Standard Clean",
                                                "base_price": 130})
        assert saved["base_price"] == 130
        assert len(saved["add_ons"]) == 3

    def test_edit_unknown(self):
        with pytest.raises(CatalogError):
            DemoCatalog().save_service("demo-biz-1", {"id": "nope", "name": "X", "base_price": 1})

    def test_delete(self):
        cat = DemoCatalog()
        assert cat.delete_service("svc-5") is True
        assert cat.delete_service("svc-5") is False

    def test_profile_save_refused(self):
        with pytest.raises(CatalogError, match="demo mode"):
            DemoCatalog().save_business_profile({"business_name": "X"})

    def test_insert_and_update_quote(self):
        cat = DemoCatalog()
        q = cat.insert_quote({"invoice_number": "Q2610-0001", "status": "pending",
                              "total_amount": 10})
        assert cat.list_quotes()[0]["id"] == q["id"]
        assert cat.update_quote_status(q["id"], "paid")["status"] == "paid"

    def test_update_unknown_quote(self):
        with pytest.raises(CatalogError):
            DemoCatalog().update_quote_status("q-999", "paid")


# ═══════════════════════════════════════════════════════════════════════════════
# Supabase catalog
# ═══════════════════════════════════════════════════════════════════════════════

class TestSupabaseCatalog:

    @pytest.fixture
    def cat(self, fake_http):
        return SupabaseCatalog("https://proj.supabase.co/", "anon-key", access_token="user-jwt",
                               http=fake_http)

    def test_headers(self, cat, fake_http):
        fake_http.queue(200, [])
        cat.list_services("biz-1")
        call = fake_http.calls[0]
        assert call["headers"]["apikey"] == "anon-key"
        assert call["headers"]["Authorization"] == "Bearer user-jwt"
        assert call["timeout"] == 15

    def test_anon_key_used_without_token(self, fake_http):
        cat = SupabaseCatalog("https://proj.supabase.co", "anon-key", http=fake_http)
        cat.list_quotes("biz-1")
        assert fake_http.calls[0]["headers"]["Authorization"] == "Bearer anon-key"

    def test_list_services_query(self, cat, fake_http):
        fake_http.queue(200, [{"id": "s1", "name": "A", "base_price": 1}])
        rows = cat.list_services("biz-1", active_only=True)
        call = fake_http.calls[0]
        assert call["method"] == "GET"
        assert call["url"] == "https://proj.supabase.co/rest/v1/services"
        assert call["params"]["business_id"] == "eq.biz-1"
        assert call["params"]["is_active"] == "eq.true"
        assert "add_ons" in call["params"]["select"]
        assert rows[0]["add_ons"] == []

    def test_get_profile_none(self, cat, fake_http):
        fake_http.queue(200, [])
        assert cat.get_business_profile("user-1") is None
        assert fake_http.calls[0]["params"]["user_id"] == "eq.user-1"

    def test_create_profile(self, cat, fake_http):
        fake_http.queue(201, [{"id": "biz-9", "business_name": "New Co"}])
        saved = cat.save_business_profile({"user_id": "u1", "business_name": "New Co"})
        assert saved["id"] == "biz-9"
        call = fake_http.calls[0]
        assert call["method"] == "POST"
        assert call["headers"]["Prefer"] == "return=representation"

    def test_save_service_sends_columns_only(self, cat, fake_http):
        fake_http.queue(201, [{"id": "s9", "name": "Mowing", "base_price": 40}])
        cat.save_service("biz-1", {"name": "Mowing", "base_price": 40, "add_ons": [],
                                   "junk": "x"})
        body = fake_http.calls[0]["json"]
        assert body["business_id"] == "biz-1"
        assert "junk" not in body
        assert "add_ons" not in body

    def test_update_quote_status(self, cat, fake_http):
        fake_http.queue(200, [{"id": "q1", "status": "paid"}])
        assert cat.update_quote_status("q1", "paid")["status"] == "paid"
        call = fake_http.calls[0]
        assert call["method"] == "PATCH"
        assert call["params"] == {"id": "eq.q1"}
        assert call["json"]["status"] == "paid"

    def test_http_error_raises(self, cat, fake_http):
        fake_http.queue(500, {"message": "boom"})
        with pytest.raises(CatalogError):
            cat.list_quotes("biz-1")

    def test_network_error_raises(self, cat, fake_http):
        fake_http.fail_with(requests.ConnectionError("down"))
        with pytest.raises(CatalogError, match="down"):
            cat.insert_quote({"invoice_number": "Q1"})

    def test_empty_insert_response(self, cat, fake_http):
        fake_http.queue(201, [])
        with pytest.raises(CatalogError):
            cat.insert_quote({"invoice_number": "Q1"})

    def test_delete_returns_bool(self, cat, fake_http):
        fake_http.queue(200, [{"id": "s1"}])
        assert cat.delete_service("s1") is True
        fake_http.queue(204, None)
        assert cat.delete_service("s1") is False


# ═══════════════════════════════════════════════════════════════════════════════
# Provider selection
# ═══════════════════════════════════════════════════════════════════════════════

class TestGetCatalog:

    def test_unconfigured_is_demo(self):
        assert get_catalog().name == "demo"

    def test_configured_is_supabase(self, monkeypatch):
        monkeypatch.setenv("SUPABASE_URL", "https://proj.supabase.co")
        monkeypatch.setenv("SUPABASE_ANON_KEY", "anon-key")
        cat = get_catalog(Session(mode="authenticated", user={"id": "u"}, access_token="tok"))
        assert cat.name == "supabase"
        assert cat.access_token == "tok"

    def test_demo_session_always_demo(self, monkeypatch):
        monkeypatch.setenv("SUPABASE_URL", "https://proj.supabase.co")
        monkeypatch.setenv("SUPABASE_ANON_KEY", "anon-key")
        assert get_catalog(Session(mode="demo")).name == "demo"

    def test_forced_demo_mode(self, monkeypatch):
        monkeypatch.setenv("SUPABASE_URL", "https://proj.supabase.co")
        monkeypatch.setenv("SUPABASE_ANON_KEY", "anon-key")
        monkeypatch.setenv("CALC_CATALOG_MODE", "demo")
        assert get_catalog().name == "demo"

    def test_forced_supabase_without_credentials(self, monkeypatch):
        monkeypatch.setenv("CALC_CATALOG_MODE", "supabase")
        with pytest.raises(CatalogError):
            get_catalog()
