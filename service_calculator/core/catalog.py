"""
service_calculator/core/catalog.py - Business / service / quote storage

One interface, two providers:

  DemoCatalog      in-memory copy of the bundled demo data; nothing leaves
                   the process and nothing survives it.
  SupabaseCatalog  PostgREST over HTTP (/rest/v1/...) with the project's anon
                   key and, once signed in, the user's access token.

get_catalog() picks one from the session and configuration, so callers never
branch on demo mode themselves.
"""

import copy
import logging
import uuid
from datetime import datetime

import requests

from service_calculator.core import config
from service_calculator.core.pricing import PRICING_MODELS
from service_calculator.seed_data import DEMO_BUSINESS, DEMO_QUOTES, DEMO_SERVICES

log = logging.getLogger("svc_calc.catalog")

HTTP_TIMEOUT = 15

# Columns written for a service; add-ons live in their own table
SERVICE_COLUMNS = ("name", "description", "base_price", "pricing_model", "price_max",
                   "price_unit", "is_active")


class CatalogError(RuntimeError):
    """The backing store rejected or failed an operation."""


class InvalidServiceError(ValueError):
    """A service definition that can't be saved."""


# ═══════════════════════════════════════════════════════════════════════════════
# VALIDATION
# ═══════════════════════════════════════════════════════════════════════════════

def _non_negative(value, what: str) -> float:
    try:
        num = float(value)
    except (TypeError, ValueError):
        raise InvalidServiceError(f"{what} must be a number, got {value!r}")
    if num < 0:
        raise InvalidServiceError(f"{what} cannot be negative ({num})")
    return num


def validate_service(service: dict) -> dict:
    """Normalize a service for saving. Returns a new dict."""
    name = str(service.get("name") or "").strip()
    if not name:
        raise InvalidServiceError("Service name is required")

    model = service.get("pricing_model") or "fixed"
    if model not in PRICING_MODELS:
        raise InvalidServiceError(f"Unknown pricing model {model!r}")

    clean = dict(service)
    clean["name"] = name
    clean["description"] = str(service.get("description") or "")
    clean["pricing_model"] = model
    clean["base_price"] = _non_negative(service.get("base_price"), "Price")
    clean["price_unit"] = str(service.get("price_unit") or "job").lower().strip()
    clean["is_active"] = bool(service.get("is_active", True))

    if service.get("price_max") not in (None, ""):
        clean["price_max"] = _non_negative(service["price_max"], "Maximum price")
        if model == "range" and clean["price_max"] < clean["base_price"]:
            raise InvalidServiceError("Maximum price must be at least the minimum price")
    else:
        clean["price_max"] = None

    clean["add_ons"] = []
    for ao in service.get("add_ons") or []:
        ao_name = str(ao.get("name") or "").strip()
        if not ao_name:
            raise InvalidServiceError(f"Add-on name is required on '{name}'")
        clean["add_ons"].append(dict(ao, name=ao_name,
                                     price=_non_negative(ao.get("price"), f"Add-on '{ao_name}' price")))
    return clean


# ═══════════════════════════════════════════════════════════════════════════════
# INTERFACE
# ═══════════════════════════════════════════════════════════════════════════════

class CatalogProvider:
    """Storage operations the calculator, admin and dashboard screens need."""

    name = "base"
    read_only_profile = False

    def get_business_profile(self, owner_id):
        raise NotImplementedError

    def save_business_profile(self, profile: dict) -> dict:
        raise NotImplementedError

    def list_services(self, business_id, active_only: bool = False) -> list:
        raise NotImplementedError

    def save_service(self, business_id, service: dict) -> dict:
        raise NotImplementedError

    def set_service_active(self, service_id, active: bool) -> dict:
        raise NotImplementedError

    def delete_service(self, service_id) -> bool:
        raise NotImplementedError

    def insert_quote(self, record: dict) -> dict:
        raise NotImplementedError

    def list_quotes(self, business_id) -> list:
        raise NotImplementedError

    def update_quote_status(self, quote_id, status: str) -> dict:
        raise NotImplementedError


# ═══════════════════════════════════════════════════════════════════════════════
# DEMO
# ═══════════════════════════════════════════════════════════════════════════════

class DemoCatalog(CatalogProvider):
    """Seeded, in-memory catalog for demo mode and tests."""

    name = "demo"
    read_only_profile = True

    def __init__(self, business=None, services=None, quotes=None):
        self.business = copy.deepcopy(business if business is not None else DEMO_BUSINESS)
        self.services = copy.deepcopy(services if services is not None else DEMO_SERVICES)
        self.quotes = copy.deepcopy(quotes if quotes is not None else DEMO_QUOTES)

    def get_business_profile(self, owner_id=None):
        return copy.deepcopy(self.business)

    def save_business_profile(self, profile: dict) -> dict:
        raise CatalogError("Saving is disabled in demo mode")

    def list_services(self, business_id=None, active_only: bool = False) -> list:
        return [copy.deepcopy(s) for s in self.services
                if s.get("is_active", True) or not active_only]

    def _find_service(self, service_id) -> dict:
        for s in self.services:
            if s["id"] == service_id:
                return s
        raise CatalogError(f"Service not found: {service_id}")

    def save_service(self, business_id, service: dict) -> dict:
        clean = validate_service(service)
        if clean.get("id"):
            existing = self._find_service(clean["id"])
            # Editing keeps the stored add-ons unless new ones were given
            if not service.get("add_ons"):
                clean["add_ons"] = existing.get("add_ons", [])
            existing.clear()
            existing.update(clean)
            return copy.deepcopy(existing)
        clean["id"] = f"svc-{uuid.uuid4().hex[:8]}"
        clean["business_id"] = business_id
        self.services.append(clean)
        return copy.deepcopy(clean)

    def set_service_active(self, service_id, active: bool) -> dict:
        svc = self._find_service(service_id)
        svc["is_active"] = bool(active)
        return copy.deepcopy(svc)

    def delete_service(self, service_id) -> bool:
        before = len(self.services)
        self.services = [s for s in self.services if s["id"] != service_id]
        return len(self.services) < before

    def insert_quote(self, record: dict) -> dict:
        stored = copy.deepcopy(record)
        stored.setdefault("id", f"q-{uuid.uuid4().hex[:8]}")
        self.quotes.insert(0, stored)
        return copy.deepcopy(stored)

    def list_quotes(self, business_id=None) -> list:
        return copy.deepcopy(self.quotes)

    def update_quote_status(self, quote_id, status: str) -> dict:
        for q in self.quotes:
            if q.get("id") == quote_id:
                q["status"] = status
                return copy.deepcopy(q)
        raise CatalogError(f"Quote not found: {quote_id}")


# ═══════════════════════════════════════════════════════════════════════════════
# SUPABASE (PostgREST)
# ═══════════════════════════════════════════════════════════════════════════════

class SupabaseCatalog(CatalogProvider):
    """Catalog backed by the business_profiles / services / add_ons / quotes tables."""

    name = "supabase"

    def __init__(self, url: str, api_key: str, access_token: str = None, http=None):
        self.base = url.rstrip("/") + "/rest/v1"
        self.api_key = api_key
        self.access_token = access_token
        self.http = http or requests.Session()

    def _headers(self, prefer: str = None) -> dict:
        headers = {
            "apikey": self.api_key,
            "Authorization": f"Bearer {self.access_token or self.api_key}",
            "Accept": "application/json",
            "Content-Type": "application/json",
        }
        if prefer:
            headers["Prefer"] = prefer
        return headers

    def _request(self, method: str, table: str, params: dict = None, data=None,
                 prefer: str = None):
        """One PostgREST call. HTTP and network failures raise CatalogError."""
        url = f"{self.base}/{table}"
        try:
            resp = self.http.request(method, url, params=params, json=data,
                                     headers=self._headers(prefer), timeout=HTTP_TIMEOUT)
            resp.raise_for_status()
        except requests.RequestException as e:
            log.error("Supabase error (%s %s): %s", method, table, e)
            raise CatalogError(f"{method} {table} failed: {e}") from e
        if resp.status_code == 204 or not resp.content:
            return None
        return resp.json()

    @staticmethod
    def _first(rows, what: str) -> dict:
        if not rows:
            raise CatalogError(f"{what}: no row returned")
        return rows[0]

    # ── Business profile ─────────────────────────────────────────────────────

    def get_business_profile(self, owner_id):
        rows = self._request("GET", "business_profiles",
                             params={"select": "*", "user_id": f"eq.{owner_id}", "limit": "1"})
        return rows[0] if rows else None

    def save_business_profile(self, profile: dict) -> dict:
        if profile.get("id"):
            rows = self._request("PATCH", "business_profiles",
                                 params={"id": f"eq.{profile['id']}"},
                                 data={k: v for k, v in profile.items() if k != "id"},
                                 prefer="return=representation")
        else:
            rows = self._request("POST", "business_profiles", data=profile,
                                 prefer="return=representation")
        return self._first(rows, "save business profile")

    # ── Services ─────────────────────────────────────────────────────────────

    def list_services(self, business_id, active_only: bool = False) -> list:
        params = {"select": "*,add_ons(*)", "business_id": f"eq.{business_id}",
                  "order": "created_at.asc"}
        if active_only:
            params["is_active"] = "eq.true"
        rows = self._request("GET", "services", params=params) or []
        for row in rows:
            row.setdefault("add_ons", [])
        return rows

    def save_service(self, business_id, service: dict) -> dict:
        clean = validate_service(service)
        body = {k: clean[k] for k in SERVICE_COLUMNS}
        if clean.get("id"):
            rows = self._request("PATCH", "services", params={"id": f"eq.{clean['id']}"},
                                 data=body, prefer="return=representation")
        else:
            body["business_id"] = business_id
            rows = self._request("POST", "services", data=body,
                                 prefer="return=representation")
        saved = self._first(rows, "save service")
        saved.setdefault("add_ons", service.get("add_ons") or [])
        return saved

    def set_service_active(self, service_id, active: bool) -> dict:
        rows = self._request("PATCH", "services", params={"id": f"eq.{service_id}"},
                             data={"is_active": bool(active)}, prefer="return=representation")
        return self._first(rows, "update service")

    def delete_service(self, service_id) -> bool:
        rows = self._request("DELETE", "services", params={"id": f"eq.{service_id}"},
                             prefer="return=representation")
        return bool(rows)

    # ── Quotes ───────────────────────────────────────────────────────────────

    def insert_quote(self, record: dict) -> dict:
        rows = self._request("POST", "quotes", data=record, prefer="return=representation")
        return self._first(rows, "insert quote")

    def list_quotes(self, business_id) -> list:
        return self._request("GET", "quotes",
                             params={"select": "*", "business_id": f"eq.{business_id}",
                                     "order": "created_at.desc"}) or []

    def update_quote_status(self, quote_id, status: str) -> dict:
        rows = self._request("PATCH", "quotes", params={"id": f"eq.{quote_id}"},
                             data={"status": status, "updated_at": datetime.now().isoformat()},
                             prefer="return=representation")
        return self._first(rows, "update quote")


# ═══════════════════════════════════════════════════════════════════════════════
# SELECTION
# ═══════════════════════════════════════════════════════════════════════════════

def get_catalog(session=None, http=None) -> CatalogProvider:
    """Demo catalog for demo sessions or when Supabase isn't usable; else Supabase."""
    mode = config.get_key("catalog_mode")
    if session is not None and getattr(session, "is_demo", False):
        return DemoCatalog()
    if mode == "demo":
        return DemoCatalog()
    if not config.is_supabase_configured():
        if mode == "supabase":
            raise CatalogError("CALC_CATALOG_MODE=supabase but SUPABASE_URL / SUPABASE_ANON_KEY are not set")
        log.info("Supabase not configured, using demo catalog")
        return DemoCatalog()
    token = getattr(session, "access_token", None) if session is not None else None
    return SupabaseCatalog(config.get_key("supabase_url"), config.get_key("supabase_anon_key"),
                           access_token=token, http=http)
