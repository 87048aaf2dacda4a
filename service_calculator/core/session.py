"""
service_calculator/core/session.py - Who is using the calculator

A Session is an immutable snapshot: mode (anonymous / authenticated / demo),
the user, their business profile and an access token. Every transition
returns a new Session; nothing mutates one in place.

The current session is persisted to DATA_DIR/session.json so a restart picks
up where it left off (demo flag, or the signed-in user + token).
"""

import copy
import json
import logging
import os
from dataclasses import dataclass, replace
from typing import Optional

import requests

from service_calculator.core import config
from service_calculator.core.catalog import get_catalog
from service_calculator.seed_data import DEMO_BUSINESS, DEMO_USER

log = logging.getLogger("svc_calc.session")

try:
    from service_calculator.core.paths import DATA_DIR
except ImportError:
    DATA_DIR = os.path.join(os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))), "data")

MODES = ("anonymous", "authenticated", "demo")
NOT_CONFIGURED = "Database not configured. Use demo mode to explore the app."


class AuthError(RuntimeError):
    """Sign-in, sign-up or sign-out was rejected."""


@dataclass(frozen=True)
class Session:
    mode: str = "anonymous"
    user: Optional[dict] = None
    business: Optional[dict] = None
    access_token: Optional[str] = None

    @property
    def is_demo(self) -> bool:
        return self.mode == "demo"

    @property
    def is_authenticated(self) -> bool:
        return self.mode in ("authenticated", "demo") and self.user is not None

    def with_business(self, business: dict) -> "Session":
        return replace(self, business=copy.deepcopy(business))


ANONYMOUS = Session()

# ═══════════════════════════════════════════════════════════════════════════════
# PERSISTENCE
# ═══════════════════════════════════════════════════════════════════════════════

def _session_path() -> str:
    return os.path.join(DATA_DIR, "session.json")


def _persist(session: Session):
    os.makedirs(DATA_DIR, exist_ok=True)
    if session.is_demo:
        data = {"mode": "demo"}
    else:
        data = {"mode": session.mode, "user": session.user,
                "business": session.business, "access_token": session.access_token}
    with open(_session_path(), "w") as f:
        json.dump(data, f, indent=2, default=str)


def _clear_persisted():
    try:
        os.remove(_session_path())
    except FileNotFoundError:
        pass


def initialize() -> Session:
    """Restore the persisted session, or start anonymous."""
    try:
        with open(_session_path()) as f:
            data = json.load(f)
    except FileNotFoundError:
        return ANONYMOUS
    except (json.JSONDecodeError, OSError) as e:
        log.warning("Ignoring unreadable session file: %s", e)
        return ANONYMOUS

    mode = data.get("mode") if isinstance(data, dict) else None
    if mode == "demo":
        log.info("Restored demo session")
        return _demo_session()
    if mode == "authenticated" and data.get("user") and data.get("access_token"):
        log.info("Restored session for %s", data["user"].get("email", "?"))
        return Session(mode="authenticated", user=data["user"],
                       business=data.get("business"), access_token=data["access_token"])
    return ANONYMOUS

# ═══════════════════════════════════════════════════════════════════════════════
# SUPABASE AUTH (GoTrue)
# ═══════════════════════════════════════════════════════════════════════════════

class SupabaseAuth:
    """Email/password auth against <project>/auth/v1."""

    def __init__(self, url: str, api_key: str, http=None):
        self.base = url.rstrip("/") + "/auth/v1"
        self.api_key = api_key
        self.http = http or requests.Session()

    def _post(self, path: str, data: dict = None, token: str = None) -> dict:
        headers = {
            "apikey": self.api_key,
            "Authorization": f"Bearer {token or self.api_key}",
            "Content-Type": "application/json",
        }
        try:
            resp = self.http.request("POST", f"{self.base}/{path}", json=data or {},
                                     headers=headers, timeout=15)
        except requests.RequestException as e:
            log.error("Auth request failed (%s): %s", path, e)
            raise AuthError(f"Auth service unreachable: {e}") from e
        if resp.status_code >= 400:
            try:
                body = resp.json()
            except ValueError:
                body = {}
            msg = (body.get("error_description") or body.get("msg")
                   or body.get("message") or f"HTTP {resp.status_code}")
            log.warning("Auth %s rejected: %s", path, msg)
            raise AuthError(msg)
        if resp.status_code == 204 or not resp.content:
            return {}
        return resp.json()

    def sign_in(self, email: str, password: str) -> dict:
        return self._post("token?grant_type=password", {"email": email, "password": password})

    def sign_up(self, email: str, password: str) -> dict:
        return self._post("signup", {"email": email, "password": password})

    def sign_out(self, access_token: str):
        self._post("logout", token=access_token)


def _default_auth() -> SupabaseAuth:
    if not config.is_supabase_configured():
        raise AuthError(NOT_CONFIGURED)
    return SupabaseAuth(config.get_key("supabase_url"), config.get_key("supabase_anon_key"))


def _catalog_for(session: Session, catalog):
    if catalog is not None:
        return catalog
    return get_catalog(session)

# ═══════════════════════════════════════════════════════════════════════════════
# TRANSITIONS
# ═══════════════════════════════════════════════════════════════════════════════

def _demo_session() -> Session:
    return Session(mode="demo", user=copy.deepcopy(DEMO_USER),
                   business=copy.deepcopy(DEMO_BUSINESS))


def demo_login() -> Session:
    session = _demo_session()
    _persist(session)
    log.info("Demo login")
    return session


def sign_in(email: str, password: str, auth: SupabaseAuth = None, catalog=None) -> Session:
    auth = auth or _default_auth()
    data = auth.sign_in(email, password)
    user = data.get("user")
    token = data.get("access_token")
    if not user or not token:
        raise AuthError("Sign-in returned no session")

    session = Session(mode="authenticated", user=user, access_token=token)
    business = _catalog_for(session, catalog).get_business_profile(user["id"])
    if business:
        session = session.with_business(business)
    _persist(session)
    log.info("Signed in %s (business=%s)", email, (business or {}).get("business_name", "none"))
    return session


def sign_up(email: str, password: str, business_name: str, auth: SupabaseAuth = None,
            catalog=None) -> Session:
    """Create the account, then its business profile unless one already exists."""
    auth = auth or _default_auth()
    data = auth.sign_up(email, password)
    user = data.get("user") or (data if data.get("id") else None)
    if not user:
        raise AuthError("Sign-up returned no user")

    session = Session(mode="authenticated", user=user, access_token=data.get("access_token"))
    store = _catalog_for(session, catalog)
    business = store.get_business_profile(user["id"])
    if not business:
        business = store.save_business_profile({
            "user_id": user["id"],
            "business_name": business_name,
            "contact_email": email,
        })
    session = session.with_business(business)
    _persist(session)
    log.info("Signed up %s for %s", email, business_name)
    return session


def sign_out(session: Session, auth: SupabaseAuth = None) -> Session:
    """Drop the session locally; revoke the token remotely when there is one."""
    _clear_persisted()
    if session.mode == "authenticated" and session.access_token:
        auth = auth or (_default_auth() if config.is_supabase_configured() else None)
        if auth is not None:
            auth.sign_out(session.access_token)
    log.info("Signed out (%s)", session.mode)
    return ANONYMOUS
