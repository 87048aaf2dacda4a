"""
service_calculator/core/quotes.py - Quote records, status and dashboard stats

A quote record freezes what the client was quoted: service names, quantities,
line and add-on prices, totals. It is built once at "Get Your Quote" time and
never recomputed from the live catalog, so later price edits don't rewrite
history.

Status moves one way only: pending -> paid.
"""

import copy
import logging
from datetime import datetime

from service_calculator.core import config
from service_calculator.core.pricing import compute_totals, entry_add_ons, line_price
from service_calculator.forms.quote_generator import render_quote

log = logging.getLogger("svc_calc.quotes")

VALID_STATUSES = ("pending", "paid")


class QuoteValidationError(ValueError):
    """Quote can't be finalized with the given client info or selection."""


class QuoteStatusError(ValueError):
    """Requested status change isn't allowed."""


# ═══════════════════════════════════════════════════════════════════════════════
# RECORDS
# ═══════════════════════════════════════════════════════════════════════════════

def snapshot_selection(selection: list, strict: bool = False) -> list:
    """Plain, JSON-ready copy of a selection with prices resolved."""
    snap = []
    for entry in selection or []:
        service = entry.get("service") or {}
        snap.append({
            "service_id": service.get("id"),
            "service_name": service.get("name", ""),
            "quantity": entry.get("quantity"),
            "unit": service.get("price_unit") or "job",
            "price": line_price(entry, strict=strict),
            "add_ons": [{"name": ao.get("name", ""), "price": float(ao.get("price") or 0)}
                        for ao in entry_add_ons(entry)],
        })
    return copy.deepcopy(snap)


def build_quote_record(business: dict, selection: list, breakdown: dict, client: dict,
                       invoice_number: str, created_at: datetime = None) -> dict:
    """Row for the quotes table. Client email is required."""
    client = client or {}
    email = str(client.get("email") or "").strip()
    if not email:
        raise QuoteValidationError("Please enter your email address")
    if not selection:
        raise QuoteValidationError("Select at least one service")

    created_at = created_at or datetime.now()
    return {
        "business_id": (business or {}).get("id"),
        "invoice_number": invoice_number,
        "client_name": client.get("name") or "",
        "client_email": email,
        "client_phone": client.get("phone") or "",
        "services_selected": snapshot_selection(selection),
        "subtotal": breakdown["subtotal"],
        "tax": breakdown["tax"],
        "total_amount": breakdown["total"],
        "status": "pending",
        "created_at": created_at.isoformat(),
    }


def quote_total(quote: dict) -> float:
    """Total of a stored quote; older rows use `total` instead of `total_amount`."""
    raw = quote.get("total_amount", quote.get("total", 0))
    try:
        return float(raw or 0)
    except (TypeError, ValueError):
        return 0.0


def finalize_quote(catalog, business: dict, selection: list, client: dict,
                   generated_at: datetime = None, quote_number: str = None,
                   numbering: str = None, rng=None, strict: bool = False):
    """Price, render and store a quote. Returns (stored_record, QuoteDocument).

    Nothing is stored when validation, pricing or rendering fails.
    """
    client = client or {}
    if not str(client.get("email") or "").strip():
        raise QuoteValidationError("Please enter your email address")
    # Checked before rendering so a rejected quote doesn't consume a number
    if not selection:
        raise QuoteValidationError("Select at least one service")

    tax_rate = (business or {}).get("tax_rate")
    if tax_rate in (None, ""):
        tax_rate = config.default_tax_rate()
    breakdown = compute_totals(selection, tax_rate, strict=strict)

    generated_at = generated_at or datetime.now()
    doc = render_quote(business, selection, breakdown, client, generated_at=generated_at,
                       quote_number=quote_number, numbering=numbering, rng=rng)
    record = build_quote_record(business, selection, breakdown, client,
                                doc.quote_number, created_at=generated_at)
    stored = catalog.insert_quote(record)
    log.info("Quote %s stored for %s: $%.2f (%s catalog)", doc.quote_number,
             record["client_email"], breakdown["total"], getattr(catalog, "name", "?"),
             extra={"quote_number": doc.quote_number, "business_id": record["business_id"],
                    "total": breakdown["total"]})
    return stored, doc


# ═══════════════════════════════════════════════════════════════════════════════
# STATUS
# ═══════════════════════════════════════════════════════════════════════════════

def check_transition(current: str, target: str) -> bool:
    """True if a write is needed, False for a no-op, raises if not allowed."""
    current = current or "pending"
    if target not in VALID_STATUSES:
        raise QuoteStatusError(f"Unknown quote status {target!r}")
    if current == target:
        return False
    if current == "pending" and target == "paid":
        return True
    raise QuoteStatusError(f"Quote status can't change from {current} to {target}")


def mark_paid(catalog, quote: dict) -> dict:
    """pending -> paid. Already-paid quotes come back unchanged."""
    if not check_transition(quote.get("status"), "paid"):
        return quote
    updated = catalog.update_quote_status(quote["id"], "paid")
    log.info("Quote %s marked as PAID", quote.get("invoice_number", quote["id"]),
             extra={"quote_number": quote.get("invoice_number")})
    return updated


# ═══════════════════════════════════════════════════════════════════════════════
# DASHBOARD
# ═══════════════════════════════════════════════════════════════════════════════

def search_quotes(quotes: list, query: str = "", status: str = "", limit: int = 50) -> list:
    """Filter stored quotes by free text (number, client, services) and status."""
    q = query.lower().strip()
    results = []
    for qt in quotes:
        if status and (qt.get("status") or "pending") != status:
            continue
        if q:
            parts = [
                qt.get("invoice_number", ""),
                qt.get("client_name", ""),
                qt.get("client_email", ""),
                qt.get("service_name", ""),
            ]
            for item in qt.get("services_selected") or []:
                parts.append(str(item.get("service_name", "")))
            if q not in " ".join(str(p) for p in parts).lower():
                continue
        results.append(qt)
        if len(results) >= limit:
            break
    return results


def dashboard_stats(services: list, quotes: list) -> dict:
    """Active services, plus pending vs collected (paid) totals."""
    stats = {
        "active_services": sum(1 for s in services if s.get("is_active")),
        "total_quotes": len(quotes),
        "pending": 0, "paid": 0,
        "pending_total": 0.0, "paid_total": 0.0,
    }
    for qt in quotes:
        s = qt.get("status") or "pending"
        if s == "paid":
            stats["paid"] += 1
            stats["paid_total"] += quote_total(qt)
        elif s == "pending":
            stats["pending"] += 1
            stats["pending_total"] += quote_total(qt)
    return stats
