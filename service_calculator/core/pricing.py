"""
service_calculator/core/pricing.py - Price aggregation for a service selection

Turns a selection (services + chosen add-ons + unit quantities) into a
PriceBreakdown dict: {subtotal, tax_rate, tax, total, lines}.

Rules:
  - Flat services contribute base_price once.
  - Unit-based services (hourly model, or a price_unit other than "job")
    contribute base_price * quantity.
  - Add-ons are summed verbatim; quantity never applies to them.
  - tax = subtotal * rate / 100, total = subtotal + tax. No rounding here;
    rounding is a display concern.

Every function is pure: inputs are never mutated and a fresh dict/list is
returned, so one breakdown can be shared by the renderer and the quote record.
"""

import logging
import math

log = logging.getLogger("svc_calc.pricing")

PRICING_MODELS = ("fixed", "hourly", "range", "custom")
FLAT_UNITS = ("", "job", "flat")


class PricingError(ValueError):
    """Selection or tax input that cannot be priced."""


# ═══════════════════════════════════════════════════════════════════════════════
# INPUT COERCION
# ═══════════════════════════════════════════════════════════════════════════════

def _price(value, what: str) -> float:
    """Parse a catalog price. Non-numeric or negative prices are invalid input."""
    if isinstance(value, bool):
        raise PricingError(f"{what} must be a number, got {value!r}")
    try:
        price = float(value)
    except (TypeError, ValueError):
        raise PricingError(f"{what} must be a number, got {value!r}")
    if math.isnan(price) or math.isinf(price):
        raise PricingError(f"{what} must be a finite number, got {value!r}")
    if price < 0:
        raise PricingError(f"{what} cannot be negative ({price})")
    return price


def _quantity(value, service_name: str, strict: bool) -> float:
    """Parse a unit quantity. Permissive mode maps bad input to 0."""
    try:
        qty = float(value)
        if math.isnan(qty) or math.isinf(qty):
            raise ValueError(value)
    except (TypeError, ValueError):
        if strict:
            raise PricingError(f"Quantity for '{service_name}' must be a number, got {value!r}")
        return 0.0
    if qty < 0:
        if strict:
            raise PricingError(f"Quantity for '{service_name}' cannot be negative ({qty})")
        return 0.0
    return qty


def _tax_rate(value) -> float:
    if value is None or value == "":
        return 0.0
    try:
        rate = float(value)
    except (TypeError, ValueError):
        raise PricingError(f"Tax rate must be a number, got {value!r}")
    if math.isnan(rate) or rate < 0:
        raise PricingError(f"Tax rate cannot be negative ({value})")
    return rate


def entry_add_ons(entry: dict) -> list:
    """Chosen add-ons of a selection entry (accepts the camelCase alias)."""
    return list(entry.get("add_ons", entry.get("addOns")) or [])


# ═══════════════════════════════════════════════════════════════════════════════
# LINE PRICING
# ═══════════════════════════════════════════════════════════════════════════════

def requires_quantity(service: dict) -> bool:
    """True when the service is priced per unit (hour, sqft, tv, ...)."""
    if (service.get("pricing_model") or "fixed") == "hourly":
        return True
    unit = str(service.get("price_unit") or "").strip().lower()
    return unit not in FLAT_UNITS


def line_price(entry: dict, strict: bool = False) -> float:
    """Effective price of the service part of one selection entry.

    Range services quote their minimum (base_price); custom services quote
    whatever base_price the business recorded.
    """
    service = entry.get("service") or {}
    name = service.get("name", "?")
    base = _price(service.get("base_price", 0), f"Price of '{name}'")
    if not requires_quantity(service):
        return base
    return base * _quantity(entry.get("quantity"), name, strict)


def compute_totals(selection: list, tax_rate=0, strict: bool = False) -> dict:
    """Aggregate a selection into a PriceBreakdown.

    Args:
        selection: [{service, quantity?, add_ons: [...]}, ...]
        tax_rate: percent (8.5 means 8.5%); None means 0
        strict: reject missing/invalid quantities instead of pricing them at 0

    Returns:
        {"subtotal", "tax_rate", "tax", "total", "lines": [...]}
    """
    rate = _tax_rate(tax_rate)
    lines = []
    subtotal = 0.0

    for entry in selection or []:
        service = entry.get("service") or {}
        name = service.get("name", "?")
        unit_based = requires_quantity(service)
        price = line_price(entry, strict=strict)

        add_ons = []
        for add_on in entry_add_ons(entry):
            ao_price = _price(add_on.get("price", 0),
                              f"Price of add-on '{add_on.get('name', '?')}'")
            add_ons.append({"id": add_on.get("id"), "name": add_on.get("name", ""),
                            "price": ao_price})
            subtotal += ao_price

        subtotal += price
        lines.append({
            "service_id": service.get("id"),
            "name": name,
            "unit_based": unit_based,
            "quantity": _quantity(entry.get("quantity"), name, False) if unit_based else None,
            "unit": service.get("price_unit") or ("hour" if unit_based else "job"),
            "unit_price": float(service.get("base_price") or 0),
            "price": price,
            "add_ons": add_ons,
        })

    tax = subtotal * rate / 100 if rate else 0.0
    breakdown = {
        "subtotal": subtotal,
        "tax_rate": rate,
        "tax": tax,
        "total": subtotal + tax,
        "lines": lines,
    }
    log.debug("Priced %d entries: subtotal=%.2f tax=%.2f total=%.2f",
              len(lines), subtotal, tax, breakdown["total"])
    return breakdown


# ═══════════════════════════════════════════════════════════════════════════════
# SELECTION EDITING: every helper returns a new list
# ═══════════════════════════════════════════════════════════════════════════════

def _copy_entry(entry: dict) -> dict:
    new = dict(entry)
    new["add_ons"] = entry_add_ons(entry)
    new.pop("addOns", None)
    return new


def toggle_service(selection: list, service: dict) -> list:
    """Select a service (with no add-ons) or deselect it along with its add-ons."""
    sid = service.get("id")
    if any((e.get("service") or {}).get("id") == sid for e in selection):
        return [_copy_entry(e) for e in selection if (e.get("service") or {}).get("id") != sid]
    entry = {"service": service, "add_ons": []}
    if requires_quantity(service):
        entry["quantity"] = 1
    return [_copy_entry(e) for e in selection] + [entry]


def toggle_add_on(selection: list, service_id, add_on: dict) -> list:
    """Add or remove one add-on on the entry of `service_id`."""
    result = []
    for entry in selection:
        new = _copy_entry(entry)
        if (entry.get("service") or {}).get("id") == service_id:
            chosen = new["add_ons"]
            if any(a.get("id") == add_on.get("id") for a in chosen):
                new["add_ons"] = [a for a in chosen if a.get("id") != add_on.get("id")]
            else:
                new["add_ons"] = chosen + [add_on]
        result.append(new)
    return result


def set_quantity(selection: list, service_id, quantity) -> list:
    result = []
    for entry in selection:
        new = _copy_entry(entry)
        if (entry.get("service") or {}).get("id") == service_id:
            new["quantity"] = quantity
        result.append(new)
    return result


# ═══════════════════════════════════════════════════════════════════════════════
# DISPLAY
# ═══════════════════════════════════════════════════════════════════════════════

def format_currency(value) -> str:
    """$1,234.50"""
    return f"${float(value or 0):,.2f}"


def _short_price(value) -> str:
    value = float(value or 0)
    if value == int(value):
        return f"${int(value):,}"
    return f"${value:,.2f}"


def price_display(service: dict) -> str:
    """Catalog price label: $120, $0.15 / sqft, $45/hour, $100 - $200, Custom pricing."""
    model = service.get("pricing_model") or "fixed"
    base = service.get("base_price", 0)
    if model == "custom":
        return "Custom pricing"
    if model == "range":
        if service.get("price_max") is None:
            return f"Starting at {_short_price(base)}"
        return f"{_short_price(base)} - {_short_price(service['price_max'])}"
    unit = str(service.get("price_unit") or "").strip().lower()
    if unit not in FLAT_UNITS:
        return f"{_short_price(base)} / {unit}"
    if model == "hourly":
        return f"{_short_price(base)}/hour"
    return _short_price(base)
