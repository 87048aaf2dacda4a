"""
Service Calculator Quote PDF Generator
======================================
Branded, paginated quote PDFs for a priced service selection.

Layout (A4 portrait, millimetres, 20 mm margins):
  - Header band: business name in the brand colour, "QUOTE", optional logo
  - Date / Quote # / Valid until (+30 days)
  - "Prepared For:" client block, absent fields skipped
  - Services table: brand-coloured header, shaded alternate rows,
    wrapped descriptions, indented add-ons
  - Subtotal / Tax / Total, then the contact + terms footer

One render produces one immutable QuoteDocument; download_pdf, get_pdf_blob
and get_pdf_data_url all read its bytes. The canvas runs in reportlab's
invariant mode, so the same inputs (timestamp and quote number included)
always give the same bytes.
"""

import base64
import io
import logging
import os
import re
from datetime import datetime
from typing import Optional

from reportlab.lib.colors import Color, HexColor
from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.lib.utils import ImageReader, simpleSplit
from reportlab.pdfgen import canvas

from service_calculator.core import config
from service_calculator.core.pricing import compute_totals, format_currency
from service_calculator.forms.quote_numbering import (
    VALID_DAYS, expiration_date, generate_quote_number, long_date,
)

log = logging.getLogger("svc_calc.quote_gen")

try:
    from service_calculator.core.paths import OUTPUT_DIR
except ImportError:
    OUTPUT_DIR = os.path.join(os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))), "output")

# ═══════════════════════════════════════════════════════════════════════════════
# COLORS
# ═══════════════════════════════════════════════════════════════════════════════

def _gray(level: int) -> Color:
    return Color(level / 255.0, level / 255.0, level / 255.0)

DEFAULT_BRAND = "#007da5"
WHITE     = HexColor("#FFFFFF")
TEXT      = _gray(60)     # body text
META      = _gray(80)     # date / quote # / valid until
LABEL     = _gray(100)    # "QUOTE", add-ons, contact line
TERMS     = _gray(120)    # footer boilerplate
RULE      = _gray(200)    # divider lines
ROW_SHADE = _gray(245)    # alternate row fill

_HEX_RE = re.compile(r"^#?([0-9a-f]{6})$", re.IGNORECASE)


def parse_brand_color(value) -> HexColor:
    """#rrggbb (leading # optional) or the default brand colour. Never raises."""
    m = _HEX_RE.match(str(value or "").strip())
    if not m:
        if value:
            log.debug("Brand color %r unparseable, using %s", value, DEFAULT_BRAND)
        return HexColor(DEFAULT_BRAND)
    return HexColor("#" + m.group(1))

# ═══════════════════════════════════════════════════════════════════════════════
# PAGE GEOMETRY (mm, measured from the top edge)
# ═══════════════════════════════════════════════════════════════════════════════

PAGE_W, PAGE_H = A4[0] / mm, A4[1] / mm     # 210 x 297
MARGIN      = 20
BREAK_AT    = PAGE_H - 40                    # rows may not extend past this
FOOTER_AT   = PAGE_H - 50                    # footer floor on the last page
CONTENT_W   = PAGE_W - 2 * MARGIN
DESC_W      = CONTENT_W - 40                 # description wrap width
LOGO_MAX_W  = 40
LOGO_MAX_H  = 20

TERMS_LINES = (
    f"This quote is valid for {VALID_DAYS} days from the date of issue.",
    "Please contact us to accept this quote or if you have any questions.",
)


def _fmt_rate(rate) -> str:
    return f"{float(rate):g}"


def _fmt_qty(qty) -> str:
    qty = float(qty or 0)
    if qty == int(qty):
        return str(int(qty))
    return f"{qty:.6f}".rstrip("0").rstrip(".")

# ═══════════════════════════════════════════════════════════════════════════════
# LOGO
# ═══════════════════════════════════════════════════════════════════════════════

def _describe_logo(ref) -> str:
    if isinstance(ref, (bytes, bytearray)):
        return f"<{len(ref)} bytes>"
    s = str(ref)
    return s[:40] + "..." if len(s) > 40 else s


def load_logo(ref) -> Optional[ImageReader]:
    """Open a logo from a file path, raw bytes or a base64 data: URI.

    Returns None (and logs) when the image can't be used; remote URLs are not
    fetched. A bad logo never fails the quote.
    """
    if not ref:
        return None
    try:
        if isinstance(ref, (bytes, bytearray)):
            source = io.BytesIO(bytes(ref))
        elif isinstance(ref, str) and ref.startswith("data:"):
            header, _, payload = ref.partition(",")
            if ";base64" not in header:
                raise ValueError("data URI is not base64 encoded")
            source = io.BytesIO(base64.b64decode(payload))
        elif isinstance(ref, str) and ref.lower().startswith(("http://", "https://")):
            raise ValueError("remote logo URLs are not fetched")
        elif isinstance(ref, str):
            if not os.path.isfile(ref):
                raise FileNotFoundError(ref)
            source = ref
        else:
            raise TypeError(f"unsupported logo reference {type(ref).__name__}")
        img = ImageReader(source)
        iw, ih = img.getSize()
        if not iw or not ih:
            raise ValueError("image has no size")
        # PIL decodes lazily; truncated pixel data only fails here
        img.getRGBData()
        return img
    except Exception as e:
        log.warning("Logo skipped (%s): %s", _describe_logo(ref), e)
        return None

# ═══════════════════════════════════════════════════════════════════════════════
# DOCUMENT + OUTPUT ADAPTERS
# ═══════════════════════════════════════════════════════════════════════════════

class QuoteDocument:
    """A finished quote PDF plus every text value drawn into it."""

    mime_type = "application/pdf"

    def __init__(self, pdf_bytes: bytes, page_count: int, fields: dict,
                 generated_at: datetime, filename: str):
        self.pdf_bytes = pdf_bytes
        self.page_count = page_count
        self.fields = fields
        self.generated_at = generated_at
        self.filename = filename

    @property
    def quote_number(self) -> str:
        return self.fields["quote_number"]

    def __repr__(self):
        return (f"<QuoteDocument {self.quote_number} pages={self.page_count} "
                f"bytes={len(self.pdf_bytes)}>")


def download_pdf(doc: QuoteDocument, filename: str = None) -> str:
    """Write the PDF to disk and return the path.

    Relative names land in OUTPUT_DIR. Write errors propagate.
    """
    filename = filename or doc.filename
    path = filename if os.path.isabs(filename) else os.path.join(OUTPUT_DIR, filename)
    with open(path, "wb") as f:
        f.write(doc.pdf_bytes)
    log.info("Quote %s saved to %s (%d bytes)", doc.quote_number, path, len(doc.pdf_bytes))
    return path


def get_pdf_blob(doc: QuoteDocument) -> bytes:
    """Raw PDF bytes, e.g. for an upload or an email attachment."""
    return doc.pdf_bytes


def get_pdf_data_url(doc: QuoteDocument) -> str:
    """data:application/pdf;base64,... for inline preview."""
    return f"data:{doc.mime_type};base64," + base64.b64encode(doc.pdf_bytes).decode("ascii")


_UNSAFE_FILENAME = re.compile(r'[\\/:*?"<>|]+')


def default_quote_filename(business: dict, client: dict = None, when: datetime = None) -> str:
    """{business}_{client or Customer}_{YYYY-MM-DD}.pdf"""
    when = when or datetime.now()
    biz = (business or {}).get("business_name") or "Quote"
    who = (client or {}).get("name") or "Customer"
    name = f"{biz}_{who}_{when:%Y-%m-%d}.pdf"
    return _UNSAFE_FILENAME.sub("-", name)

# ═══════════════════════════════════════════════════════════════════════════════
# MAIN PDF GENERATOR
# ═══════════════════════════════════════════════════════════════════════════════

def render_quote(
    business: dict,
    selection: list,
    breakdown: dict = None,
    client: dict = None,
    generated_at: datetime = None,
    quote_number: str = None,
    numbering: str = None,
    rng=None,
) -> QuoteDocument:
    """
    Render a quote PDF in memory.

    business keys: business_name, contact_email, contact_phone, brand_color
        (or primary_color), logo_url (path, bytes or data: URI)
    selection: [{service, quantity?, add_ons: [...]}, ...]
    breakdown: output of compute_totals(); computed here when omitted
    client keys: name?, email?, phone?

    Raises PricingError for unpriceable input before any output exists.
    """
    # ── Setup ──────────────────────────────────────────────────────────────────
    business = business or {}
    client = client or {}
    generated_at = generated_at or datetime.now()

    # Validates every price; the caller's breakdown (if any) supplies the totals
    priced = compute_totals(selection, (breakdown or {}).get("tax_rate", 0))
    breakdown = breakdown or priced

    if not quote_number:
        quote_number = generate_quote_number(
            generated_at, numbering or config.get_key("quote_numbering"), rng)

    brand = parse_brand_color(business.get("brand_color") or business.get("primary_color"))
    logo = load_logo(business.get("logo_url") or business.get("logo"))
    biz_name = business.get("business_name") or "Business Name"

    fields = {
        "business_name": biz_name,
        "title": "QUOTE",
        "date": f"Date: {long_date(generated_at)}",
        "quote_number": quote_number,
        "valid_until": f"Valid until: {long_date(expiration_date(generated_at))}",
        "client_lines": [client[k] for k in ("name", "email", "phone") if client.get(k)],
        "items": [],
        "totals": [],
        "contact": "",
        "terms": list(TERMS_LINES),
    }

    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=A4, invariant=1)
    c.setTitle(f"Quote {quote_number}")
    c.setAuthor(biz_name)
    c.setSubject(f"Quote for {client.get('name') or client.get('email') or 'client'}")
    c.setCreator("service-calculator")

    # top-origin mm -> reportlab points
    def Y(top_y):
        return (PAGE_H - top_y) * mm

    def text(x, yt, txt, font="Helvetica", size=10, color=TEXT, align="left"):
        c.setFont(font, size)
        c.setFillColor(color)
        s = str(txt) if txt else ""
        if align == "right":
            c.drawRightString(x * mm, Y(yt), s)
        elif align == "center":
            c.drawCentredString(x * mm, Y(yt), s)
        else:
            c.drawString(x * mm, Y(yt), s)

    def fill(x, yt, w, h, color):
        c.setFillColor(color)
        c.rect(x * mm, Y(yt + h), w * mm, h * mm, fill=1, stroke=0)

    def rule(x1, x2, yt):
        c.setStrokeColor(RULE)
        c.setLineWidth(0.2 * mm)
        c.line(x1 * mm, Y(yt), x2 * mm, Y(yt))

    pages = 1

    def new_page():
        nonlocal pages
        c.showPage()
        pages += 1
        return MARGIN

    right = PAGE_W - MARGIN

    # ══════════════════════════════════════════════════════════════════════════
    # HEADER
    # ══════════════════════════════════════════════════════════════════════════
    y = MARGIN
    text(MARGIN, y, biz_name, "Helvetica-Bold", 24, brand)

    if logo is not None:
        try:
            iw, ih = logo.getSize()
            scale = min(LOGO_MAX_W / iw, LOGO_MAX_H / ih)
            dw, dh = iw * scale, ih * scale
            top = MARGIN - 8
            c.drawImage(logo, (right - dw) * mm, Y(top + dh), dw * mm, dh * mm,
                        mask="auto", preserveAspectRatio=True)
        except Exception as e:
            log.warning("Logo draw failed, rendering without it: %s", e)

    y += 10
    text(MARGIN, y, "QUOTE", "Helvetica-Bold", 16, LABEL)
    y += 12

    # ── Metadata ──────────────────────────────────────────────────────────────
    text(MARGIN, y, fields["date"], size=10, color=META)
    y += 5
    text(MARGIN, y, f"Quote #: {quote_number}", size=10, color=META)
    y += 5
    text(MARGIN, y, fields["valid_until"], size=10, color=META)
    y += 12
    rule(MARGIN, right, y)
    y += 10

    # ── Prepared For ──────────────────────────────────────────────────────────
    text(MARGIN, y, "Prepared For:", "Helvetica-Bold", 12, TEXT)
    y += 6
    for line in fields["client_lines"]:
        text(MARGIN, y, line, size=10)
        y += 5
    y += 8

    # ══════════════════════════════════════════════════════════════════════════
    # SERVICES TABLE
    # ══════════════════════════════════════════════════════════════════════════
    text(MARGIN, y, "Services", "Helvetica-Bold", 12, TEXT)
    y += 8
    fill(MARGIN, y - 5, CONTENT_W, 8, brand)
    text(MARGIN + 2, y, "Service", "Helvetica-Bold", 10, WHITE)
    text(right - 30, y, "Price", "Helvetica-Bold", 10, WHITE)
    y += 8

    for idx, (entry, line) in enumerate(zip(selection or [], priced["lines"])):
        service = entry.get("service") or {}
        name = line["name"]
        if line["unit_based"]:
            name = (f"{name} ({_fmt_qty(line['quantity'])} {line['unit']} x "
                    f"{format_currency(line['unit_price'])})")
        desc = str(service.get("description") or "").strip()
        desc_lines = simpleSplit(desc, "Helvetica", 9, DESC_W * mm) if desc else []
        add_ons = line["add_ons"]

        # ── Block height: name, description, add-ons, trailing gap ────────────
        block_h = 4 + 4 * len(desc_lines) + 6
        if add_ons:
            block_h += 2 + 4 * len(add_ons)

        # ── Page break if the whole block won't fit ──────────────────────────
        if y - 5 + block_h > BREAK_AT and y - 5 > MARGIN:
            y = new_page() + 5

        shaded = idx % 2 == 0
        seg_top, left = y - 5, block_h

        def shade():
            if shaded:
                fill(MARGIN, seg_top, CONTENT_W, min(left, BREAK_AT - seg_top), ROW_SHADE)

        def continue_block(y):
            # Only blocks taller than a page get here: split at the break line
            nonlocal seg_top, left
            if y <= BREAK_AT:
                return y
            left -= (y - 5) - seg_top
            y = new_page() + 5
            seg_top = y - 5
            shade()
            return y

        shade()
        text(MARGIN + 2, y, name, "Helvetica-Bold", 10, TEXT)
        text(right - 2, y, format_currency(line["price"]), "Helvetica", 10, TEXT, "right")
        y += 4

        for dline in desc_lines:
            y = continue_block(y)
            text(MARGIN + 2, y, dline, "Helvetica", 9, TEXT)
            y += 4

        if add_ons:
            y += 2
            for ao in add_ons:
                y = continue_block(y)
                text(MARGIN + 4, y, f"+ {ao['name']}", "Helvetica", 9, LABEL)
                text(right - 2, y, format_currency(ao["price"]), "Helvetica", 9, LABEL, "right")
                y += 4
        y += 6

        fields["items"].append({
            "name": name,
            "price": format_currency(line["price"]),
            "description": desc_lines,
            "add_ons": [(f"+ {ao['name']}", format_currency(ao["price"])) for ao in add_ons],
            "page": pages,
        })

    # ══════════════════════════════════════════════════════════════════════════
    # TOTALS
    # ══════════════════════════════════════════════════════════════════════════
    tax = float(breakdown.get("tax") or 0)
    totals = [("Subtotal:", format_currency(breakdown.get("subtotal", 0)))]
    if tax > 0:
        totals.append((f"Tax ({_fmt_rate(breakdown.get('tax_rate', 0))}%):", format_currency(tax)))
    totals.append(("Total:", format_currency(breakdown.get("total", 0))))
    fields["totals"] = totals

    y += 5
    if y + 8 + 6 * len(totals) > BREAK_AT:
        y = new_page()

    label_x = right - 60
    rule(label_x, right, y)
    y += 8
    for label, value in totals:
        is_total = label == "Total:"
        font = "Helvetica-Bold" if is_total else "Helvetica"
        size = 12 if is_total else 10
        text(label_x, y, label, font, size, TEXT)
        text(right - 2, y, value, font, size, TEXT, "right")
        y += 15 if is_total else 6

    # ══════════════════════════════════════════════════════════════════════════
    # FOOTER
    # ══════════════════════════════════════════════════════════════════════════
    y = max(y, FOOTER_AT)
    if y + 17 > PAGE_H - 10:
        new_page()
        y = FOOTER_AT

    rule(MARGIN, right, y)
    y += 8
    contact = "  |  ".join(
        v for v in (business.get("contact_email"), business.get("contact_phone")) if v)
    fields["contact"] = contact
    if contact:
        text(PAGE_W / 2, y, contact, "Helvetica", 9, LABEL, "center")
        y += 5
    for tline in TERMS_LINES:
        text(PAGE_W / 2, y, tline, "Helvetica", 8, TERMS, "center")
        y += 4

    c.save()

    doc = QuoteDocument(
        pdf_bytes=buf.getvalue(),
        page_count=pages,
        fields=fields,
        generated_at=generated_at,
        filename=default_quote_filename(business, client, generated_at),
    )
    log.info("Quote %s generated: $%.2f total, %d items, %d pages",
             quote_number, float(breakdown.get("total", 0)), len(fields["items"]), pages,
             extra={"quote_number": quote_number, "business_id": business.get("id"),
                    "total": breakdown.get("total", 0), "items": len(fields["items"]),
                    "pages": pages})
    return doc


# ═══════════════════════════════════════════════════════════════════════════════
# SELF-TEST
# ═══════════════════════════════════════════════════════════════════════════════

if __name__ == "__main__":
    from service_calculator.seed_data import DEMO_BUSINESS, DEMO_SERVICES

    svc = {s["id"]: s for s in DEMO_SERVICES}
    sel = [
        {"service": svc["svc-1"], "add_ons": svc["svc-1"]["add_ons"][:2]},
        {"service": svc["svc-2"], "quantity": 1200, "add_ons": []},
        {"service": svc["svc-4"], "quantity": 3, "add_ons": []},
    ]
    bd = compute_totals(sel, 8.5)
    d = render_quote(DEMO_BUSINESS, sel, bd,
                     {"name": "John Smith", "email": "john@example.com"},
                     numbering="random")
    os.makedirs("/tmp/quotes", exist_ok=True)
    out = download_pdf(d, os.path.join("/tmp/quotes", d.filename))
    print(f"{d.quote_number}: ${bd['total']:,.2f}  pages={d.page_count}  -> {out}")
