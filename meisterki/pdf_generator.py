"""
PDF Offer Generator.

Renders an Offer as an A4 document. Uses fpdf2 (pure Python, no system
dependencies).

Sections, top to bottom:
1. Title + company block
2. Customer + project
3. Items table
4. Totals (subtotal, margin, net, tax, grand total)
5. Notes + footer line

Money is always printed with exactly 2 decimals, matching the engine's
rounding. Values are read from the Offer; nothing is recalculated here.
"""

import logging
import re
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Tuple

from fpdf import FPDF

from .config import settings
from .money import format_amount, format_number
from .offer_engine import effective_rates
from .schemas import Offer, Trade

logger = logging.getLogger(__name__)

TRADE_NAMES = {
    Trade.PAINTING: "Painting",
    Trade.ELECTRICAL: "Electrical",
    Trade.PLUMBING: "Plumbing",
    Trade.FLOORING: "Flooring",
    Trade.ROOFING: "Roofing",
}

_SAFE_ID = re.compile(r"^[A-Za-z0-9_-]+$")

FOOTER_NOTE = "This offer was generated automatically with MeisterKI."


def _safe(text: str) -> str:
    """Replace Unicode chars that can't be rendered by built-in PDF fonts (latin-1)."""
    if not text:
        return ""
    return (
        text
        .replace("€", "EUR")  # euro sign
        .replace("•", "-")    # bullet
        .replace("—", " - ")  # em dash
        .replace("–", "-")    # en dash
        .replace("“", '"')    # left double quote
        .replace("”", '"')    # right double quote
        .replace("‘", "'")    # left single quote
        .replace("’", "'")    # right single quote
        .encode("latin-1", errors="replace")
        .decode("latin-1")
    )


def _fmt_date(created_at: str) -> str:
    try:
        dt = datetime.fromisoformat(created_at.replace("Z", "+00:00"))
        return dt.strftime("%d.%m.%Y")
    except (ValueError, AttributeError):
        return created_at or ""


class OfferPDF(FPDF):
    """Custom PDF class for offer documents."""

    def __init__(self, company_name=""):
        super().__init__(format="A4")
        self.company_name = company_name
        self.set_auto_page_break(auto=True, margin=20)

    def header(self):
        pass  # Title block is drawn on the first page only

    def footer(self):
        self.set_y(-15)
        self.set_font("Helvetica", "I", 8)
        self.set_text_color(150, 150, 150)
        self.cell(0, 10, f"Page {self.page_no()}/{{nb}}", align="C")

    def section_header(self, title):
        """Render a section header bar."""
        self.set_font("Helvetica", "B", 11)
        self.set_fill_color(45, 55, 72)
        self.set_text_color(255, 255, 255)
        self.cell(0, 8, f"  {title}", fill=True, new_x="LMARGIN", new_y="NEXT")
        self.set_text_color(0, 0, 0)
        self.ln(2)

    def table_header(self, cols):
        """Render a table header row. cols: [(label, width), ...]"""
        self.set_font("Helvetica", "B", 8)
        self.set_fill_color(240, 240, 240)
        for label, width in cols:
            align = "L" if label == "Description" else "R"
            self.cell(width, 6, label, border="B", fill=True, align=align)
        self.ln()

    def table_row(self, values, widths):
        """Render a table data row. First column left, the rest right-aligned."""
        self.set_font("Helvetica", "", 8)
        for i, (val, width) in enumerate(zip(values, widths)):
            self.cell(width, 5.5, str(val), align="L" if i == 0 else "R")
        self.ln()

    def total_row(self, label, amount_text):
        self.set_font("Helvetica", "", 10)
        self.cell(130, 6, label, align="R")
        self.cell(60, 6, amount_text, align="R")
        self.ln()


def totals_rows(offer: Offer) -> List[Tuple[str, str]]:
    """Label and amount text for each line of the totals block, above the grand total."""
    currency = offer.currency
    margin_pct, tax_pct = effective_rates(offer.input)
    return [
        ("Subtotal", format_amount(offer.subtotal, currency)),
        (f"Margin ({format_number(margin_pct)}%)", format_amount(offer.margin, currency)),
        ("Total (net)", format_amount(offer.total_before_tax, currency)),
        (f"VAT ({format_number(tax_pct)}%)", format_amount(offer.tax, currency)),
    ]


def generate_offer_pdf(offer: Offer) -> bytes:
    """
    Generate a PDF offer document.

    Args:
        offer: Offer as returned by the engine (or re-validated from JSON)

    Returns:
        PDF bytes
    """
    offer_input = offer.input
    company = offer_input.company
    customer = offer_input.customer
    project = offer_input.project
    currency = offer.currency

    pdf = OfferPDF(company_name=company.name)
    pdf.alias_nb_pages()
    pdf.add_page()
    pw = pdf.w - pdf.l_margin - pdf.r_margin  # printable width

    # ── Title + company ──
    pdf.set_font("Helvetica", "B", 20)
    pdf.cell(0, 10, "OFFER", align="R", new_x="LMARGIN", new_y="NEXT")

    pdf.set_font("Helvetica", "B", 12)
    pdf.cell(0, 6, _safe(company.name), new_x="LMARGIN", new_y="NEXT")
    pdf.set_font("Helvetica", "", 9)
    pdf.set_text_color(100, 100, 100)
    for line in (company.address, company.email, company.phone):
        if line:
            pdf.cell(0, 4.5, _safe(line), new_x="LMARGIN", new_y="NEXT")
    pdf.set_text_color(0, 0, 0)
    pdf.ln(4)

    pdf.set_font("Helvetica", "", 10)
    pdf.cell(0, 5, f"Offer no.: {_safe(offer.id)}", new_x="LMARGIN", new_y="NEXT")
    pdf.cell(0, 5, f"Date: {_fmt_date(offer.created_at)}", new_x="LMARGIN", new_y="NEXT")
    pdf.cell(0, 5, f"Trade: {TRADE_NAMES.get(offer_input.trade, offer_input.trade.value)}",
             new_x="LMARGIN", new_y="NEXT")
    pdf.ln(4)

    # ── Customer + project ──
    pdf.set_font("Helvetica", "B", 10)
    pdf.cell(0, 5, f"Customer: {_safe(customer.name)}", new_x="LMARGIN", new_y="NEXT")
    pdf.set_font("Helvetica", "", 9)
    if customer.address:
        pdf.cell(0, 4.5, _safe(customer.address), new_x="LMARGIN", new_y="NEXT")
    pdf.ln(2)

    pdf.set_font("Helvetica", "B", 10)
    pdf.cell(0, 5, f"Project: {_safe(project.title)}", new_x="LMARGIN", new_y="NEXT")
    if project.description:
        pdf.set_font("Helvetica", "", 9)
        pdf.multi_cell(pw, 4.5, _safe(project.description), new_x="LMARGIN", new_y="NEXT")
    pdf.ln(4)

    # ── Items ──
    pdf.section_header("ITEMS")
    cols = [("Description", 90), ("Qty", 20), ("Unit", 20), ("Price", 30), ("Total", 30)]
    widths = [c[1] for c in cols]
    pdf.table_header(cols)

    for item in offer.items:
        desc = item.description if len(item.description) <= 60 else item.description[:57] + "..."
        pdf.table_row(
            [
                _safe(desc),
                format_number(item.quantity),
                _safe(item.unit),
                format_amount(item.unit_price, currency),
                format_amount(item.total, currency),
            ],
            widths,
        )
    if not offer.items:
        pdf.set_font("Helvetica", "I", 8)
        pdf.cell(0, 5.5, "No items", new_x="LMARGIN", new_y="NEXT")
    pdf.ln(4)

    # ── Totals ──
    pdf.section_header("TOTAL")
    for label, amount_text in totals_rows(offer):
        pdf.total_row(label, amount_text)

    pdf.ln(1)
    pdf.set_fill_color(45, 55, 72)
    pdf.set_text_color(255, 255, 255)
    pdf.set_font("Helvetica", "B", 13)
    pdf.cell(130, 10, "  GRAND TOTAL", fill=True)
    pdf.cell(60, 10, f"{format_amount(offer.total, currency)}  ", fill=True, align="R")
    pdf.set_text_color(0, 0, 0)
    pdf.ln(14)

    # ── Notes + footer ──
    if project.notes:
        pdf.section_header("NOTES")
        pdf.set_font("Helvetica", "", 9)
        pdf.multi_cell(pw, 4.5, _safe(project.notes), new_x="LMARGIN", new_y="NEXT")
        pdf.ln(4)

    pdf.set_font("Helvetica", "I", 8)
    pdf.set_text_color(100, 100, 100)
    pdf.cell(pw, 4, FOOTER_NOTE, new_x="LMARGIN", new_y="NEXT")
    pdf.set_text_color(0, 0, 0)

    return bytes(pdf.output())


def export_offer_to_pdf(offer: Offer, directory: Optional[Path] = None) -> Path:
    """Write <directory>/<offer id>.pdf and return its path."""
    if not _SAFE_ID.match(offer.id):
        raise ValueError(f"Offer id not usable as a file name: {offer.id!r}")
    target_dir = Path(directory or settings.GENERATED_DIR)
    target_dir.mkdir(parents=True, exist_ok=True)
    file_path = target_dir / f"{offer.id}.pdf"
    file_path.write_bytes(generate_offer_pdf(offer))
    logger.info("Exported offer %s to %s", offer.id, file_path)
    return file_path
