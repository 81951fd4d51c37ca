"""
Paginated invoice layout.

Works from the stored settings, company and invoice records, never from
the live editor graph. The result is a list of pages holding
device-independent draw operations in top-left page coordinates; the PDF
backend turns them into real drawing calls.

Before the item table, the totals block and the footer the cursor is
checked against the reserved footer margin and a new page is started when
the section would not fit. Item rows are checked one by one and the table
header is repeated on every continuation page. "Page X of N" is stamped in
a last pass once the page count is known.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, List, Optional, Sequence, Tuple

from reportlab.lib.utils import simpleSplit

from .models import (
    PAGE_HEIGHT,
    PAGE_WIDTH,
    CircleElement,
    Element,
    ImageElement,
    LineElement,
    RectElement,
    SceneGraph,
    TextboxElement,
)
from .records import CompanyRecord, InvoiceRecord, LineItem, TemplateSettings
from .tax import InvoiceTotals, LineBreakdown, format_currency

MARGIN = 36
FOOTER_RESERVE = 48
CONTENT_WIDTH = PAGE_WIDTH - 2 * MARGIN
ACCENT_BAR_HEIGHT = 8

# Base-14 fonts only, so nothing has to be embedded
FONT_REGULAR = "Helvetica"
FONT_BOLD = "Helvetica-Bold"
FONT_MONO = "Courier"
FONT_MONO_BOLD = "Courier-Bold"
CURRENCY = "Rs. "

LINE_GAP = 1.4
ASCENT = 0.8
SECTION_GAP = 10
HEADER_PADDING = 12
LOGO_SIZE = 48
TITLE_HEIGHT = 24
TABLE_HEADER_HEIGHT = 20
ROW_PADDING = 5
ROW_LEADING = 10
MIN_ROW_HEIGHT = 20
TOTAL_LINE = 14
GRAND_TOTAL_HEIGHT = 24
SIGNATURE_WIDTH = 170

MUTED = "#6b7280"
ALT_ROW_FILL = "#f9fafb"
WORDS_BORDER = "#e5e7eb"


# ─────────────────────────────────────────────
# Draw operations
# ─────────────────────────────────────────────

@dataclass(frozen=True)
class TextOp:
    """``y`` is the baseline; ``x`` is the start, centre or end per ``align``."""
    x: float
    y: float
    text: str
    size: float = 9
    font: str = FONT_REGULAR
    color: Optional[str] = "#000000"
    align: str = "left"
    opacity: float = 1.0
    angle: float = 0
    pivot: Optional[Tuple[float, float]] = None


@dataclass(frozen=True)
class RectOp:
    x: float
    y: float
    width: float
    height: float
    fill: Optional[str] = None
    stroke: Optional[str] = None
    stroke_width: float = 1
    radius: float = 0
    opacity: float = 1.0
    angle: float = 0
    pivot: Optional[Tuple[float, float]] = None


@dataclass(frozen=True)
class CircleOp:
    cx: float
    cy: float
    radius: float
    fill: Optional[str] = None
    stroke: Optional[str] = None
    stroke_width: float = 1
    opacity: float = 1.0


@dataclass(frozen=True)
class LineOp:
    x1: float
    y1: float
    x2: float
    y2: float
    color: Optional[str] = "#000000"
    width: float = 1
    opacity: float = 1.0


@dataclass(frozen=True)
class ImageOp:
    x: float
    y: float
    width: float
    height: float
    src: str
    opacity: float = 1.0
    angle: float = 0
    pivot: Optional[Tuple[float, float]] = None


@dataclass
class Page:
    number: int
    ops: List[Any] = field(default_factory=list)

    def texts(self) -> List[str]:
        return [op.text for op in self.ops if isinstance(op, TextOp)]


@dataclass
class DocumentLayout:
    pages: List[Page]
    totals: Optional[InvoiceTotals] = None
    width: float = PAGE_WIDTH
    height: float = PAGE_HEIGHT

    @property
    def page_count(self) -> int:
        return len(self.pages)


# ─────────────────────────────────────────────
# Helpers
# ─────────────────────────────────────────────

def wrap_text(text: str, font: str, size: float, width: float) -> List[str]:
    lines: List[str] = []
    for paragraph in text.split("\n"):
        lines.extend(simpleSplit(paragraph, font, size, width) or [""])
    return lines


def money(value: Any) -> str:
    return format_currency(value, CURRENCY)


def plain_number(value: Decimal) -> str:
    """18 -> '18', 2.50 -> '2.5'."""
    return format(value.normalize(), "f")


Line = Tuple[str, float, bool]


# ─────────────────────────────────────────────
# Invoice layout
# ─────────────────────────────────────────────

@dataclass(frozen=True)
class Column:
    key: str
    title: str
    width: float
    align: str
    x: float = 0

    @property
    def anchor(self) -> float:
        if self.align == "center":
            return self.x + self.width / 2
        if self.align == "right":
            return self.x + self.width - 4
        return self.x + 4


class InvoiceLayout:
    def __init__(self, settings: TemplateSettings, company: CompanyRecord, invoice: InvoiceRecord):
        self.settings = settings
        self.company = company
        self.invoice = invoice
        self.totals = invoice.totals()
        self.bottom = PAGE_HEIGHT - FOOTER_RESERVE
        self.pages: List[Page] = []
        self.y = MARGIN
        self.columns = self._columns()

    # ------------------------------------------------------------------
    def build(self) -> DocumentLayout:
        self._new_page()
        self._header()
        self._parties()

        self._break_if_needed(TABLE_HEADER_HEIGHT + MIN_ROW_HEIGHT)
        self._table()

        self._break_if_needed(SECTION_GAP + self._totals_height())
        self._totals_block()

        self._break_if_needed(SECTION_GAP + self._footer_height())
        self._footer()

        self._number_pages()
        return DocumentLayout(pages=self.pages, totals=self.totals)

    # ------------------------------------------------------------------
    # Page handling
    # ------------------------------------------------------------------
    @property
    def page(self) -> Page:
        return self.pages[-1]

    def _add(self, op) -> None:
        self.page.ops.append(op)

    def _new_page(self) -> None:
        self.pages.append(Page(number=len(self.pages) + 1))
        accent = self.settings.accent_color
        self._add(RectOp(0, 0, PAGE_WIDTH, ACCENT_BAR_HEIGHT, fill=accent))
        self._add(RectOp(0, PAGE_HEIGHT - ACCENT_BAR_HEIGHT, PAGE_WIDTH, ACCENT_BAR_HEIGHT, fill=accent))
        self.y = MARGIN

    def _break_if_needed(self, needed: float) -> bool:
        if self.y + needed <= self.bottom:
            return False
        self._new_page()
        return True

    def _number_pages(self) -> None:
        total = len(self.pages)
        for page in self.pages:
            page.ops.append(TextOp(
                PAGE_WIDTH / 2, PAGE_HEIGHT - FOOTER_RESERVE / 2, f"Page {page.number} of {total}",
                size=8, color=MUTED, align="center",
            ))

    # ------------------------------------------------------------------
    # Text stacks
    # ------------------------------------------------------------------
    def _text(self, x: float, y: float, text: str, size: float = 9, bold: bool = False,
              color: Optional[str] = None, align: str = "left", mono: bool = False) -> None:
        if mono:
            font = FONT_MONO_BOLD if bold else FONT_MONO
        else:
            font = FONT_BOLD if bold else FONT_REGULAR
        self._add(TextOp(x, y, text, size=size, font=font,
                         color=color or self.settings.table_text_color, align=align))

    def _stack(self, x: float, top: float, lines: Sequence[Line], width: float, align: str = "left",
               color: Optional[str] = None, draw: bool = True) -> float:
        """Write ``lines`` downwards from ``top``; returns the cursor below them."""
        cursor = top
        for text, size, bold in lines:
            font = FONT_BOLD if bold else FONT_REGULAR
            for part in wrap_text(text, font, size, width):
                if draw and part:
                    self._text(x, cursor + size, part, size=size, bold=bold, color=color, align=align)
                cursor += size * LINE_GAP
        return cursor

    # ------------------------------------------------------------------
    # Header
    # ------------------------------------------------------------------
    def _header_lines(self) -> List[Line]:
        s, c = self.settings, self.company
        lines: List[Line] = [(c.name, 18, True)] if c.name else []
        lines += [(line, 9, False) for line in c.address_lines]

        if s.show_contact_header:
            parts = []
            if c.phone:
                parts.append("Phone: " + ", ".join(c.phone))
            if c.email:
                parts.append(f"Email: {c.email}")
            if c.website:
                parts.append(f"Web: {c.website}")
            if parts:
                lines.append(("  ".join(parts), 8, False))

        if s.show_gstin_header and c.gstin:
            gstin = f"GSTIN: {c.gstin}"
            if s.show_company_state and c.state:
                gstin += f"   |   State: {c.state}"
                if c.state_code:
                    gstin += f" ({c.state_code})"
            lines.append((gstin, 8, False))
        return lines

    def _header(self) -> None:
        s = self.settings
        lines = self._header_lines()
        logo = self.company.logo_url if s.show_logo else None
        text_width = CONTENT_WIDTH - 2 * (HEADER_PADDING + (LOGO_SIZE if logo else 0))

        height = self._stack(0, 0, lines, text_width, draw=False) + 2 * HEADER_PADDING
        if logo:
            height = max(height, LOGO_SIZE + 2 * HEADER_PADDING)

        self._add(RectOp(MARGIN, self.y, CONTENT_WIDTH, height, fill=s.primary_color))
        if logo:
            self._add(ImageOp(MARGIN + HEADER_PADDING, self.y + HEADER_PADDING, LOGO_SIZE, LOGO_SIZE, logo))
        self._stack(PAGE_WIDTH / 2, self.y + HEADER_PADDING, lines, text_width,
                    align="center", color=s.header_text_color)
        self.y += height

        if s.show_invoice_title and s.invoice_title:
            self._text(PAGE_WIDTH / 2, self.y + 17, s.invoice_title, size=13, bold=True,
                       color=s.accent_color, align="center")
            self.y += TITLE_HEIGHT

    # ------------------------------------------------------------------
    # Bill to / ship to / invoice details
    # ------------------------------------------------------------------
    def _bill_to_lines(self) -> List[Line]:
        s, inv = self.settings, self.invoice
        lines: List[Line] = [(s.bill_to_label, 9, True)]
        customer = inv.customer
        if customer is None:
            return lines
        lines.append((customer.name, 10, True))
        if inv.billing_address:
            lines += [(line, 8, False) for line in inv.billing_address.lines]
        if customer.gstin:
            lines.append((f"GSTIN: {customer.gstin}", 8, False))
        if customer.state:
            state = f"State: {customer.state}"
            if customer.state_code:
                state += f" ({customer.state_code})"
            lines.append((state, 8, False))
        if s.show_customer_phone and customer.phone:
            lines.append((f"Phone: {customer.phone}", 8, False))
        if s.show_customer_email and customer.email:
            lines.append((f"Email: {customer.email}", 8, False))
        return lines

    def _details_lines(self) -> List[Line]:
        inv = self.invoice
        lines: List[Line] = [
            (self.settings.invoice_details_label, 9, True),
            (f"Invoice No: {inv.invoice_no}", 8, False),
            (f"Date: {inv.date}", 8, False),
        ]
        if inv.e_way_bill_no:
            lines.append((f"e-Way Bill No: {inv.e_way_bill_no}", 8, False))
        if inv.supplier_invoice_no:
            lines.append((f"Supplier Invoice No: {inv.supplier_invoice_no}", 8, False))
        if inv.other_references:
            lines.append((f"Other References: {inv.other_references}", 8, False))
        return lines

    def _parties(self) -> None:
        s, inv = self.settings, self.invoice
        shipping = inv.shipping_address if s.show_shipping_address else None
        col_width = CONTENT_WIDTH / (3 if shipping else 2) - 8

        columns = [(MARGIN, "left", self._bill_to_lines())]
        if shipping:
            columns.append((MARGIN + CONTENT_WIDTH / 3, "left", [("Ship To", 9, True)] +
                            [(line, 8, False) for line in shipping.lines]))
        columns.append((PAGE_WIDTH - MARGIN, "right", self._details_lines()))

        top = self.y + SECTION_GAP
        end = top
        for x, align, lines in columns:
            end = max(end, self._stack(x, top, lines, col_width, align=align))
        self.y = end + SECTION_GAP / 2
        self._add(LineOp(MARGIN, self.y, PAGE_WIDTH - MARGIN, self.y, s.table_border_color, 0.5))
        self.y += SECTION_GAP

    # ------------------------------------------------------------------
    # Item table
    # ------------------------------------------------------------------
    def _columns(self) -> List[Column]:
        s = self.settings
        wanted = [("sl", "#", 24, "center"), ("description", "Description", 0, "left"),
                  ("qty", "Qty", 40, "center")]
        if s.show_unit_column:
            wanted.append(("unit", "Unit", 40, "center"))
        wanted.append(("rate", "Rate", 64, "right"))
        if s.show_discount_column:
            wanted.append(("discount", "Disc", 40, "center"))
        if s.show_gst:
            wanted += [("gst_percent", "GST %", 40, "center"), ("gst_amount", "GST", 60, "right")]
        wanted.append(("amount", "Amount", 72, "right"))

        fixed = sum(width for _key, _title, width, _align in wanted)
        columns, x = [], MARGIN
        for key, title, width, align in wanted:
            width = width or CONTENT_WIDTH - fixed
            columns.append(Column(key, title, width, align, x))
            x += width
        return columns

    @property
    def description_column(self) -> Column:
        return next(col for col in self.columns if col.key == "description")

    def _table_header(self) -> None:
        s = self.settings
        self._add(RectOp(MARGIN, self.y, CONTENT_WIDTH, TABLE_HEADER_HEIGHT, fill=s.table_header_bg))
        for col in self.columns:
            self._text(col.anchor, self.y + 13, col.title, size=8, bold=True,
                       color=s.table_header_text, align=col.align)
        self.y += TABLE_HEADER_HEIGHT

    def _description_lines(self, item: LineItem) -> List[Tuple[str, float]]:
        width = self.description_column.width - 8
        lines = [(part, 8) for part in wrap_text(item.description, FONT_REGULAR, 8, width)]
        if item.brand:
            lines += [(part, 7) for part in wrap_text(f"Brand: {item.brand}", FONT_REGULAR, 7, width)]
        if self.settings.show_serial_numbers and item.serial_numbers:
            serials = "S/N: " + ", ".join(item.serial_numbers)
            lines += [(part, 7) for part in wrap_text(serials, FONT_REGULAR, 7, width)]
        return lines

    def _cells(self, item: LineItem, line: LineBreakdown) -> dict:
        return {
            "sl": str(item.sl_no),
            "qty": plain_number(line.quantity),
            "unit": item.unit,
            "rate": money(line.rate),
            "discount": f"{plain_number(line.discount_percent)}%" if line.discount_percent > 0 else "-",
            "gst_percent": f"{plain_number(line.gst_percent)}%",
            "gst_amount": money(line.gst_amount),
            "amount": money(line.amount),
        }

    def _table(self) -> None:
        s = self.settings
        self._table_header()
        for idx, (item, line) in enumerate(zip(self.invoice.items, self.totals.lines)):
            description = self._description_lines(item)
            height = max(MIN_ROW_HEIGHT, len(description) * ROW_LEADING + 2 * ROW_PADDING)
            if self.y + height > self.bottom:
                self._new_page()
                self._table_header()

            if idx % 2 == 1:
                self._add(RectOp(MARGIN, self.y, CONTENT_WIDTH, height, fill=ALT_ROW_FILL))

            baseline = self.y + ROW_PADDING + 8
            cells = self._cells(item, line)
            for col in self.columns:
                if col.key == "description":
                    cursor = baseline
                    for text, size in description:
                        self._text(col.anchor, cursor, text, size=size,
                                   color=s.table_text_color if size == 8 else MUTED)
                        cursor += ROW_LEADING
                else:
                    self._text(col.anchor, baseline, cells[col.key], size=8, align=col.align,
                               mono=col.key not in ("sl", "unit"), bold=col.key == "amount")

            self.y += height
            self._add(LineOp(MARGIN, self.y, PAGE_WIDTH - MARGIN, self.y, s.table_border_color, 0.5))

    # ------------------------------------------------------------------
    # Totals
    # ------------------------------------------------------------------
    def _totals_rows(self) -> List[Tuple[str, str]]:
        t = self.totals
        rows = [("Subtotal", money(t.subtotal))]
        if t.discount_amount > 0:
            rows.append((f"Discount ({plain_number(t.discount_percent)}%)", "-" + money(t.discount_amount)))
        if self.settings.show_gst:
            rows.append(("Taxable Amount", money(t.taxable_amount)))
            rates = ", ".join(f"{plain_number(rate)}%" for rate in t.gst_rates) or "0%"
            rows.append((f"GST ({rates})", money(t.tax_amount)))
        if t.round_off != 0:
            sign = "+" if t.round_off > 0 else ""
            rows.append(("Round Off", f"{sign}{t.round_off:.2f}"))
        return rows

    @property
    def _totals_x(self) -> float:
        return PAGE_WIDTH - MARGIN - 200

    def _words_lines(self) -> List[str]:
        width = self._totals_x - MARGIN - 36
        return wrap_text(self.totals.amount_in_words, FONT_REGULAR, 8, width)

    def _words_height(self) -> float:
        if not self.settings.show_amount_words:
            return 0
        return 20 + len(self._words_lines()) * 11

    def _totals_height(self) -> float:
        column = len(self._totals_rows()) * TOTAL_LINE + 4 + GRAND_TOTAL_HEIGHT
        return max(column, self._words_height())

    def _totals_block(self) -> None:
        s, t = self.settings, self.totals
        self.y += SECTION_GAP
        top = self.y
        label_x = self._totals_x
        value_x = PAGE_WIDTH - MARGIN - 6

        cursor = top
        for label, value in self._totals_rows():
            cursor += TOTAL_LINE
            self._text(label_x, cursor - 4, label, color=MUTED)
            self._text(value_x, cursor - 4, value, mono=True, align="right")
        cursor += 4

        self._add(RectOp(label_x - 8, cursor, PAGE_WIDTH - MARGIN - label_x + 8, GRAND_TOTAL_HEIGHT,
                         fill=s.grand_total_bg))
        self._text(label_x, cursor + 16, "Grand Total", size=10, bold=True, color=s.grand_total_text)
        self._text(value_x, cursor + 16, money(t.grand_total), size=10, bold=True, mono=True,
                   color=s.grand_total_text, align="right")
        cursor += GRAND_TOTAL_HEIGHT

        if s.show_amount_words:
            box_width = label_x - MARGIN - 24
            self._add(RectOp(MARGIN, top, box_width, self._words_height(), fill=ALT_ROW_FILL,
                             stroke=WORDS_BORDER))
            self._text(MARGIN + 6, top + 13, "Amount in Words", size=8, bold=True)
            line_y = top + 24
            for part in self._words_lines():
                self._text(MARGIN + 6, line_y, part, size=8, color=s.secondary_color)
                line_y += 11
            cursor = max(cursor, top + self._words_height())

        self.y = cursor

    # ------------------------------------------------------------------
    # Footer
    # ------------------------------------------------------------------
    def _footer_lines(self) -> List[Line]:
        s = self.settings
        lines: List[Line] = []
        if s.show_terms:
            terms = [t for t in s.terms_lines if t]
            if terms:
                lines.append(("Terms & Conditions", 8, True))
                lines += [(f"{i}. {t}", 7, False) for i, t in enumerate(terms, start=1)]
        if s.bank_name:
            lines.append(("Bank Details", 8, True))
            lines.append((f"Bank: {s.bank_name}", 7, False))
            if s.bank_account_no:
                lines.append((f"A/C: {s.bank_account_no}", 7, False))
            if s.bank_ifsc:
                lines.append((f"IFSC: {s.bank_ifsc}", 7, False))
            if s.bank_branch:
                lines.append((f"Branch: {s.bank_branch}", 7, False))
        if s.custom_footer_text:
            lines.append((s.custom_footer_text, 7, False))
        return lines

    def _signature_lines(self) -> List[Line]:
        if not self.settings.show_signature:
            return []
        return [(f"for {self.company.name}", 9, True), ("", 9, False), ("", 9, False),
                ("________________________", 8, False), ("Authorised Signatory", 8, False)]

    @property
    def _footer_text_width(self) -> float:
        return CONTENT_WIDTH - SIGNATURE_WIDTH - 12

    def _footer_height(self) -> float:
        left = self._stack(0, 0, self._footer_lines(), self._footer_text_width, draw=False)
        right = self._stack(0, 0, self._signature_lines(), SIGNATURE_WIDTH, draw=False)
        return SECTION_GAP + max(left, right)

    def _footer(self) -> None:
        s = self.settings
        self.y += SECTION_GAP
        self._add(LineOp(MARGIN, self.y, PAGE_WIDTH - MARGIN, self.y, s.table_border_color, 0.5))
        top = self.y + SECTION_GAP
        left = self._stack(MARGIN, top, self._footer_lines(), self._footer_text_width, color=s.secondary_color)
        right = self._stack(PAGE_WIDTH - MARGIN - SIGNATURE_WIDTH / 2, top, self._signature_lines(),
                            SIGNATURE_WIDTH, align="center")
        self.y = max(left, right)


def layout_invoice(settings: TemplateSettings, company: CompanyRecord, invoice: InvoiceRecord) -> DocumentLayout:
    return InvoiceLayout(settings, company, invoice).build()


# ─────────────────────────────────────────────
# Saved scene graph as a single page
# ─────────────────────────────────────────────

def _scene_font(element: TextboxElement) -> str:
    weight = element.font_weight
    bold = weight == "bold" or (isinstance(weight, int) and weight >= 600) or weight in ("600", "700", "800", "900")
    if "mono" in element.font_family.lower():
        return FONT_MONO_BOLD if bold else FONT_MONO
    return FONT_BOLD if bold else FONT_REGULAR


def element_ops(element: Element) -> List[Any]:
    sx, sy = element.scale_x, element.scale_y
    pivot = (element.left, element.top)

    if isinstance(element, RectElement):
        return [RectOp(element.left, element.top, element.width * sx, element.height * sy,
                       fill=element.fill, stroke=element.stroke,
                       stroke_width=element.stroke_width if element.stroke else 0,
                       radius=element.rx * sx, opacity=element.opacity, angle=element.angle, pivot=pivot)]

    if isinstance(element, CircleElement):
        return [CircleOp(element.left + element.radius * sx, element.top + element.radius * sy,
                         element.radius * sx, fill=element.fill, stroke=element.stroke,
                         stroke_width=element.stroke_width if element.stroke else 0,
                         opacity=element.opacity)]

    if isinstance(element, LineElement):
        return [LineOp(element.x1, element.y1, element.x2, element.y2, element.stroke,
                       element.stroke_width, opacity=element.opacity)]

    if isinstance(element, ImageElement):
        return [ImageOp(element.left, element.top, element.width * sx, element.height * sy, element.src,
                        opacity=element.opacity, angle=element.angle, pivot=pivot)]

    if isinstance(element, TextboxElement):
        font = _scene_font(element)
        size = element.font_size * sy
        width = element.width * sx
        if element.text_align == "center":
            x = element.left + width / 2
        elif element.text_align == "right":
            x = element.left + width
        else:
            x = element.left
        ops = []
        for idx, part in enumerate(wrap_text(element.text, font, size, max(width, size))):
            baseline = element.top + size * ASCENT + idx * size * element.line_height
            ops.append(TextOp(x, baseline, part, size=size, font=font, color=element.fill,
                              align=element.text_align, opacity=element.opacity,
                              angle=element.angle, pivot=pivot))
        return ops

    return []


def scene_page(graph: SceneGraph) -> Page:
    page = Page(number=1)
    if graph.background:
        page.ops.append(RectOp(0, 0, graph.width, graph.height, fill=graph.background, stroke_width=0))
    for element in graph:
        page.ops.extend(element_ops(element))
    return page


def scene_layout(graph: SceneGraph) -> DocumentLayout:
    return DocumentLayout(pages=[scene_page(graph)], width=graph.width, height=graph.height)
