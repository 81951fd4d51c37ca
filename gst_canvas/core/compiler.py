"""
Template compiler: settings + company -> positioned scene graph.

The output is a layout preview. It always carries the same placeholder
customer, two sample rows and sample totals; real invoice data is only
ever placed by the document layout. Band heights and column offsets are
fixed here, settings only drive colors, fonts, text and visibility.
"""

from __future__ import annotations

from typing import Any, Optional

from .models import (
    DEFAULT_BACKGROUND,
    FORMAT_VERSION,
    PAGE_HEIGHT,
    PAGE_WIDTH,
    RectElement,
    SceneGraph,
    TextboxElement,
)
from .records import CompanyRecord, TemplateSettings

# Band geometry
ACCENT_BAR_HEIGHT = 8
HEADER_HEIGHT = 160
CUSTOMER_SECTION_HEIGHT = 80
TABLE_HEADER_HEIGHT = 24
ROW_HEIGHT = 36
FOOTER_MARGIN = 8
TERMS_BLOCK_HEIGHT = 60

# Header content offsets inside the band, (with logo, without logo)
COMPANY_NAME_OFFSET = (62, 16)
COMPANY_ADDRESS_OFFSET = (86, 40)
CONTACT_OFFSET = (102, 56)
GSTIN_OFFSET = (118, 72)
INVOICE_TITLE_OFFSET = 138

TOTALS_COLUMN_X = 400
VALUES_COLUMN_X = 510

PLACEHOLDER_COMPANY = "YOUR COMPANY NAME"
PLACEHOLDER_ADDRESS = "123 Business Street, City, State 123456"
PLACEHOLDER_CONTACT = "📞 +91 12345 67890  ✉ email@company.com  🌐 www.company.com"
PLACEHOLDER_GSTIN = "GSTIN: 29ABCDE1234F1ZH"
PLACEHOLDER_STATE = "   |   State: Karnataka (29)"
TABLE_HEADER_LABELS = (
    "SL        PRODUCT                                          QTY          RATE              TOTAL"
)

SAMPLE_ROWS = (
    {"sl": "1", "product": "Sample Product A\n  High quality product", "qty": "2", "rate": "₹1,500", "total": "₹3,000"},
    {"sl": "2", "product": "Sample Product B\n  Premium edition", "qty": "1", "rate": "₹2,500", "total": "₹2,500"},
)

ALT_ROW_FILL = "#f9fafb"
MUTED_TEXT = "#6b7280"
WORDS_BORDER = "#e5e7eb"


def _rect(element_id: str, name: str, left: float, top: float, width: float, height: float,
          fill: Optional[str], **extra: Any) -> RectElement:
    return RectElement(
        id=element_id, name=name, left=left, top=top,
        width=width, height=height, fill=fill, **extra,
    )


def _text(element_id: str, name: str, left: float, top: float, width: float, text: str,
          **extra: Any) -> TextboxElement:
    return TextboxElement(
        id=element_id, name=name, left=left, top=top, width=width, text=text, **extra,
    )


def compile_template(settings: TemplateSettings, company: Optional[CompanyRecord] = None) -> SceneGraph:
    """Lay out header, customer block, item table, totals and footer top to bottom."""
    graph = SceneGraph(PAGE_WIDTH, PAGE_HEIGHT, background=DEFAULT_BACKGROUND, version=FORMAT_VERSION)
    add = graph.append
    company_name = (company.name if company else "") or PLACEHOLDER_COMPANY
    W, H = PAGE_WIDTH, PAGE_HEIGHT
    slot = 0 if settings.show_logo else 1
    y = 0

    add(_rect("accent_bar_top", "Top Accent Bar", 0, y, W, ACCENT_BAR_HEIGHT, settings.accent_color))
    y += ACCENT_BAR_HEIGHT

    # ─────────────────────────────────────────────
    # Header
    # ─────────────────────────────────────────────
    add(_rect("header_bg", "Header Background", 0, y, W, HEADER_HEIGHT, settings.primary_color))

    if settings.show_logo:
        add(_rect("logo_placeholder", "Logo", W / 2 - 22, y + 12, 44, 44, settings.accent_color, rx=6, ry=6))

    add(_text(
        "company_name", "Company Name", 40, y + COMPANY_NAME_OFFSET[slot], W - 80, company_name,
        font_size=18, font_weight="bold", font_family=settings.font_heading,
        fill=settings.header_text_color, text_align="center",
    ))
    add(_text(
        "company_address", "Company Address", 40, y + COMPANY_ADDRESS_OFFSET[slot], W - 80, PLACEHOLDER_ADDRESS,
        font_size=9, font_family=settings.font_body,
        fill=settings.header_text_color, opacity=0.8, text_align="center",
    ))

    if settings.show_contact_header:
        add(_text(
            "contact_info", "Contact Info", 40, y + CONTACT_OFFSET[slot], W - 80, PLACEHOLDER_CONTACT,
            font_size=8, font_family=settings.font_body,
            fill=settings.header_text_color, opacity=0.8, text_align="center",
        ))

    if settings.show_gstin_header:
        gstin = PLACEHOLDER_GSTIN + (PLACEHOLDER_STATE if settings.show_company_state else "")
        add(_text(
            "gstin_info", "GSTIN Info", 40, y + GSTIN_OFFSET[slot], W - 80, gstin,
            font_size=8, font_family=settings.font_body,
            fill=settings.header_text_color, opacity=0.7, text_align="center",
        ))

    add(_text(
        "invoice_title", "Invoice Title", 40, y + INVOICE_TITLE_OFFSET, W - 80, settings.invoice_title,
        font_size=13, font_weight="bold", font_family=settings.font_heading,
        fill=settings.accent_color, text_align="center",
    ))
    y += HEADER_HEIGHT

    # ─────────────────────────────────────────────
    # Customer block
    # ─────────────────────────────────────────────
    add(_rect("customer_section_bg", "Customer Section Background", 0, y, W, CUSTOMER_SECTION_HEIGHT,
              settings.primary_color))

    bill_to = f"{settings.bill_to_label}\n\nCustomer Name\n123 Customer Street"
    if settings.show_customer_phone:
        bill_to += "\nPhone: +91 98765 43210"
    if settings.show_customer_email:
        bill_to += "\nEmail: customer@email.com"

    add(_text(
        "bill_to", "Bill To Section", 24, y + 8, 260, bill_to,
        font_size=9, font_family=settings.font_body,
        fill=settings.header_text_color, line_height=1.4,
    ))
    add(_text(
        "invoice_details", "Invoice Details", W - 200, y + 8, 176,
        f"{settings.invoice_details_label}\n\nProforma No: INV-001\nDate: 04-Feb-2026",
        font_size=9, font_family=settings.font_body,
        fill=settings.header_text_color, text_align="right", line_height=1.4,
    ))
    y += CUSTOMER_SECTION_HEIGHT

    # ─────────────────────────────────────────────
    # Item table
    # ─────────────────────────────────────────────
    add(_rect("table_header_bg", "Table Header Background", 0, y, W, TABLE_HEADER_HEIGHT,
              settings.table_header_bg))
    add(_text(
        "table_header_text", "Table Header Labels", 12, y + 6, W - 24, TABLE_HEADER_LABELS,
        font_size=8, font_weight="bold", font_family=settings.font_body,
        fill=settings.table_header_text,
    ))
    y += TABLE_HEADER_HEIGHT

    for idx, row in enumerate(SAMPLE_ROWS):
        label = f"Row {idx + 1}"
        if idx % 2 == 1:
            add(_rect(f"table_row_bg_{idx}", f"{label} Background", 0, y, W, ROW_HEIGHT, ALT_ROW_FILL))

        body = dict(font_size=9, fill=settings.table_text_color)
        add(_text(f"row_sl_{idx}", f"{label} SL", 12, y + 6, 30, row["sl"],
                  font_family=settings.font_body, **body))
        add(_text(f"row_product_{idx}", f"{label} Product", 60, y + 4, 240, row["product"],
                  font_family=settings.font_body, line_height=1.3, **body))
        add(_text(f"row_qty_{idx}", f"{label} Qty", 360, y + 6, 40, row["qty"],
                  font_family=settings.font_mono, text_align="center", **body))
        add(_text(f"row_rate_{idx}", f"{label} Rate", 420, y + 6, 70, row["rate"],
                  font_family=settings.font_mono, text_align="right", **body))
        add(_text(f"row_total_{idx}", f"{label} Total", 510, y + 6, 70, row["total"],
                  font_family=settings.font_mono, text_align="right", font_weight="bold", **body))
        y += ROW_HEIGHT

    # ─────────────────────────────────────────────
    # Totals
    # ─────────────────────────────────────────────
    totals_y = y + 8

    if settings.show_amount_words:
        add(_rect("amount_words_bg", "Amount in Words Background", 12, totals_y, 300, 36, ALT_ROW_FILL,
                  stroke=WORDS_BORDER, stroke_width=1))
        add(_text(
            "amount_words_text", "Amount in Words", 18, totals_y + 4, 288,
            "Amount in Words\nFive Thousand Five Hundred Only",
            font_size=8, font_family=settings.font_body,
            fill=settings.table_text_color, line_height=1.5,
        ))

    add(_text(
        "totals_labels", "Totals Labels", TOTALS_COLUMN_X, totals_y, 100, "Subtotal\nGST (18%)",
        font_size=9, font_family=settings.font_body, fill=MUTED_TEXT, line_height=1.8,
    ))
    add(_text(
        "totals_values", "Totals Values", VALUES_COLUMN_X, totals_y, 70, "₹5,500\n₹990",
        font_size=9, font_family=settings.font_mono,
        fill=settings.table_text_color, text_align="right", line_height=1.8,
    ))

    gt_y = totals_y + 42
    add(_rect("grand_total_bg", "Grand Total Background", TOTALS_COLUMN_X - 10, gt_y, 195, 28,
              settings.grand_total_bg))
    add(_text(
        "grand_total_label", "Grand Total Label", TOTALS_COLUMN_X, gt_y + 6, 80, "Grand Total",
        font_size=10, font_weight="bold", font_family=settings.font_heading,
        fill=settings.grand_total_text,
    ))
    add(_text(
        "grand_total_value", "Grand Total Value", VALUES_COLUMN_X, gt_y + 6, 70, "₹6,490",
        font_size=10, font_weight="bold", font_family=settings.font_mono,
        fill=settings.grand_total_text, text_align="right",
    ))
    y = gt_y + 40

    # ─────────────────────────────────────────────
    # Footer (takes the rest of the page)
    # ─────────────────────────────────────────────
    footer_start = y + 12
    add(_rect("footer_bg", "Footer Background", 0, footer_start, W, H - footer_start - FOOTER_MARGIN,
              settings.primary_color))
    footer_y = footer_start + 12

    if settings.show_terms:
        lines = [t for t in (settings.terms_line1, settings.terms_line2, settings.terms_line3) if t]
        if lines:
            terms = "\n".join(f"{i}. {t}" for i, t in enumerate(lines, start=1))
            add(_text(
                "terms_text", "Terms & Conditions", 24, footer_y, 340, f"Terms & Conditions\n{terms}",
                font_size=8, font_family=settings.font_body,
                fill=settings.header_text_color, opacity=0.85, line_height=1.5,
            ))
            footer_y += TERMS_BLOCK_HEIGHT

    if settings.bank_name:
        bank = f"Bank Details\nBank: {settings.bank_name}"
        if settings.bank_account_no:
            bank += f"\nA/C: {settings.bank_account_no}"
        if settings.bank_ifsc:
            bank += f"\nIFSC: {settings.bank_ifsc}"
        if settings.bank_branch:
            bank += f"\nBranch: {settings.bank_branch}"
        add(_text(
            "bank_details", "Bank Details", 24, footer_y, 300, bank,
            font_size=8, font_family=settings.font_body,
            fill=settings.header_text_color, opacity=0.85, line_height=1.5,
        ))

    if settings.show_signature:
        add(_text(
            "signature", "Signature Block", W - 180, H - 70, 156,
            f"for {company_name}\n\n\n________________________\nAuthorised Signatory",
            font_size=8, font_family=settings.font_body,
            fill=settings.header_text_color, opacity=0.85, text_align="center", line_height=1.3,
        ))

    add(_rect("accent_bar_bottom", "Bottom Accent Bar", 0, H - ACCENT_BAR_HEIGHT, W, ACCENT_BAR_HEIGHT,
              settings.accent_color))
    return graph
