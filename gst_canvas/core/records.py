"""Read-only records consumed by the template compiler and document layout."""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from .tax import (
    InvoiceTotals,
    compute_totals,
    to_decimal,
    validate_discount_percent,
    validate_gst_percent,
    validate_non_negative,
    validate_rate,
)


def _clean_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


@dataclass(frozen=True)
class TemplateSettings:
    # Colors
    primary_color: str = "#000000"
    secondary_color: str = "#333333"
    accent_color: str = "#666666"
    header_text_color: str = "#ffffff"
    table_header_bg: str = "#f5f5f5"
    table_header_text: str = "#000000"
    table_text_color: str = "#1a1a1a"
    grand_total_bg: str = "#000000"
    grand_total_text: str = "#ffffff"
    table_border_color: str = "#d4d4d4"

    # Fonts
    font_heading: str = "Inter"
    font_body: str = "Inter"
    font_mono: str = "Roboto Mono"

    # Labels
    invoice_title: str = "PROFORMA INVOICE"
    bill_to_label: str = "Bill To"
    invoice_details_label: str = "Invoice Details"

    # Section visibility
    show_logo: bool = True
    show_gstin_header: bool = True
    show_contact_header: bool = True
    show_company_state: bool = True
    show_shipping_address: bool = False
    show_customer_email: bool = True
    show_customer_phone: bool = True
    show_unit_column: bool = True
    show_serial_numbers: bool = True
    show_discount_column: bool = True
    show_terms: bool = True
    show_signature: bool = True
    show_amount_words: bool = True
    show_gst: bool = True
    show_invoice_title: bool = True

    # Custom content
    terms_line1: Optional[str] = "Goods once sold will not be taken back."
    terms_line2: Optional[str] = "Subject to local jurisdiction only."
    terms_line3: Optional[str] = "E&OE - Errors and Omissions Excepted."
    terms_line4: Optional[str] = None
    terms_line5: Optional[str] = None
    terms_line6: Optional[str] = None
    custom_footer_text: Optional[str] = None
    bank_name: Optional[str] = None
    bank_account_no: Optional[str] = None
    bank_ifsc: Optional[str] = None
    bank_branch: Optional[str] = None

    # Saved canvas document (serialized scene graph)
    custom_canvas_data: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TemplateSettings":
        """Missing or null keys fall back to the defaults; unknown keys are ignored."""
        kwargs: Dict[str, Any] = {}
        for f in fields(cls):
            if f.name not in data:
                continue
            value = data[f.name]
            if f.type == "bool":
                if value is None:
                    continue
                kwargs[f.name] = bool(value)
            elif f.type == "str":
                if value is None:
                    continue
                kwargs[f.name] = str(value)
            else:
                kwargs[f.name] = _clean_text(value) if f.name != "custom_canvas_data" else value
        return cls(**kwargs)

    def replace(self, **changes) -> "TemplateSettings":
        return replace(self, **changes)

    @property
    def terms_lines(self) -> List[Optional[str]]:
        return [
            self.terms_line1,
            self.terms_line2,
            self.terms_line3,
            self.terms_line4,
            self.terms_line5,
            self.terms_line6,
        ]


@dataclass(frozen=True)
class CompanyRecord:
    name: str = ""
    address_line1: Optional[str] = None
    address_line2: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    state_code: Optional[str] = None
    postal_code: Optional[str] = None
    phone: Tuple[str, ...] = ()
    email: Optional[str] = None
    website: Optional[str] = None
    gstin: Optional[str] = None
    logo_url: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "CompanyRecord":
        data = data or {}
        phone = data.get("phone") or ()
        if isinstance(phone, str):
            phone = (phone,)
        return cls(
            name=str(data.get("name") or ""),
            address_line1=_clean_text(data.get("address_line1")),
            address_line2=_clean_text(data.get("address_line2")),
            city=_clean_text(data.get("city")),
            state=_clean_text(data.get("state")),
            state_code=_clean_text(data.get("state_code")),
            postal_code=_clean_text(data.get("postal_code")),
            phone=tuple(str(p) for p in phone if p),
            email=_clean_text(data.get("email")),
            website=_clean_text(data.get("website")),
            gstin=_clean_text(data.get("gstin")),
            logo_url=_clean_text(data.get("logo_url")),
        )

    @property
    def city_line(self) -> str:
        return ", ".join(p for p in (self.city, self.state, self.postal_code) if p)

    @property
    def address_lines(self) -> List[str]:
        lines = [line for line in (self.address_line1, self.address_line2) if line]
        if self.city_line:
            lines.append(self.city_line)
        return lines


@dataclass(frozen=True)
class CustomerRecord:
    name: str = ""
    gstin: Optional[str] = None
    state: Optional[str] = None
    state_code: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["CustomerRecord"]:
        if not data:
            return None
        return cls(
            name=str(data.get("name") or ""),
            gstin=_clean_text(data.get("gstin")),
            state=_clean_text(data.get("state")),
            state_code=_clean_text(data.get("state_code")),
            email=_clean_text(data.get("email")),
            phone=_clean_text(data.get("phone")),
        )


@dataclass(frozen=True)
class AddressRecord:
    address_line1: Optional[str] = None
    address_line2: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    state_code: Optional[str] = None
    postal_code: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["AddressRecord"]:
        if not data:
            return None
        return cls(**{f.name: _clean_text(data.get(f.name)) for f in fields(cls)})

    @property
    def lines(self) -> List[str]:
        lines = [line for line in (self.address_line1, self.address_line2) if line]
        city = ", ".join(p for p in (self.city, self.state, self.postal_code) if p)
        if city:
            lines.append(city)
        return lines


@dataclass(frozen=True)
class LineItem:
    sl_no: int
    description: str
    quantity: Decimal
    rate: Decimal
    unit: str = "NOS"
    gst_percent: Decimal = Decimal("18")
    discount_percent: Decimal = Decimal("0")
    serial_numbers: Tuple[str, ...] = ()
    brand: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any], sl_no: int = 0) -> "LineItem":
        """Validates quantity, rate and percentages; raises ValueError when out of range."""
        serials = data.get("serial_numbers") or ()
        return cls(
            sl_no=int(data.get("sl_no") or sl_no),
            description=str(data.get("description") or ""),
            quantity=validate_non_negative(data.get("quantity", 1), "quantity"),
            rate=validate_rate(data.get("rate", 0)),
            unit=str(data.get("unit") or "NOS"),
            gst_percent=validate_gst_percent(data.get("gst_percent", 18)),
            discount_percent=validate_discount_percent(data.get("discount_percent") or 0),
            serial_numbers=tuple(str(s) for s in serials if s),
            brand=_clean_text(data.get("brand")),
        )


@dataclass(frozen=True)
class InvoiceRecord:
    invoice_no: str
    date: str
    items: Tuple[LineItem, ...] = ()
    discount_percent: Decimal = Decimal("0")
    customer: Optional[CustomerRecord] = None
    billing_address: Optional[AddressRecord] = None
    shipping_address: Optional[AddressRecord] = None
    e_way_bill_no: Optional[str] = None
    supplier_invoice_no: Optional[str] = None
    other_references: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "InvoiceRecord":
        items = tuple(
            LineItem.from_dict(raw, sl_no=idx + 1)
            for idx, raw in enumerate(data.get("items") or [])
        )
        return cls(
            invoice_no=str(data.get("invoice_no") or ""),
            date=str(data.get("date") or ""),
            items=items,
            discount_percent=validate_discount_percent(data.get("discount_percent") or 0),
            customer=CustomerRecord.from_dict(data.get("customer")),
            billing_address=AddressRecord.from_dict(data.get("billing_address")),
            shipping_address=AddressRecord.from_dict(data.get("shipping_address")),
            e_way_bill_no=_clean_text(data.get("e_way_bill_no")),
            supplier_invoice_no=_clean_text(data.get("supplier_invoice_no")),
            other_references=_clean_text(data.get("other_references")),
        )

    def totals(self) -> InvoiceTotals:
        return compute_totals(self.items, self.discount_percent)

    @property
    def total_quantity(self) -> Decimal:
        return sum((to_decimal(item.quantity) for item in self.items), Decimal("0"))
