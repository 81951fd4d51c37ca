"""
Tax-inclusive price decomposition shared by the on-screen calculator and
the printed document.

Rounding order is fixed: every line's base and tax are rounded to paise on
their own, the rounded values are summed, the invoice discount is applied
to each sum and rounded again, and the grand total is rounded to whole
rupees with the delta kept as ``round_off``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Iterable, List, Tuple

CENT = Decimal("0.01")
UNIT = Decimal("1")
HUNDRED = Decimal("100")
ZERO = Decimal("0")


# ─────────────────────────────────────────────
# Rounding helpers
# ─────────────────────────────────────────────

def to_decimal(value: Any) -> Decimal:
    if isinstance(value, Decimal) and value.is_finite():
        return value
    if isinstance(value, bool) or value is None:
        raise ValueError(f"Not a number: {value!r}")
    try:
        number = Decimal(str(value))
    except InvalidOperation as exc:
        raise ValueError(f"Not a number: {value!r}") from exc
    if not number.is_finite():
        raise ValueError(f"Not a finite number: {value!r}")
    return number


def round2(value: Any) -> Decimal:
    """Round half away from zero to two decimal places."""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def round_whole(value: Any) -> Decimal:
    return to_decimal(value).quantize(UNIT, rounding=ROUND_HALF_UP)


# ─────────────────────────────────────────────
# Input boundary validation
# ─────────────────────────────────────────────

def validate_gst_percent(value: Any) -> Decimal:
    pct = to_decimal(value)
    if pct < 0 or pct >= HUNDRED:
        raise ValueError(f"GST percent must be within [0, 100), got {value!r}")
    return pct


def validate_discount_percent(value: Any) -> Decimal:
    pct = to_decimal(value)
    if pct < 0 or pct > HUNDRED:
        raise ValueError(f"Discount percent must be within [0, 100], got {value!r}")
    return pct


def validate_non_negative(value: Any, label: str = "value") -> Decimal:
    number = to_decimal(value)
    if number < 0:
        raise ValueError(f"{label} must not be negative, got {value!r}")
    return number


def validate_rate(value: Any) -> Decimal:
    return validate_non_negative(value, "rate")


# ─────────────────────────────────────────────
# Decomposition
# ─────────────────────────────────────────────

@dataclass(frozen=True)
class TaxBreakdown:
    base_price: Decimal
    gst_amount: Decimal

    @property
    def total(self) -> Decimal:
        return self.base_price + self.gst_amount


def decompose(rate: Any, gst_percent: Any) -> TaxBreakdown:
    """
    Split a tax-inclusive amount into base price and GST.

    Callers validate ``gst_percent`` (0 <= g < 100) and ``rate`` (>= 0)
    before calling; this function does no checking.
    """
    rate = to_decimal(rate)
    base = rate / (1 + to_decimal(gst_percent) / HUNDRED)
    return TaxBreakdown(base_price=round2(base), gst_amount=round2(rate - base))


@dataclass(frozen=True)
class LineBreakdown:
    quantity: Decimal
    rate: Decimal
    gst_percent: Decimal
    discount_percent: Decimal
    amount: Decimal
    base_amount: Decimal
    gst_amount: Decimal
    unit_base_price: Decimal


def line_breakdown(quantity: Any, rate: Any, gst_percent: Any, discount_percent: Any = 0) -> LineBreakdown:
    quantity = to_decimal(quantity)
    rate = to_decimal(rate)
    gst_percent = to_decimal(gst_percent)
    discount_percent = to_decimal(discount_percent)

    amount = round2(quantity * rate * (1 - discount_percent / HUNDRED))
    split = decompose(amount, gst_percent)
    return LineBreakdown(
        quantity=quantity,
        rate=rate,
        gst_percent=gst_percent,
        discount_percent=discount_percent,
        amount=amount,
        base_amount=split.base_price,
        gst_amount=split.gst_amount,
        unit_base_price=decompose(rate, gst_percent).base_price,
    )


@dataclass(frozen=True)
class InvoiceTotals:
    subtotal: Decimal
    discount_percent: Decimal
    discount_amount: Decimal
    base_total: Decimal
    tax_total: Decimal
    taxable_amount: Decimal
    tax_amount: Decimal
    round_off: Decimal
    grand_total: Decimal
    amount_in_words: str
    lines: Tuple[LineBreakdown, ...] = field(default_factory=tuple)

    @property
    def gst_rates(self) -> List[Decimal]:
        return sorted({line.gst_percent for line in self.lines})


def compute_totals(items: Iterable[Any], discount_percent: Any = 0) -> InvoiceTotals:
    """
    Aggregate invoice totals from line items.

    Each item exposes ``quantity``, ``rate`` (tax-inclusive),
    ``gst_percent`` and optionally ``discount_percent``.
    """
    lines = tuple(
        line_breakdown(
            item.quantity,
            item.rate,
            item.gst_percent,
            getattr(item, "discount_percent", 0) or 0,
        )
        for item in items
    )
    discount_percent = to_decimal(discount_percent)
    factor = 1 - discount_percent / HUNDRED

    subtotal = sum((line.amount for line in lines), ZERO)
    base_total = sum((line.base_amount for line in lines), ZERO)
    tax_total = sum((line.gst_amount for line in lines), ZERO)

    discount_amount = round2(subtotal * discount_percent / HUNDRED)
    net = subtotal - discount_amount
    grand_total = round_whole(net)

    return InvoiceTotals(
        subtotal=subtotal,
        discount_percent=discount_percent,
        discount_amount=discount_amount,
        base_total=base_total,
        tax_total=tax_total,
        taxable_amount=round2(base_total * factor),
        tax_amount=round2(tax_total * factor),
        round_off=round2(grand_total - net),
        grand_total=grand_total,
        amount_in_words=amount_in_words(grand_total),
        lines=lines,
    )


# ─────────────────────────────────────────────
# Display helpers
# ─────────────────────────────────────────────

_ONES = (
    "", "One", "Two", "Three", "Four", "Five", "Six", "Seven", "Eight", "Nine",
    "Ten", "Eleven", "Twelve", "Thirteen", "Fourteen", "Fifteen", "Sixteen",
    "Seventeen", "Eighteen", "Nineteen",
)
_TENS = ("", "", "Twenty", "Thirty", "Forty", "Fifty", "Sixty", "Seventy", "Eighty", "Ninety")


def _below_thousand(n: int) -> str:
    if n < 20:
        return _ONES[n]
    if n < 100:
        return _TENS[n // 10] + (f" {_ONES[n % 10]}" if n % 10 else "")
    rest = n % 100
    return f"{_ONES[n // 100]} Hundred" + (f" {_below_thousand(rest)}" if rest else "")


def _indian_words(n: int) -> str:
    parts = []
    for divisor, label in ((10_000_000, "Crore"), (100_000, "Lakh"), (1_000, "Thousand")):
        chunk, n = divmod(n, divisor)
        if chunk:
            # crores above 999 keep stacking in the Indian system
            words = _indian_words(chunk) if chunk >= 1000 else _below_thousand(chunk)
            parts.append(f"{words} {label}")
    if n:
        parts.append(_below_thousand(n))
    return " ".join(parts)


def amount_in_words(amount: Any) -> str:
    """'INR One Thousand Two Hundred Fifty and Fifty Paise Only' style wording."""
    value = round2(abs(to_decimal(amount)))
    rupees = int(value)
    paise = int((value - rupees) * 100)

    words = "INR " + (_indian_words(rupees) or "Zero")
    if paise:
        words += f" and {_indian_words(paise)} Paise"
    return words + " Only"


def _group_indian(digits: str) -> str:
    if len(digits) <= 3:
        return digits
    head, tail = digits[:-3], digits[-3:]
    groups = []
    while len(head) > 2:
        groups.insert(0, head[-2:])
        head = head[:-2]
    if head:
        groups.insert(0, head)
    return ",".join(groups + [tail])


def format_currency(amount: Any, symbol: str = "₹") -> str:
    """en-IN formatting: 1234567.5 -> '₹12,34,567.50'."""
    value = round2(amount)
    sign = "-" if value < 0 else ""
    rupees, paise = f"{abs(value):.2f}".split(".")
    return f"{sign}{symbol}{_group_indian(rupees)}.{paise}"
