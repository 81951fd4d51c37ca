import unittest
from decimal import Decimal

from gst_canvas.core.records import LineItem
from gst_canvas.core.tax import (
    amount_in_words,
    compute_totals,
    decompose,
    format_currency,
    line_breakdown,
    round2,
    validate_discount_percent,
    validate_gst_percent,
    validate_rate,
)


def item(rate, quantity=1, gst=18, discount=0, sl_no=1):
    return LineItem.from_dict({
        "description": f"Item {sl_no}",
        "rate": rate,
        "quantity": quantity,
        "gst_percent": gst,
        "discount_percent": discount,
    }, sl_no=sl_no)


class DecomposeTest(unittest.TestCase):
    def test_inclusive_rate_splits_exactly(self):
        split = decompose(118, 18)
        self.assertEqual(split.base_price, Decimal("100.00"))
        self.assertEqual(split.gst_amount, Decimal("18.00"))

    def test_zero_rate_and_zero_gst(self):
        self.assertEqual(decompose(0, 18).total, Decimal("0"))
        split = decompose("99.99", 0)
        self.assertEqual(split.base_price, Decimal("99.99"))
        self.assertEqual(split.gst_amount, Decimal("0.00"))

    def test_parts_rebuild_rounded_rate(self):
        rates = ["0", "0.01", "1", "9.99", "100", "117.5", "1234.56", "99999.99"]
        for rate in rates:
            for gst in ("0", "5", "12", "18", "28", "99.5"):
                split = decompose(rate, gst)
                diff = abs(split.base_price + split.gst_amount - round2(rate))
                self.assertLessEqual(diff, Decimal("0.01"), (rate, gst))

    def test_round_half_away_from_zero(self):
        self.assertEqual(round2("2.345"), Decimal("2.35"))
        self.assertEqual(round2("-2.345"), Decimal("-2.35"))


class ValidationTest(unittest.TestCase):
    def test_gst_bounds(self):
        self.assertEqual(validate_gst_percent(0), Decimal("0"))
        self.assertEqual(validate_gst_percent("28"), Decimal("28"))
        for bad in (-1, 100, 150):
            with self.assertRaises(ValueError):
                validate_gst_percent(bad)

    def test_discount_bounds(self):
        self.assertEqual(validate_discount_percent(100), Decimal("100"))
        with self.assertRaises(ValueError):
            validate_discount_percent(101)
        with self.assertRaises(ValueError):
            validate_discount_percent(-0.5)

    def test_rate_must_be_a_non_negative_number(self):
        with self.assertRaises(ValueError):
            validate_rate(-5)
        with self.assertRaises(ValueError):
            validate_rate("abc")
        with self.assertRaises(ValueError):
            validate_rate(True)
        for value in ("NaN", float("nan"), "Infinity", float("-inf"), Decimal("NaN")):
            with self.assertRaises(ValueError, msg=repr(value)):
                validate_rate(value)
        with self.assertRaises(ValueError):
            validate_gst_percent("NaN")
        with self.assertRaises(ValueError):
            item("Infinity")

    def test_line_item_rejects_out_of_range_gst(self):
        with self.assertRaises(ValueError):
            item(100, gst=100)


class TotalsTest(unittest.TestCase):
    def test_invoice_discount_and_grand_total(self):
        totals = compute_totals([item(118, 1, sl_no=1), item(236, 2, sl_no=2)], discount_percent=10)
        self.assertEqual(totals.subtotal, Decimal("590"))
        self.assertEqual(totals.discount_amount, Decimal("59.00"))
        self.assertEqual(totals.grand_total, Decimal("531"))
        self.assertEqual(totals.round_off, Decimal("0.00"))
        self.assertEqual(totals.base_total, Decimal("500.00"))
        self.assertEqual(totals.tax_total, Decimal("90.00"))
        self.assertEqual(totals.taxable_amount, Decimal("450.00"))
        self.assertEqual(totals.tax_amount, Decimal("81.00"))
        self.assertEqual(totals.amount_in_words, "INR Five Hundred Thirty One Only")

    def test_round_off_keeps_the_delta(self):
        totals = compute_totals([item("100.60")])
        self.assertEqual(totals.grand_total, Decimal("101"))
        self.assertEqual(totals.round_off, Decimal("0.40"))

    def test_line_discount_applies_before_split(self):
        line = line_breakdown(2, 118, 18, 50)
        self.assertEqual(line.amount, Decimal("118.00"))
        self.assertEqual(line.base_amount, Decimal("100.00"))
        self.assertEqual(line.gst_amount, Decimal("18.00"))
        self.assertEqual(line.unit_base_price, Decimal("100.00"))

    def test_gst_rates_are_distinct_and_sorted(self):
        totals = compute_totals([item(100, gst=18), item(100, gst=5), item(50, gst=18)])
        self.assertEqual(totals.gst_rates, [Decimal("5"), Decimal("18")])

    def test_empty_invoice(self):
        totals = compute_totals([])
        self.assertEqual(totals.grand_total, Decimal("0"))
        self.assertEqual(totals.amount_in_words, "INR Zero Only")


class DisplayTest(unittest.TestCase):
    def test_amount_in_words_indian_system(self):
        self.assertEqual(
            amount_in_words(12345678),
            "INR One Crore Twenty Three Lakh Forty Five Thousand Six Hundred Seventy Eight Only",
        )
        self.assertEqual(
            amount_in_words("1250.50"),
            "INR One Thousand Two Hundred Fifty and Fifty Paise Only",
        )

    def test_format_currency_groups_en_in(self):
        self.assertEqual(format_currency(1234567.5), "₹12,34,567.50")
        self.assertEqual(format_currency(999), "₹999.00")
        self.assertEqual(format_currency(-5, symbol="Rs. "), "-Rs. 5.00")


if __name__ == "__main__":
    unittest.main()
