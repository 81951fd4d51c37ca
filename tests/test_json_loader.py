import json
import os
import tempfile
import unittest
from decimal import Decimal

from gst_canvas.core.json_loader import JSONLoader, load_company, load_invoice, load_settings
from gst_canvas.core.records import TemplateSettings


class JSONLoaderTest(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)

    def write(self, name, data):
        path = os.path.join(self._tmp.name, name)
        with open(path, "w", encoding="utf-8") as f:
            if isinstance(data, str):
                f.write(data)
            else:
                json.dump(data, f)
        return path

    def test_settings_defaults_and_unknown_keys(self):
        path = self.write("settings.json", {
            "primary_color": "#123456",
            "show_logo": None,
            "show_gst": 0,
            "terms_line1": "  ",
            "not_a_setting": True,
        })
        settings = load_settings(path)
        self.assertEqual(settings.primary_color, "#123456")
        self.assertTrue(settings.show_logo)
        self.assertFalse(settings.show_gst)
        self.assertIsNone(settings.terms_line1)
        self.assertEqual(settings.invoice_title, TemplateSettings().invoice_title)

    def test_company_phone_string(self):
        path = self.write("company.json", {"name": "Acme", "phone": "+91 1", "city": "Pune", "state": "MH"})
        company = load_company(path)
        self.assertEqual(company.phone, ("+91 1",))
        self.assertEqual(company.address_lines, ["Pune, MH"])

    def test_invoice(self):
        path = self.write("invoice.json", {
            "invoice_no": "INV-7",
            "date": "01-Jan-2026",
            "items": [{"description": "Pen", "quantity": "2", "rate": "11.80", "gst_percent": 18}],
        })
        invoice = load_invoice(path)
        self.assertEqual(invoice.items[0].sl_no, 1)
        self.assertEqual(invoice.items[0].quantity, Decimal("2"))
        self.assertEqual(invoice.totals().grand_total, Decimal("24"))

    def test_invalid_invoice_names_the_file(self):
        path = self.write("bad_invoice.json", {
            "invoice_no": "X", "date": "d", "items": [{"rate": 10, "gst_percent": 120}],
        })
        with self.assertRaises(ValueError) as ctx:
            load_invoice(path)
        self.assertIn("bad_invoice.json", str(ctx.exception))

    def test_missing_file(self):
        with self.assertRaises(FileNotFoundError):
            JSONLoader(os.path.join(self._tmp.name, "nope.json")).read()

    def test_non_object(self):
        path = self.write("list.json", "[]")
        with self.assertRaises(ValueError):
            load_settings(path)

    def test_malformed_json(self):
        path = self.write("broken.json", "{oops")
        with self.assertRaises(ValueError):
            load_company(path)


if __name__ == "__main__":
    unittest.main()
