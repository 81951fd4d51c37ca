import unittest

from gst_canvas.core.compiler import PLACEHOLDER_COMPANY, compile_template
from gst_canvas.core.records import CompanyRecord, TemplateSettings
from gst_canvas.core.scene_json import dumps


class CompileTemplateTest(unittest.TestCase):
    def test_same_inputs_give_identical_output(self):
        settings = TemplateSettings(bank_name="State Bank", bank_ifsc="SBIN0001")
        company = CompanyRecord(name="Acme Traders")
        self.assertEqual(
            dumps(compile_template(settings, company)),
            dumps(compile_template(settings, company)),
        )

    def test_logo_shifts_company_name(self):
        with_logo = compile_template(TemplateSettings(show_logo=True, show_gstin_header=False))
        without_logo = compile_template(TemplateSettings(show_logo=False, show_gstin_header=False))
        self.assertEqual(with_logo.get("company_name").top, 70)
        self.assertEqual(without_logo.get("company_name").top, 24)
        self.assertEqual(with_logo.get("company_name").top - without_logo.get("company_name").top, 46)
        self.assertIsNotNone(with_logo.get("logo_placeholder"))
        self.assertIsNone(without_logo.get("logo_placeholder"))
        self.assertIsNone(without_logo.get("gstin_info"))

    def test_defaults_fill_the_page_top_to_bottom(self):
        graph = compile_template(TemplateSettings())
        ids = graph.ids()
        self.assertEqual(ids[0], "accent_bar_top")
        self.assertEqual(ids[-1], "accent_bar_bottom")
        self.assertEqual(graph.get("header_bg").top, 8)
        self.assertEqual(graph.get("customer_section_bg").top, 168)
        self.assertEqual(graph.get("table_header_bg").top, 248)
        self.assertEqual(graph.get("row_sl_0").top, 278)
        self.assertIsNotNone(graph.get("table_row_bg_1"))
        self.assertIsNone(graph.get("table_row_bg_0"))
        self.assertEqual(graph.get("company_name").text, PLACEHOLDER_COMPANY)
        self.assertTrue(graph.elements[0].is_guide)
        self.assertEqual(len(ids), len(set(ids)))

    def test_settings_drive_colors_and_sections(self):
        settings = TemplateSettings(
            primary_color="#123456",
            show_terms=False,
            show_signature=False,
            show_amount_words=False,
            show_contact_header=False,
            invoice_title="TAX INVOICE",
        )
        graph = compile_template(settings)
        self.assertEqual(graph.get("header_bg").fill, "#123456")
        self.assertEqual(graph.get("footer_bg").fill, "#123456")
        self.assertEqual(graph.get("invoice_title").text, "TAX INVOICE")
        for missing in ("terms_text", "signature", "amount_words_bg", "contact_info", "bank_details"):
            self.assertIsNone(graph.get(missing), missing)

    def test_company_and_bank_details(self):
        settings = TemplateSettings(bank_name="State Bank", bank_account_no="123", terms_line1=None,
                                    terms_line2=None, terms_line3=None)
        graph = compile_template(settings, CompanyRecord(name="Acme Traders"))
        self.assertEqual(graph.get("company_name").text, "Acme Traders")
        self.assertIn("for Acme Traders", graph.get("signature").text)
        self.assertIn("A/C: 123", graph.get("bank_details").text)
        self.assertIsNone(graph.get("terms_text"))

    def test_company_state_is_optional_in_gstin_line(self):
        graph = compile_template(TemplateSettings(show_company_state=False))
        self.assertNotIn("State:", graph.get("gstin_info").text)


if __name__ == "__main__":
    unittest.main()
