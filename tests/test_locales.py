import unittest

from gst_canvas.ui.locales import (
    DEFAULT_LANGUAGE,
    available_languages,
    ensure_language,
    format_message,
    get_section,
    load_locale,
)


class LocalesTest(unittest.TestCase):
    def test_english_is_bundled(self):
        self.assertIn("en", available_languages())
        self.assertEqual(ensure_language("xx"), DEFAULT_LANGUAGE)

    def test_sections_used_by_the_tabs(self):
        for section in ("app", "tabs", "menu", "editor", "toolbar", "properties", "export", "error_log"):
            self.assertTrue(get_section("en", section), section)
        self.assertEqual(get_section("en", "missing"), {})

    def test_every_toolbar_action_is_labelled(self):
        from gst_canvas.widgets.toolbar import ACTIONS

        toolbar = load_locale("en")["toolbar"]
        for action, _label in ACTIONS:
            self.assertIn(f"action_{action}", toolbar)

    def test_format_message(self):
        strings = {"saved": "Saved to {path}", "broken": "{missing} {0}"}
        self.assertEqual(format_message(strings, "saved", path="a.pdf"), "Saved to a.pdf")
        self.assertEqual(format_message(strings, "broken"), "{missing} {0}")
        self.assertEqual(format_message(strings, "unknown"), "")


if __name__ == "__main__":
    unittest.main()
