import os
import unittest
from unittest import mock

import pytest

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")
QtWidgets = pytest.importorskip("PySide6.QtWidgets")
QtGui = pytest.importorskip("PySide6.QtGui")

from gst_canvas.core.store import MemoryStore, StoreError  # noqa: E402
from gst_canvas.ui.main_window import ERRORS_TAB, MainWindow  # noqa: E402
from gst_canvas.widgets.canvas_view import CanvasView  # noqa: E402


class FailingStore(MemoryStore):
    def save(self, payload):
        raise StoreError("disk full")


class MainWindowCloseTest(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.app = QtWidgets.QApplication.instance() or QtWidgets.QApplication([])

    def _dirty_window(self, store):
        window = MainWindow(store=store)
        window.editor_tab.engine.add_rect()
        self.assertTrue(window.editor_tab.engine.dirty)
        return window

    def _close(self, window, answer):
        event = QtGui.QCloseEvent()
        with mock.patch.object(QtWidgets.QMessageBox, "question", return_value=answer):
            window.closeEvent(event)
        return event

    def test_save_on_close_writes_before_shutdown(self):
        store = MemoryStore()
        window = self._dirty_window(store)
        event = self._close(window, QtWidgets.QMessageBox.Save)
        self.assertTrue(event.isAccepted())
        self.assertEqual(store.saves, 1)
        self.assertIn("Rect", store.payload)
        self.assertTrue(window.editor_tab.engine.closed)

    def test_failed_save_on_close_keeps_window_open(self):
        window = self._dirty_window(FailingStore())
        warnings = window.error_log_tab.entry_count("warning")
        event = self._close(window, QtWidgets.QMessageBox.Save)
        self.assertFalse(event.isAccepted())
        engine = window.editor_tab.engine
        self.assertFalse(engine.closed)
        self.assertTrue(engine.dirty)
        self.assertEqual(window.error_log_tab.entry_count("warning"), warnings + 1)
        self.assertEqual(window.tabs.currentIndex(), ERRORS_TAB)
        window.editor_tab.shutdown()

    def test_cancel_keeps_window_open(self):
        window = self._dirty_window(MemoryStore())
        event = self._close(window, QtWidgets.QMessageBox.Cancel)
        self.assertFalse(event.isAccepted())
        self.assertFalse(window.editor_tab.engine.closed)
        window.editor_tab.shutdown()

    def test_canvas_keeps_qwidget_render(self):
        self.assertNotIn("render", vars(CanvasView))
        self.assertTrue(callable(CanvasView.render_graph))


if __name__ == "__main__":
    unittest.main()
