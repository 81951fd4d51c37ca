from PySide6.QtCore import QObject, Signal
from PySide6.QtGui import QAction, QKeySequence
from PySide6.QtWidgets import QMainWindow, QMessageBox, QTabWidget

from gst_canvas.ui.editor_tab import EditorTab
from gst_canvas.ui.error_window import ErrorLogWidget
from gst_canvas.ui.export_tab import ExportTab
from gst_canvas.ui.locales import ensure_language, format_message, get_section

EDITOR_TAB, EXPORT_TAB, ERRORS_TAB = range(3)


class ErrorNotifier(QObject):
    errorOccurred = Signal(str, str, str)

    def emit_error(self, title: str, message: str, level: str = "error"):
        self.errorOccurred.emit(title, message, level)


class MainWindow(QMainWindow):
    def __init__(self, store=None):
        super().__init__()

        self.language = ensure_language("en")
        self.error_notifier = ErrorNotifier()
        self.title = ""
        self.menu_strings: dict = {}
        self.errors_title = ""

        self.setMinimumSize(900, 640)

        self.tabs = QTabWidget()
        self.setCentralWidget(self.tabs)

        # the log exists before the editor so load warnings are not lost
        self.error_log_tab = ErrorLogWidget()
        self.error_notifier.errorOccurred.connect(self.error_log_tab.add_entry)
        self.error_notifier.errorOccurred.connect(self._update_errors_tab)

        self.editor_tab = EditorTab(error_notifier=self.error_notifier, store=store)
        self.editor_tab.dirtyChanged.connect(self._update_title)
        self.export_tab = ExportTab(
            get_canvas_data=self.editor_tab.engine.serialize,
            error_notifier=self.error_notifier,
        )
        self.export_tab.languageChanged.connect(self.on_language_changed)

        self.tabs.addTab(self.editor_tab, "")
        self.tabs.addTab(self.export_tab, "")
        self.tabs.addTab(self.error_log_tab, "")

        self._build_menu()
        self.set_language(self.language)

    # ───────────────────────────────────────────────
    # Menu
    # ───────────────────────────────────────────────
    def _build_menu(self):
        engine = self.editor_tab.engine
        self.file_menu = self.menuBar().addMenu("")
        self.edit_menu = self.menuBar().addMenu("")
        self.menu_actions = {}

        # no undo/redo shortcuts here; the canvas owns those keys so text editing can suppress them
        for key, menu, shortcut, handler in (
            ("save", self.file_menu, QKeySequence.Save, self.editor_tab.save),
            ("compile", self.file_menu, None, self.editor_tab.compile_from_settings),
            ("export_invoice", self.file_menu, None, self.export_tab.export_invoice),
            ("export_canvas", self.file_menu, None, self.export_tab.export_canvas),
            ("quit", self.file_menu, QKeySequence.Quit, self.close),
            ("undo", self.edit_menu, None, engine.undo),
            ("redo", self.edit_menu, None, engine.redo),
            ("select_all", self.edit_menu, QKeySequence.SelectAll, engine.select_all),
        ):
            action = QAction(self)
            if shortcut is not None:
                action.setShortcut(shortcut)
            action.triggered.connect(lambda _checked=False, h=handler: h())
            menu.addAction(action)
            self.menu_actions[key] = action

        self.file_menu.aboutToShow.connect(self._update_actions)
        self.edit_menu.aboutToShow.connect(self._update_actions)

    def _update_actions(self):
        engine = self.editor_tab.engine
        self.menu_actions["save"].setEnabled(engine.can_save)
        self.menu_actions["undo"].setEnabled(engine.can_undo())
        self.menu_actions["redo"].setEnabled(engine.can_redo())

    # ───────────────────────────────────────────────
    def _update_title(self, dirty: bool = False):
        self.setWindowTitle(f"{self.title} *" if dirty else self.title)

    def _update_errors_tab(self, *_args):
        count = self.error_log_tab.entry_count("error")
        text = self.errors_title if not count else f"{self.errors_title} ({count})"
        self.tabs.setTabText(ERRORS_TAB, text)

    def set_language(self, language: str):
        language = ensure_language(language)
        self.language = language
        app_strings = get_section(language, "app")
        tabs_strings = get_section(language, "tabs")
        error_strings = get_section(language, "error_log")
        self.menu_strings = get_section(language, "menu")

        title = app_strings.get("window_title")
        if not title:
            name = app_strings.get("name", "GST Canvas")
            version = app_strings.get("version", "")
            title = f"{name} {version}".strip()
        self.title = title
        self._update_title(self.editor_tab.engine.dirty)

        self.file_menu.setTitle(self.menu_strings.get("file", "&File"))
        self.edit_menu.setTitle(self.menu_strings.get("edit", "&Edit"))
        for key, action in self.menu_actions.items():
            action.setText(self.menu_strings.get(key, key.replace("_", " ").title()))

        self.tabs.setTabText(EDITOR_TAB, tabs_strings.get("editor", "Template Editor"))
        self.tabs.setTabText(EXPORT_TAB, tabs_strings.get("export", "Export"))
        self.errors_title = error_strings.get("tab_title", "Errors")
        self._update_errors_tab()

        self.editor_tab.set_language(language)
        self.export_tab.set_language(language)
        self.error_log_tab.set_language(language)

    def on_language_changed(self, language: str):
        self.set_language(language)

    # ───────────────────────────────────────────────
    def _confirm_close(self) -> bool:
        """Save/discard/cancel prompt for a dirty document; True when closing may go on."""
        engine = self.editor_tab.engine
        if not engine.dirty or engine.closed:
            return True
        answer = QMessageBox.question(
            self,
            self.menu_strings.get("unsaved_title", "Unsaved changes"),
            format_message(self.menu_strings, "unsaved_message"),
            QMessageBox.Save | QMessageBox.Discard | QMessageBox.Cancel,
            QMessageBox.Save,
        )
        if answer == QMessageBox.Cancel:
            return False
        if answer == QMessageBox.Save and not self.editor_tab.save_now():
            # failure was logged as a warning
            self.tabs.setCurrentIndex(ERRORS_TAB)
            return False
        return True

    def closeEvent(self, event):
        if not self._confirm_close():
            event.ignore()
            return
        self.editor_tab.shutdown()
        super().closeEvent(event)
