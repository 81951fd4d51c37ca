import os

from PySide6.QtCore import QCoreApplication, QObject, QThread, Qt, Signal
from PySide6.QtWidgets import (
    QFileDialog,
    QHBoxLayout,
    QLineEdit,
    QPushButton,
    QSplitter,
    QVBoxLayout,
    QWidget,
)

from gst_canvas.core.compiler import compile_template
from gst_canvas.core.editor import EditorEngine
from gst_canvas.core.image_loader import ImageLoader, ImageLoadError
from gst_canvas.core.json_loader import load_company, load_settings
from gst_canvas.core.paths import user_data_dir
from gst_canvas.core.records import CompanyRecord, TemplateSettings
from gst_canvas.core.scene_json import dumps
from gst_canvas.core.store import JsonFileStore, StoreError, TemplateStore
from gst_canvas.ui.locales import ensure_language, format_message, get_section
from gst_canvas.widgets.canvas_view import CanvasView
from gst_canvas.widgets.property_panel import PropertyPanel
from gst_canvas.widgets.toolbar import EditorToolbar

STORE_KEY = "custom_canvas_data"


class ImageLoadWorker(QObject):
    finished = Signal(int, object)   # token, LoadedImage
    failed = Signal(int, str)

    def __init__(self, token: int, source: str, loader: ImageLoader):
        super().__init__()
        self.token = token
        self.source = source
        self.loader = loader

    def run(self):
        try:
            image = self.loader.load(self.source)
        except ImageLoadError as e:
            self.failed.emit(self.token, str(e))
            return
        self.finished.emit(self.token, image)


class SaveWorker(QObject):
    finished = Signal()
    failed = Signal(str)

    def __init__(self, store: TemplateStore, payload: str):
        super().__init__()
        self.store = store
        self.payload = payload

    def run(self):
        try:
            self.store.save(self.payload)
        except StoreError as e:
            self.failed.emit(str(e))
            return
        self.finished.emit()


class EditorTab(QWidget):
    dirtyChanged = Signal(bool)

    def __init__(self, parent=None, error_notifier=None, store: TemplateStore = None):
        super().__init__(parent)
        self.error_notifier = error_notifier
        self.language = ensure_language("en")
        self.strings: dict = {}

        self.store = store or JsonFileStore(str(user_data_dir() / "templates.json"), key=STORE_KEY)
        self.image_loader = ImageLoader()
        # each worker keeps its thread alive until it reports back
        self._threads: list = []

        layout = QVBoxLayout()

        source_row = QHBoxLayout()
        self.settings_path = QLineEdit()
        source_row.addWidget(self.settings_path)
        self.choose_settings_btn = QPushButton()
        self.choose_settings_btn.clicked.connect(lambda: self._choose_json(self.settings_path))
        source_row.addWidget(self.choose_settings_btn)
        self.company_path = QLineEdit()
        source_row.addWidget(self.company_path)
        self.choose_company_btn = QPushButton()
        self.choose_company_btn.clicked.connect(lambda: self._choose_json(self.company_path))
        source_row.addWidget(self.choose_company_btn)
        self.compile_btn = QPushButton()
        self.compile_btn.clicked.connect(self.compile_from_settings)
        source_row.addWidget(self.compile_btn)
        self.reload_btn = QPushButton()
        self.reload_btn.clicked.connect(self.load_saved)
        source_row.addWidget(self.reload_btn)
        layout.addLayout(source_row)

        self.toolbar = EditorToolbar()
        self.toolbar.actionTriggered.connect(self.on_action)
        layout.addWidget(self.toolbar)

        splitter = QSplitter(Qt.Horizontal)
        self.canvas = CanvasView()
        self.panel = PropertyPanel()
        splitter.addWidget(self.canvas)
        splitter.addWidget(self.panel)
        splitter.setStretchFactor(0, 4)
        splitter.setStretchFactor(1, 1)
        layout.addWidget(splitter, 1)

        self.setLayout(layout)

        self.engine = EditorEngine()
        self.canvas.bind(self.engine)
        self.engine.on_selection_changed.append(self._on_selection_changed)
        self.engine.on_structural_mutation.append(self._on_structure_changed)
        self.engine.on_dirty_changed.append(self._on_dirty_changed)
        self.engine.on_warning.append(lambda title, message: self._emit_error(title, message, "warning"))
        self.panel.propertyChanged.connect(self.engine.update_property)

        self.set_language(self.language)
        self.load_saved()

    # ───────────────────────────────────────────────
    # Engine observers
    # ───────────────────────────────────────────────
    def _on_selection_changed(self, _ids):
        self.panel.set_element(self.engine.selected_element)
        self.toolbar.update_state(self.engine)

    def _on_structure_changed(self, _graph):
        self.panel.set_element(self.engine.selected_element)
        self.toolbar.update_state(self.engine)

    def _on_dirty_changed(self, dirty: bool):
        self.toolbar.update_state(self.engine)
        self.dirtyChanged.emit(dirty)

    # ───────────────────────────────────────────────
    # Toolbar
    # ───────────────────────────────────────────────
    def on_action(self, action: str):
        engine = self.engine
        handlers = {
            "text": engine.add_text,
            "rect": engine.add_rect,
            "circle": engine.add_circle,
            "line": engine.add_line,
            "watermark": engine.add_watermark,
            "forward": engine.bring_forward,
            "backward": engine.send_backward,
            "delete": engine.remove_selected,
            "undo": engine.undo,
            "redo": engine.redo,
            "clear": engine.clear,
            "image": self.choose_image,
            "save": self.save,
        }
        handler = handlers.get(action)
        if handler is not None:
            handler()
        self.toolbar.update_state(engine)

    # ───────────────────────────────────────────────
    # Template sources
    # ───────────────────────────────────────────────
    def _choose_json(self, target: QLineEdit):
        start_dir = os.path.dirname(target.text().strip()) or "config"
        path, _ = QFileDialog.getOpenFileName(
            self, self.strings.get("choose_json", ""), start_dir, "JSON (*.json)"
        )
        if path:
            target.setText(path)

    def _read_sources(self):
        settings_file = self.settings_path.text().strip()
        company_file = self.company_path.text().strip()
        settings = load_settings(settings_file) if settings_file else TemplateSettings()
        company = load_company(company_file) if company_file else CompanyRecord()
        return settings, company

    def compile_from_settings(self):
        try:
            settings, company = self._read_sources()
        except (OSError, ValueError) as e:
            self._emit_error(self.strings.get("compile_failed", ""), str(e))
            return
        graph = compile_template(settings, company)
        self.engine.load_graph(dumps(graph))
        self._emit_error(
            self.strings.get("done_title", ""),
            format_message(self.strings, "compiled", count=len(graph)),
            level="info",
        )

    def load_saved(self):
        try:
            payload = self.store.load()
        except StoreError as e:
            self._emit_error(self.strings.get("load_failed", ""), str(e))
            payload = None
        if payload:
            self.engine.load_graph(payload)
        else:
            self.compile_from_settings()
        self.canvas.fit_page()

    # ───────────────────────────────────────────────
    # Async image load
    # ───────────────────────────────────────────────
    def choose_image(self):
        path, _ = QFileDialog.getOpenFileName(
            self, self.strings.get("choose_image", ""), "", "Images (*.png *.jpg *.jpeg *.gif *.bmp *.webp)"
        )
        if path:
            self.load_image_async(path)

    def load_image_async(self, source: str):
        token = self.engine.request_image(source)
        if token is None:
            return
        worker = ImageLoadWorker(token, source, self.image_loader)
        worker.finished.connect(self._image_loaded)
        worker.failed.connect(self._image_failed)
        self._start(worker)

    # ───────────────────────────────────────────────
    # Save: one request in flight
    # ───────────────────────────────────────────────
    def save(self):
        payload = self.engine.begin_save()
        if payload is None:
            return
        self.toolbar.update_state(self.engine)
        worker = SaveWorker(self.store, payload)
        worker.finished.connect(self._save_finished)
        worker.failed.connect(self._save_failed)
        self._start(worker)

    def save_now(self) -> bool:
        """Blocking save for the close path; running workers report back first."""
        for thread, _worker in list(self._threads):
            thread.wait()
        QCoreApplication.processEvents()
        ok = self.engine.save(self.store)
        self.toolbar.update_state(self.engine)
        return ok

    def _image_loaded(self, token: int, image):
        self.engine.complete_image(token, image)

    def _image_failed(self, token: int, message: str):
        self.engine.fail_image(token, message)

    def _save_finished(self):
        self.engine.finish_save(True)
        self.toolbar.update_state(self.engine)
        self._emit_error(self.strings.get("done_title", ""), self.strings.get("saved", ""), level="info")

    def _save_failed(self, message: str):
        self.engine.finish_save(False, message)
        self.toolbar.update_state(self.engine)

    def _reap_threads(self):
        self._threads = [pair for pair in self._threads if not pair[0].isFinished()]

    def _start(self, worker: QObject):
        thread = QThread()
        worker.moveToThread(thread)
        thread.started.connect(worker.run)
        worker.finished.connect(thread.quit)
        worker.failed.connect(thread.quit)
        thread.finished.connect(worker.deleteLater)
        thread.finished.connect(self._reap_threads)
        self._threads.append((thread, worker))
        thread.start()

    # ───────────────────────────────────────────────
    def set_language(self, language: str):
        language = ensure_language(language)
        self.language = language
        strings = get_section(language, "editor")
        self.strings = strings

        self.settings_path.setPlaceholderText(strings.get("settings_placeholder", ""))
        self.company_path.setPlaceholderText(strings.get("company_placeholder", ""))
        self.choose_settings_btn.setText(strings.get("choose_settings", ""))
        self.choose_company_btn.setText(strings.get("choose_company", ""))
        self.compile_btn.setText(strings.get("compile", ""))
        self.reload_btn.setText(strings.get("reload", ""))
        self.toolbar.set_language(get_section(language, "toolbar"))
        self.panel.set_language(get_section(language, "properties"))

    def shutdown(self):
        for thread, _worker in list(self._threads):
            thread.quit()
            thread.wait()
        self.engine.close()

    def _emit_error(self, title: str, message: str, level: str = "error"):
        if self.error_notifier:
            self.error_notifier.emit_error(title, message, level)
