import json
import os

from PySide6.QtCore import Signal
from PySide6.QtWidgets import (
    QAbstractItemView,
    QFileDialog,
    QGroupBox,
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QPushButton,
    QRadioButton,
    QTableWidget,
    QTableWidgetItem,
    QVBoxLayout,
    QWidget,
)

from gst_canvas.core.json_loader import load_company, load_invoice, load_settings
from gst_canvas.core.pdf_exporter import export_invoice_pdf, export_scene_pdf
from gst_canvas.core.records import CompanyRecord, InvoiceRecord, TemplateSettings
from gst_canvas.core.tax import InvoiceTotals, format_currency
from gst_canvas.ui.locales import (
    available_languages,
    ensure_language,
    format_message,
    get_section,
)

BREAKDOWN_COLUMNS = ("sl", "description", "quantity", "rate", "base", "gst", "amount")


class ExportTab(QWidget):
    languageChanged = Signal(str)

    def __init__(self, get_canvas_data=None, parent=None, error_notifier=None):
        super().__init__(parent)
        self.get_canvas_data = get_canvas_data
        self.error_notifier = error_notifier
        self.language = ensure_language("en")
        self.strings: dict = {}
        self.available_languages = available_languages()

        layout = QVBoxLayout()

        self.path_edits = {}
        self.path_labels = {}
        for key in ("settings", "company", "invoice"):
            row = QHBoxLayout()
            label = QLabel()
            edit = QLineEdit()
            button = QPushButton("…")
            button.clicked.connect(lambda _checked=False, k=key: self.choose_json(k))
            row.addWidget(label)
            row.addWidget(edit, 1)
            row.addWidget(button)
            layout.addLayout(row)
            self.path_edits[key] = edit
            self.path_labels[key] = label

        self.export_dir = QLineEdit()
        layout.addWidget(self.export_dir)

        self.choose_btn = QPushButton()
        self.choose_btn.clicked.connect(self.choose_export_folder)
        layout.addWidget(self.choose_btn)

        export_row = QHBoxLayout()
        self.preview_btn = QPushButton()
        self.preview_btn.clicked.connect(self.preview_invoice)
        export_row.addWidget(self.preview_btn)
        self.export_invoice_btn = QPushButton()
        self.export_invoice_btn.clicked.connect(self.export_invoice)
        export_row.addWidget(self.export_invoice_btn)
        self.export_canvas_btn = QPushButton()
        self.export_canvas_btn.clicked.connect(self.export_canvas)
        self.export_canvas_btn.setEnabled(get_canvas_data is not None)
        export_row.addWidget(self.export_canvas_btn)
        layout.addLayout(export_row)

        self.breakdown = QTableWidget(0, len(BREAKDOWN_COLUMNS))
        self.breakdown.setEditTriggers(QAbstractItemView.EditTrigger.NoEditTriggers)
        self.breakdown.horizontalHeader().setStretchLastSection(True)
        layout.addWidget(self.breakdown, 1)

        self.totals_label = QLabel()
        self.totals_label.setWordWrap(True)
        layout.addWidget(self.totals_label)

        prefs_row = QHBoxLayout()
        self.load_prefs_btn = QPushButton()
        self.load_prefs_btn.clicked.connect(self.load_preferences)
        prefs_row.addWidget(self.load_prefs_btn)
        self.save_prefs_btn = QPushButton()
        self.save_prefs_btn.clicked.connect(self.save_preferences)
        prefs_row.addWidget(self.save_prefs_btn)
        layout.addLayout(prefs_row)

        self.language_box = QGroupBox()
        language_layout = QHBoxLayout()
        self.language_buttons: dict[str, QRadioButton] = {}
        for code in sorted(self.available_languages):
            button = QRadioButton()
            button.toggled.connect(lambda checked, code=code: self._on_language_toggle(code, checked))
            self.language_buttons[code] = button
            language_layout.addWidget(button)
        self.language_box.setLayout(language_layout)
        layout.addWidget(self.language_box)

        self.setLayout(layout)

    # ───────────────────────────────────────────────
    # Paths
    # ───────────────────────────────────────────────
    def path(self, key: str) -> str:
        return self.path_edits[key].text().strip()

    def get_export_dir(self) -> str:
        return self.export_dir.text().strip() or "export"

    def choose_json(self, key: str):
        start_dir = os.path.dirname(self.path(key)) or "config"
        path, _ = QFileDialog.getOpenFileName(
            self, self.strings.get("choose_json", ""), start_dir, "JSON (*.json)"
        )
        if path:
            self.path_edits[key].setText(path)

    def choose_export_folder(self):
        folder = QFileDialog.getExistingDirectory(
            self, self.strings.get("select_folder", ""), self.get_export_dir()
        )
        if folder:
            self.export_dir.setText(folder)

    # ───────────────────────────────────────────────
    # Export
    # ───────────────────────────────────────────────
    def _load_records(self):
        """Settings, company and invoice from the chosen files, or None after reporting why."""
        if not self.path("invoice"):
            self._emit_error(
                self.strings.get("error_title", ""),
                self.strings.get("invoice_required", ""),
                level="warning",
            )
            return None

        try:
            settings = load_settings(self.path("settings")) if self.path("settings") else None
            company = load_company(self.path("company")) if self.path("company") else None
            invoice = load_invoice(self.path("invoice"))
        except (OSError, ValueError) as e:
            self._emit_error(self.strings.get("error_title", ""), str(e))
            return None
        return settings or TemplateSettings(), company or CompanyRecord(), invoice

    def preview_invoice(self):
        records = self._load_records()
        if records is None:
            return
        invoice = records[2]
        self.show_totals(invoice, invoice.totals())

    def export_invoice(self):
        records = self._load_records()
        if records is None:
            return
        settings, company, invoice = records

        safe_name = "".join(c if c.isalnum() or c in "-_" else "_" for c in invoice.invoice_no) or "invoice"
        out = os.path.join(self.get_export_dir(), f"{safe_name}.pdf")
        try:
            layout = export_invoice_pdf(settings, company, invoice, out)
        except OSError as e:
            self._emit_error(self.strings.get("error_title", ""), str(e))
            return

        self.show_totals(invoice, layout.totals)
        self.totals_label.setText(
            self.totals_label.text() + "\n" + format_message(
                self.strings,
                "totals_summary",
                total=format_currency(layout.totals.grand_total),
                pages=layout.page_count,
            )
        )
        self._emit_error(
            self.strings.get("done_title", ""),
            format_message(self.strings, "pdf_exported", path=out),
            level="info",
        )

    # ───────────────────────────────────────────────
    # Totals breakdown
    # ───────────────────────────────────────────────
    def show_totals(self, invoice: InvoiceRecord, totals: InvoiceTotals):
        """Same numbers the PDF prints: per-line base/GST and the invoice totals."""
        self.breakdown.setRowCount(0)
        for item, line in zip(invoice.items, totals.lines):
            row = self.breakdown.rowCount()
            self.breakdown.insertRow(row)
            cells = (
                str(item.sl_no),
                item.description,
                format(line.quantity.normalize(), "f"),
                format_currency(line.rate),
                format_currency(line.base_amount),
                f"{format_currency(line.gst_amount)} ({format(line.gst_percent.normalize(), 'f')}%)",
                format_currency(line.amount),
            )
            for column, text in enumerate(cells):
                self.breakdown.setItem(row, column, QTableWidgetItem(text))
        self.breakdown.resizeColumnsToContents()

        parts = [
            format_message(self.strings, "subtotal", value=format_currency(totals.subtotal)),
        ]
        if totals.discount_amount > 0:
            parts.append(format_message(
                self.strings, "discount",
                percent=format(totals.discount_percent.normalize(), "f"),
                value=format_currency(totals.discount_amount),
            ))
        parts += [
            format_message(self.strings, "taxable", value=format_currency(totals.taxable_amount)),
            format_message(self.strings, "tax", value=format_currency(totals.tax_amount)),
            format_message(self.strings, "round_off", value=f"{totals.round_off:+.2f}"),
            format_message(self.strings, "grand_total", value=format_currency(totals.grand_total)),
        ]
        self.totals_label.setText("   ".join(parts) + "\n" + totals.amount_in_words)

    def export_canvas(self):
        if self.get_canvas_data is None:
            return
        out = os.path.join(self.get_export_dir(), "canvas.pdf")
        try:
            export_scene_pdf(self.get_canvas_data(), out)
        except (OSError, ValueError) as e:
            self._emit_error(self.strings.get("error_title", ""), str(e))
            return
        self._emit_error(
            self.strings.get("done_title", ""),
            format_message(self.strings, "pdf_exported", path=out),
            level="info",
        )

    # ───────────────────────────────────────────────
    # Preferences
    # ───────────────────────────────────────────────
    def _gather_preferences(self) -> dict:
        prefs = {"language": self.language, "export_dir": self.export_dir.text().strip()}
        for key in self.path_edits:
            prefs[f"{key}_path"] = self.path(key)
        return prefs

    def save_preferences(self):
        path, _ = QFileDialog.getSaveFileName(
            self, self.strings.get("save_preferences", ""), "config", "JSON (*.json)"
        )
        if not path:
            return
        try:
            with open(path, "w", encoding="utf-8") as f:
                json.dump(self._gather_preferences(), f, ensure_ascii=False, indent=2)
        except OSError as e:
            self._emit_error(self.strings.get("error_title", ""), str(e))
            return
        self._emit_error(
            self.strings.get("done_title", ""),
            format_message(self.strings, "preferences_saved", path=path),
            level="info",
        )

    def load_preferences(self):
        path, _ = QFileDialog.getOpenFileName(
            self, self.strings.get("load_preferences", ""), "config", "JSON (*.json)"
        )
        if not path:
            return
        try:
            with open(path, "r", encoding="utf-8") as f:
                loaded = json.load(f)
        except (OSError, ValueError) as e:
            self._emit_error(self.strings.get("error_title", ""), str(e))
            return
        if not isinstance(loaded, dict):
            self._emit_error(self.strings.get("error_title", ""), self.strings.get("invalid_preferences", ""))
            return

        self.export_dir.setText(str(loaded.get("export_dir") or ""))
        for key, edit in self.path_edits.items():
            edit.setText(str(loaded.get(f"{key}_path") or ""))
        language = loaded.get("language")
        if language:
            self._on_language_toggle(language, True)
        self._emit_error(
            self.strings.get("done_title", ""),
            format_message(self.strings, "preferences_loaded", path=path),
            level="info",
        )

    # ───────────────────────────────────────────────
    def set_language(self, language: str):
        language = ensure_language(language)
        self.language = language
        strings = get_section(language, "export")
        self.strings = strings

        for key, label in self.path_labels.items():
            label.setText(strings.get(f"{key}_label", key.title()))
            self.path_edits[key].setPlaceholderText(strings.get(f"{key}_placeholder", ""))
        self.export_dir.setPlaceholderText(strings.get("directory_placeholder", ""))
        self.choose_btn.setText(strings.get("choose_folder", ""))
        self.preview_btn.setText(strings.get("preview_totals", ""))
        self.export_invoice_btn.setText(strings.get("export_invoice", ""))
        self.export_canvas_btn.setText(strings.get("export_canvas", ""))
        self.load_prefs_btn.setText(strings.get("load_preferences", ""))
        self.save_prefs_btn.setText(strings.get("save_preferences", ""))
        self.language_box.setTitle(strings.get("language_label", ""))
        self.breakdown.setHorizontalHeaderLabels(
            [strings.get(f"column_{key}", key.title()) for key in BREAKDOWN_COLUMNS]
        )

        language_labels = strings.get("languages", self.available_languages)
        for code, button in self.language_buttons.items():
            button.blockSignals(True)
            button.setText(language_labels.get(code, self.available_languages.get(code, code)))
            button.setChecked(code == language)
            button.blockSignals(False)

    def _on_language_toggle(self, selected_language: str, checked: bool):
        if not checked:
            return
        selected_language = ensure_language(selected_language)
        if selected_language != self.language:
            self.set_language(selected_language)
            self.languageChanged.emit(selected_language)

    def _emit_error(self, title: str, message: str, level: str = "error"):
        if self.error_notifier:
            self.error_notifier.emit_error(title, message, level)
