import logging
from collections import Counter
from datetime import datetime

from PySide6.QtCore import Qt
from PySide6.QtGui import QBrush, QColor, QGuiApplication
from PySide6.QtWidgets import (
    QAbstractItemView,
    QComboBox,
    QHBoxLayout,
    QLabel,
    QPushButton,
    QTableWidget,
    QTableWidgetItem,
    QVBoxLayout,
    QWidget,
)

from gst_canvas.ui.locales import ensure_language, format_message, get_section

LOGGER = logging.getLogger(__name__)

LEVELS = ("error", "warning", "info")
LEVEL_COLORS = {
    "error": "#fee2e2",
    "warning": "#fef3c7",
}
COLUMNS = ("timestamp", "level", "title", "details")


class ErrorLogWidget(QWidget):
    """
    Log of editor warnings, failed saves/loads and export notices.
    Rows can be filtered by level; hidden rows are kept, not dropped.
    """

    def __init__(self, parent=None):
        super().__init__(parent)
        self.language = ensure_language("en")
        self.strings: dict = {}
        self.counts: Counter = Counter()

        layout = QVBoxLayout()

        filter_row = QHBoxLayout()
        self.filter_label = QLabel()
        filter_row.addWidget(self.filter_label)
        self.level_filter = QComboBox()
        self.level_filter.addItem("", None)
        for level in LEVELS:
            self.level_filter.addItem("", level)
        self.level_filter.currentIndexChanged.connect(self.apply_filter)
        filter_row.addWidget(self.level_filter)
        filter_row.addStretch(1)
        self.summary_label = QLabel()
        filter_row.addWidget(self.summary_label)
        layout.addLayout(filter_row)

        self.table = QTableWidget(0, len(COLUMNS))
        self.table.horizontalHeader().setStretchLastSection(True)
        self.table.setSelectionBehavior(QAbstractItemView.SelectionBehavior.SelectRows)
        self.table.itemSelectionChanged.connect(self.update_copy_button_state)
        layout.addWidget(self.table)

        controls = QHBoxLayout()
        self.copy_button = QPushButton()
        self.copy_button.clicked.connect(self.copy_selected)
        controls.addWidget(self.copy_button)
        self.clear_button = QPushButton()
        self.clear_button.clicked.connect(self.clear_entries)
        controls.addWidget(self.clear_button)
        controls.addStretch(1)
        layout.addLayout(controls)

        self.setLayout(layout)
        self.set_language(self.language)

    # ───────────────────────────────────────────────
    def set_language(self, language: str):
        language = ensure_language(language)
        self.language = language
        self.strings = get_section(language, "error_log")

        self.table.setHorizontalHeaderLabels([self.strings.get(key, key.title()) for key in COLUMNS])
        self.filter_label.setText(self.strings.get("filter_label", ""))
        self.level_filter.setItemText(0, self.strings.get("filter_all", "All"))
        for idx, level in enumerate(LEVELS, start=1):
            self.level_filter.setItemText(idx, self.strings.get(f"level_{level}", level))
        self.copy_button.setText(self.strings.get("copy", "Copy"))
        self.clear_button.setText(self.strings.get("clear", "Clear"))
        self._update_summary()
        self.update_copy_button_state()

    # ───────────────────────────────────────────────
    # Entries
    # ───────────────────────────────────────────────
    def add_entry(self, title: str, message: str, level: str = "error"):
        level = level if level in LEVELS else "error"
        if level == "info":
            LOGGER.info("%s: %s", title, message)

        row = self.table.rowCount()
        self.table.insertRow(row)
        background = LEVEL_COLORS.get(level)
        cells = (datetime.now().strftime("%Y-%m-%d %H:%M:%S"), level, title, message)
        for column, text in enumerate(cells):
            item = QTableWidgetItem(text)
            item.setFlags(item.flags() & ~Qt.ItemIsEditable)
            if background:
                item.setBackground(QBrush(QColor(background)))
            self.table.setItem(row, column, item)

        self.counts[level] += 1
        self.table.setRowHidden(row, not self._visible(level))
        self.table.resizeColumnsToContents()
        self.table.scrollToBottom()
        self._update_summary()

    def entry_count(self, level: str = None) -> int:
        if level is None:
            return self.table.rowCount()
        return self.counts[level]

    def clear_entries(self):
        self.table.setRowCount(0)
        self.counts.clear()
        self._update_summary()
        self.update_copy_button_state()

    # ───────────────────────────────────────────────
    # Filtering
    # ───────────────────────────────────────────────
    def _visible(self, level: str) -> bool:
        wanted = self.level_filter.currentData()
        return wanted is None or wanted == level

    def apply_filter(self):
        for row in range(self.table.rowCount()):
            item = self.table.item(row, COLUMNS.index("level"))
            self.table.setRowHidden(row, not self._visible(item.text() if item else ""))
        self.update_copy_button_state()

    def _update_summary(self):
        self.summary_label.setText(format_message(
            self.strings, "summary",
            errors=self.counts["error"], warnings=self.counts["warning"], info=self.counts["info"],
        ))

    # ───────────────────────────────────────────────
    def _selected_rows(self):
        rows = {index.row() for index in self.table.selectedIndexes()}
        return sorted(row for row in rows if not self.table.isRowHidden(row))

    def copy_selected(self):
        rows = self._selected_rows()
        if not rows:
            return
        lines = []
        for row in rows:
            cells = (self.table.item(row, column) for column in range(len(COLUMNS)))
            lines.append(" | ".join(cell.text() for cell in cells if cell and cell.text()))
        QGuiApplication.clipboard().setText("\n".join(lines))

    def update_copy_button_state(self):
        self.copy_button.setEnabled(bool(self._selected_rows()))
