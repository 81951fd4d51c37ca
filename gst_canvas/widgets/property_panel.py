from typing import Any, Dict, Optional

from PySide6.QtWidgets import (
    QWidget, QLabel, QLineEdit, QPushButton, QVBoxLayout, QHBoxLayout,
    QDoubleSpinBox, QComboBox, QColorDialog, QPlainTextEdit
)
from PySide6.QtCore import Signal

from gst_canvas.core.models import TEXT_ALIGNMENTS, Element, TextboxElement


class PropertyPanel(QWidget):
    """
    Shows the attributes of the first selected element. Nothing is
    written back until "Apply changes"; only edited keys are emitted.
    """

    propertyChanged = Signal(str, str, object)   # element id, json key, value

    def __init__(self, parent=None):
        super().__init__(parent)

        self.element: Optional[Element] = None
        self._loaded: Dict[str, Any] = {}
        self._rows: Dict[str, QWidget] = {}
        self.strings: dict = {}
        self.build_ui()
        self.set_element(None)

    # ───────────────────────────────────────────────
    # UI
    # ───────────────────────────────────────────────
    def build_ui(self):
        layout = QVBoxLayout(self)

        self.lbl_title = QLabel()
        layout.addWidget(self.lbl_title)

        self.spin_left = self._spin(-5000, 5000)
        self.spin_top = self._spin(-5000, 5000)
        self.spin_width = self._spin(0, 5000)
        self.spin_height = self._spin(0, 5000)
        self.spin_angle = self._spin(-360, 360)
        self.spin_opacity = self._spin(0, 1, step=0.05)

        self.edit_fill = QLineEdit()
        self.btn_fill = QPushButton("…")
        self.btn_fill.clicked.connect(lambda: self.pick_color(self.edit_fill))
        self.edit_stroke = QLineEdit()
        self.btn_stroke = QPushButton("…")
        self.btn_stroke.clicked.connect(lambda: self.pick_color(self.edit_stroke))
        self.spin_stroke_width = self._spin(0, 50)

        self.edit_text = QPlainTextEdit()
        self.edit_text.setFixedHeight(70)
        self.edit_font = QLineEdit()
        self.spin_font_size = self._spin(1, 400)
        self.cmb_weight = QComboBox()
        self.cmb_weight.addItems(["normal", "bold"])
        self.cmb_align = QComboBox()
        self.cmb_align.addItems(list(TEXT_ALIGNMENTS))

        for key, label, widgets in (
            ("left", "X:", (self.spin_left,)),
            ("top", "Y:", (self.spin_top,)),
            ("width", "Width:", (self.spin_width,)),
            ("height", "Height:", (self.spin_height,)),
            ("angle", "Angle:", (self.spin_angle,)),
            ("opacity", "Opacity:", (self.spin_opacity,)),
            ("fill", "Fill:", (self.edit_fill, self.btn_fill)),
            ("stroke", "Stroke:", (self.edit_stroke, self.btn_stroke)),
            ("strokeWidth", "Stroke width:", (self.spin_stroke_width,)),
            ("text", "Text:", (self.edit_text,)),
            ("fontFamily", "Font:", (self.edit_font,)),
            ("fontSize", "Font size:", (self.spin_font_size,)),
            ("fontWeight", "Weight:", (self.cmb_weight,)),
            ("textAlign", "Align:", (self.cmb_align,)),
        ):
            row = self._row(label, *widgets)
            self._rows[key] = row
            layout.addWidget(row)

        self.btn_apply = QPushButton("Apply changes")
        self.btn_apply.clicked.connect(self.apply_changes)
        layout.addWidget(self.btn_apply)

        layout.addStretch()

    # ───────────────────────────────────────────────
    def _row(self, label, *widgets):
        row = QWidget()
        h = QHBoxLayout(row)
        h.setContentsMargins(0, 0, 0, 0)
        lbl = QLabel(label)
        lbl.setObjectName("label")
        h.addWidget(lbl)
        for widget in widgets:
            h.addWidget(widget)
        return row

    @staticmethod
    def _spin(low, high, step=1.0):
        spin = QDoubleSpinBox()
        spin.setRange(low, high)
        spin.setDecimals(2)
        spin.setSingleStep(step)
        return spin

    def set_language(self, strings: dict):
        self.strings = strings
        self.btn_apply.setText(strings.get("apply", "Apply changes"))
        for key, row in self._rows.items():
            label = row.findChild(QLabel, "label")
            text = strings.get(f"field_{key}")
            if label is not None and text:
                label.setText(text)
        self._update_title()

    def _update_title(self):
        if self.element is None:
            self.lbl_title.setText(self.strings.get("no_selection", "Nothing selected"))
        else:
            name = self.element.name or self.element.id
            self.lbl_title.setText(f"{self.element.kind}: {name}")

    # ───────────────────────────────────────────────
    # Load the bound element
    # ───────────────────────────────────────────────
    def set_element(self, element: Optional[Element]):
        self.element = element
        self._loaded = self._read_element(element) if element is not None else {}

        for key, row in self._rows.items():
            row.setVisible(key in self._loaded)
        self.btn_apply.setEnabled(element is not None)
        self._update_title()

        for key, value in self._loaded.items():
            self._write_widget(key, value)

    @staticmethod
    def _read_element(element: Element) -> Dict[str, Any]:
        values: Dict[str, Any] = {}
        names = element.attribute_names()
        for key in ("left", "top", "angle", "opacity", "fill", "stroke", "strokeWidth",
                    "text", "fontFamily", "fontSize", "fontWeight", "textAlign"):
            if key in names:
                values[key] = element.get_attribute(key)
        size = element.scaled_size()
        if size is not None:
            values["width"] = size[0]
            if not isinstance(element, TextboxElement):
                values["height"] = size[1]
        return values

    def _write_widget(self, key: str, value: Any):
        if key in ("fill", "stroke"):
            getattr(self, f"edit_{key}").setText(value or "")
        elif key == "text":
            self.edit_text.setPlainText(value)
        elif key == "fontFamily":
            self.edit_font.setText(value)
        elif key == "fontWeight":
            self.cmb_weight.setCurrentText(str(value))
        elif key == "textAlign":
            self.cmb_align.setCurrentText(value)
        else:
            self._spin_for(key).setValue(float(value))

    def _spin_for(self, key: str) -> QDoubleSpinBox:
        return {
            "left": self.spin_left,
            "top": self.spin_top,
            "width": self.spin_width,
            "height": self.spin_height,
            "angle": self.spin_angle,
            "opacity": self.spin_opacity,
            "strokeWidth": self.spin_stroke_width,
            "fontSize": self.spin_font_size,
        }[key]

    def _read_widget(self, key: str) -> Any:
        if key in ("fill", "stroke"):
            text = getattr(self, f"edit_{key}").text().strip()
            return text or None
        if key == "text":
            return self.edit_text.toPlainText()
        if key == "fontFamily":
            return self.edit_font.text()
        if key == "fontWeight":
            return self.cmb_weight.currentText()
        if key == "textAlign":
            return self.cmb_align.currentText()
        return self._spin_for(key).value()

    # ───────────────────────────────────────────────
    def pick_color(self, target: QLineEdit):
        col = QColorDialog.getColor(parent=self)
        if col.isValid():
            target.setText(col.name())

    def changed_values(self) -> Dict[str, Any]:
        changed = {}
        for key, before in self._loaded.items():
            value = self._read_widget(key)
            if isinstance(before, (int, float)) and not isinstance(before, bool):
                if abs(value - before) < 0.005:
                    continue
            elif value == before:
                continue
            changed[key] = value
        return changed

    def apply_changes(self):
        if self.element is None:
            return
        element_id = self.element.id
        for key, value in self.changed_values().items():
            self.propertyChanged.emit(element_id, key, value)
