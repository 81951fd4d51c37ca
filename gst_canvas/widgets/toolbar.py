from PySide6.QtCore import Signal
from PySide6.QtWidgets import QHBoxLayout, QPushButton, QWidget

from gst_canvas.core.editor import EditorEngine

ACTIONS = (
    ("text", "Text"),
    ("rect", "Rectangle"),
    ("circle", "Circle"),
    ("line", "Line"),
    ("image", "Image"),
    ("watermark", "Watermark"),
    ("forward", "Bring forward"),
    ("backward", "Send backward"),
    ("delete", "Delete"),
    ("undo", "Undo"),
    ("redo", "Redo"),
    ("clear", "Clear"),
    ("save", "Save"),
)


class EditorToolbar(QWidget):
    actionTriggered = Signal(str)

    def __init__(self, parent=None):
        super().__init__(parent)
        layout = QHBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)
        self.buttons = {}
        for action, label in ACTIONS:
            button = QPushButton(label)
            button.clicked.connect(lambda _checked=False, a=action: self.actionTriggered.emit(a))
            layout.addWidget(button)
            self.buttons[action] = button
        layout.addStretch(1)

    def set_language(self, strings: dict):
        for action, label in ACTIONS:
            self.buttons[action].setText(strings.get(f"action_{action}", label))

    def update_state(self, engine: EditorEngine):
        open_ = not engine.closed
        has_selection = open_ and engine.selected_id is not None
        for action in ("text", "rect", "circle", "line", "image", "watermark"):
            self.buttons[action].setEnabled(open_)
        for action in ("forward", "backward", "delete"):
            self.buttons[action].setEnabled(has_selection)
        self.buttons["undo"].setEnabled(engine.can_undo())
        self.buttons["redo"].setEnabled(engine.can_redo())
        self.buttons["clear"].setEnabled(open_ and len(engine.graph) > 0)
        self.buttons["save"].setEnabled(engine.can_save)
