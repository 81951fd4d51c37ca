"""QGraphicsView surface the editor engine renders into."""

from __future__ import annotations

import re
from typing import Dict, Optional, Tuple

from PySide6.QtCore import QRectF, Qt, Signal
from PySide6.QtGui import QBrush, QColor, QFont, QPainter, QPen, QPixmap, QTextOption, QTransform
from PySide6.QtWidgets import (
    QGraphicsEllipseItem,
    QGraphicsItem,
    QGraphicsLineItem,
    QGraphicsPixmapItem,
    QGraphicsRectItem,
    QGraphicsScene,
    QGraphicsTextItem,
    QGraphicsView,
)

from gst_canvas.core.editor import EditorEngine
from gst_canvas.core.image_loader import ImageLoadError, decode_data_url
from gst_canvas.core.models import (
    CircleElement,
    Element,
    ImageElement,
    LineElement,
    RectElement,
    SceneGraph,
    TextboxElement,
)

ELEMENT_ID_ROLE = 0
_RGBA = re.compile(r"^\s*rgba?\(([^)]*)\)\s*$")


def qcolor(value: Optional[str]) -> Optional[QColor]:
    if not value or value == "transparent":
        return None
    match = _RGBA.match(value)
    if match:
        parts = [p.strip() for p in match.group(1).split(",")]
        try:
            r, g, b = (int(float(p)) for p in parts[:3])
            alpha = float(parts[3]) if len(parts) > 3 else 1.0
        except ValueError:
            return None
        return QColor(r, g, b, int(alpha * 255))
    color = QColor(value)
    return color if color.isValid() else None


def _pen(color: Optional[str], width: float) -> QPen:
    c = qcolor(color)
    if c is None or width <= 0:
        return QPen(Qt.NoPen)
    return QPen(c, width)


def _brush(color: Optional[str]) -> QBrush:
    c = qcolor(color)
    return QBrush(c) if c is not None else QBrush(Qt.NoBrush)


class _EditableTextItem(QGraphicsTextItem):
    """Double-click starts live text editing; losing focus ends it."""

    def __init__(self, view: "CanvasView", element_id: str, text: str):
        super().__init__(text)
        self.view = view
        self.element_id = element_id

    def mouseDoubleClickEvent(self, event):
        if self.view.begin_text_edit(self.element_id):
            self.setTextInteractionFlags(Qt.TextEditorInteraction)
            self.setFocus(Qt.MouseFocusReason)
        super().mouseDoubleClickEvent(event)

    def focusOutEvent(self, event):
        super().focusOutEvent(event)
        if self.textInteractionFlags() & Qt.TextEditorInteraction:
            self.setTextInteractionFlags(Qt.NoTextInteraction)
            self.view.end_text_edit(self.toPlainText())


class CanvasView(QGraphicsView):
    """
    Draws a scene graph and forwards pointer and keyboard input to the
    engine. Items are synced incrementally so a render triggered mid-drag
    keeps the dragged item alive.
    """

    elementMoved = Signal(str)

    def __init__(self, parent=None):
        super().__init__(parent)
        self.engine: Optional[EditorEngine] = None
        self._scene = QGraphicsScene(self)
        self.setScene(self._scene)
        self._items: Dict[str, QGraphicsItem] = {}
        self._signatures: Dict[str, str] = {}
        self._guide: Optional[QGraphicsRectItem] = None
        self._syncing = False

        self.setRenderHint(QPainter.Antialiasing, True)
        self.setRenderHint(QPainter.SmoothPixmapTransform, True)
        self.setViewportUpdateMode(QGraphicsView.FullViewportUpdate)
        self.setDragMode(QGraphicsView.RubberBandDrag)
        self.setFocusPolicy(Qt.StrongFocus)

        self._scene.selectionChanged.connect(self._on_selection_changed)

    # ------------------------------------------------------------------
    def bind(self, engine: EditorEngine):
        self.engine = engine
        engine.surface = self
        self.render_graph(engine.graph, engine.selection)

    # ------------------------------------------------------------------
    # RenderSurface
    # ------------------------------------------------------------------
    def render_graph(self, graph: SceneGraph, selected_ids: Tuple[str, ...]) -> None:
        self._syncing = True
        try:
            self._scene.setBackgroundBrush(_brush(graph.background))
            self._scene.setSceneRect(QRectF(-40, -40, graph.width + 80, graph.height + 80))
            self._sync_guide(graph)

            alive = set()
            for z, element in enumerate(graph, start=1):
                alive.add(element.id)
                signature = repr((element.kind, element.visual_attributes(), element.selectable, element.evented))
                item = self._items.get(element.id)
                if item is None or self._signatures.get(element.id) != signature:
                    if item is not None:
                        self._scene.removeItem(item)
                    item = self._create_item(element)
                    self._items[element.id] = item
                    self._signatures[element.id] = signature
                    self._scene.addItem(item)
                item.setZValue(z)
                item.setSelected(element.id in selected_ids)

            for element_id in list(self._items):
                if element_id not in alive:
                    self._scene.removeItem(self._items.pop(element_id))
                    self._signatures.pop(element_id, None)
        finally:
            self._syncing = False

    def dispose(self) -> None:
        self._syncing = True
        self._scene.clear()
        self._items.clear()
        self._signatures.clear()
        self._guide = None
        self.engine = None
        self._syncing = False

    # ------------------------------------------------------------------
    def _sync_guide(self, graph: SceneGraph):
        guide = graph.guide
        if self._guide is None:
            self._guide = QGraphicsRectItem()
            self._guide.setZValue(0)
            self._guide.setFlag(QGraphicsItem.ItemIsSelectable, False)
            self._scene.addItem(self._guide)
        self._guide.setRect(QRectF(guide.left, guide.top, guide.width, guide.height))
        self._guide.setPen(_pen(guide.stroke, guide.stroke_width))
        self._guide.setBrush(_brush(guide.fill))

    def _create_item(self, element: Element) -> QGraphicsItem:
        if isinstance(element, RectElement):
            item = QGraphicsRectItem(0, 0, element.width, element.height)
            item.setPen(_pen(element.stroke, element.stroke_width))
            item.setBrush(_brush(element.fill))
        elif isinstance(element, CircleElement):
            item = QGraphicsEllipseItem(0, 0, element.radius * 2, element.radius * 2)
            item.setPen(_pen(element.stroke, element.stroke_width))
            item.setBrush(_brush(element.fill))
        elif isinstance(element, LineElement):
            item = QGraphicsLineItem(
                element.x1 - element.left, element.y1 - element.top,
                element.x2 - element.left, element.y2 - element.top,
            )
            item.setPen(_pen(element.stroke, element.stroke_width))
        elif isinstance(element, ImageElement):
            pixmap = QPixmap()
            try:
                pixmap.loadFromData(decode_data_url(element.src))
            except ImageLoadError:
                pixmap = QPixmap(int(element.width) or 1, int(element.height) or 1)
                pixmap.fill(QColor("#d1d5db"))
            item = QGraphicsPixmapItem(pixmap)
            item.setTransformationMode(Qt.SmoothTransformation)
        else:
            item = self._create_text(element)

        item.setData(ELEMENT_ID_ROLE, element.id)
        item.setPos(element.left, element.top)
        item.setTransform(QTransform.fromScale(element.scale_x, element.scale_y))
        item.setRotation(element.angle)
        item.setOpacity(element.opacity)
        item.setFlag(QGraphicsItem.ItemIsSelectable, element.selectable)
        item.setFlag(QGraphicsItem.ItemIsMovable, element.selectable and element.evented)
        return item

    def _create_text(self, element: TextboxElement) -> QGraphicsTextItem:
        item = _EditableTextItem(self, element.id, element.text)
        font = QFont(element.font_family)
        font.setPixelSize(max(1, int(round(element.font_size))))
        weight = element.font_weight
        font.setBold(weight == "bold" or (isinstance(weight, int) and weight >= 600))
        item.setFont(font)
        item.setTextWidth(element.width)
        color = qcolor(element.fill)
        if color is not None:
            item.setDefaultTextColor(color)
        option = item.document().defaultTextOption()
        option.setAlignment({
            "center": Qt.AlignHCenter,
            "right": Qt.AlignRight,
        }.get(element.text_align, Qt.AlignLeft))
        option.setWrapMode(QTextOption.WordWrap)
        item.document().setDefaultTextOption(option)
        return item

    # ------------------------------------------------------------------
    # Input -> engine
    # ------------------------------------------------------------------
    def _element_id(self, item: QGraphicsItem) -> Optional[str]:
        value = item.data(ELEMENT_ID_ROLE)
        return value if isinstance(value, str) and value else None

    def _on_selection_changed(self):
        if self._syncing or self.engine is None:
            return
        ids = [i for i in (self._element_id(item) for item in self._scene.selectedItems()) if i]
        if ids:
            self.engine.set_selection_many(ids)
        else:
            self.engine.set_selection(None)

    def mouseReleaseEvent(self, event):
        super().mouseReleaseEvent(event)
        if self.engine is None:
            return
        for item in self._scene.selectedItems():
            element_id = self._element_id(item)
            element = self.engine.element(element_id) if element_id else None
            if element is None:
                continue
            pos = item.pos()
            if (pos.x(), pos.y()) != (element.left, element.top):
                if self.engine.move(element_id, pos.x(), pos.y()):
                    self.elementMoved.emit(element_id)

    def keyPressEvent(self, event):
        if self.engine is None or self.engine.editing_text:
            super().keyPressEvent(event)
            return
        key = {
            Qt.Key_Delete: "Delete",
            Qt.Key_Backspace: "Backspace",
            Qt.Key_Z: "z",
            Qt.Key_Y: "y",
        }.get(event.key())
        modifiers = event.modifiers()
        if key and self.engine.handle_key(
            key,
            ctrl=bool(modifiers & Qt.ControlModifier),
            meta=bool(modifiers & Qt.MetaModifier),
            shift=bool(modifiers & Qt.ShiftModifier),
        ):
            event.accept()
            return
        super().keyPressEvent(event)

    def wheelEvent(self, event):
        if event.modifiers() & Qt.ControlModifier:
            factor = 1.15 if event.angleDelta().y() > 0 else 1 / 1.15
            self.scale(factor, factor)
            return
        super().wheelEvent(event)

    def fit_page(self):
        self.fitInView(self._scene.sceneRect(), Qt.KeepAspectRatio)

    # ------------------------------------------------------------------
    def begin_text_edit(self, element_id: str) -> bool:
        return self.engine is not None and self.engine.begin_text_edit(element_id)

    def end_text_edit(self, text: str):
        if self.engine is not None:
            self.engine.end_text_edit(text)
