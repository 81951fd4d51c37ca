"""
Interactive editor engine.

One ``EditorEngine`` owns one scene graph and the surface that draws it.
Every public operation either applies completely or leaves the graph
untouched and reports a warning through ``on_warning``; nothing here
raises into the UI.
"""

from __future__ import annotations

import itertools
import logging
import time
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple, Union

from .history import HISTORY_LIMIT, History
from .image_loader import ImageLoadError, LoadedImage, load_image
from .models import (
    ELEMENT_TYPES,
    PAGE_HEIGHT,
    PAGE_WIDTH,
    Element,
    SceneGraph,
    TextboxElement,
)
from .scene_json import HISTORY_KEYS, SAVE_KEYS, SceneFormatError, dumps, graph_to_dict, loads
from .store import StoreError, TemplateStore

LOGGER = logging.getLogger(__name__)

IMAGE_BOX = 150

ID_PREFIXES = {
    "Textbox": "text",
    "Rect": "rect",
    "Circle": "circle",
    "Line": "line",
    "Image": "img",
}


# ─────────────────────────────────────────────
# Render surface
# ─────────────────────────────────────────────

class RenderSurface:
    """Whatever draws the graph. The engine is its only writer."""

    def render_graph(self, graph: SceneGraph, selected_ids: Tuple[str, ...]) -> None:
        raise NotImplementedError

    def dispose(self) -> None:
        raise NotImplementedError


class NullSurface(RenderSurface):
    def render_graph(self, graph: SceneGraph, selected_ids: Tuple[str, ...]) -> None:
        pass

    def dispose(self) -> None:
        pass


# ─────────────────────────────────────────────
# Engine
# ─────────────────────────────────────────────

class EditorEngine:
    def __init__(
        self,
        width: float = PAGE_WIDTH,
        height: float = PAGE_HEIGHT,
        initial_data: Union[str, bytes, Dict[str, Any], None] = None,
        surface: Optional[RenderSurface] = None,
        history_limit: int = HISTORY_LIMIT,
    ):
        self.width = width
        self.height = height
        self.graph = SceneGraph(width, height)
        self.surface: RenderSurface = surface or NullSurface()
        self.history = History(history_limit)

        # observers
        self.on_selection_changed: List[Callable[[Tuple[str, ...]], None]] = []
        self.on_structural_mutation: List[Callable[[SceneGraph], None]] = []
        self.on_dirty_changed: List[Callable[[bool], None]] = []
        self.on_warning: List[Callable[[str, str], None]] = []

        self._selection: List[str] = []
        self._editing_id: Optional[str] = None
        self._dirty = False
        self._restoring = False
        self._closed = False
        self._revision = 0

        self._ids = itertools.count(1)
        self._image_tokens = itertools.count(1)
        self._pending_images: Dict[int, str] = {}

        self._saving = False
        self._save_revision = 0

        if initial_data:
            self.load_graph(initial_data)
        else:
            self.history.reset(self._snapshot())
            self._refresh()

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------
    @property
    def dirty(self) -> bool:
        return self._dirty

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def selection(self) -> Tuple[str, ...]:
        return tuple(self._selection)

    @property
    def selected_id(self) -> Optional[str]:
        """The property panel binds to the first selected element only."""
        return self._selection[0] if self._selection else None

    @property
    def selected_element(self) -> Optional[Element]:
        return self.graph.get(self.selected_id) if self.selected_id else None

    @property
    def editing_text(self) -> bool:
        return self._editing_id is not None

    @property
    def saving(self) -> bool:
        return self._saving

    @property
    def can_save(self) -> bool:
        return self._dirty and not self._saving and not self._closed

    def can_undo(self) -> bool:
        return not self._closed and self.history.can_undo()

    def can_redo(self) -> bool:
        return not self._closed and self.history.can_redo()

    def element(self, element_id: str) -> Optional[Element]:
        return self.graph.get(element_id)

    # ------------------------------------------------------------------
    # Observers and bookkeeping
    # ------------------------------------------------------------------
    @staticmethod
    def _emit(listeners: Iterable[Callable], *args) -> None:
        for callback in list(listeners):
            callback(*args)

    def _warn(self, title: str, message: str) -> None:
        LOGGER.warning("%s: %s", title, message)
        self._emit(self.on_warning, title, message)

    def _set_dirty(self, flag: bool) -> None:
        if self._dirty != flag:
            self._dirty = flag
            self._emit(self.on_dirty_changed, flag)

    def _set_selection(self, ids: Iterable[str]) -> None:
        ids = list(dict.fromkeys(ids))
        if ids == self._selection:
            return
        self._selection = ids
        if self._editing_id and self._editing_id not in ids:
            self._editing_id = None
        self._emit(self.on_selection_changed, tuple(ids))

    def _refresh(self) -> None:
        self.surface.render_graph(self.graph, tuple(self._selection))

    def _snapshot(self) -> str:
        return dumps(self.graph, HISTORY_KEYS)

    def _commit(self) -> None:
        """Called after every completed structural mutation."""
        self._revision += 1
        if not self._restoring:
            self.history.push(self._snapshot())
        self._set_dirty(True)
        self._refresh()
        self._emit(self.on_structural_mutation, self.graph)

    @contextmanager
    def _history_suppressed(self):
        self._restoring = True
        try:
            yield
        finally:
            self._restoring = False

    def _new_id(self, prefix: str) -> str:
        while True:
            candidate = f"{prefix}_{int(time.time() * 1000)}_{next(self._ids)}"
            if candidate not in self.graph:
                return candidate

    def _selectable(self, element_id: Optional[str]) -> bool:
        element = self.graph.get(element_id) if element_id else None
        return element is not None and element.selectable and not element.is_guide

    # ------------------------------------------------------------------
    # Adding elements
    # ------------------------------------------------------------------
    def add_element(self, kind: str, attributes: Optional[Dict[str, Any]] = None,
                    id_prefix: Optional[str] = None) -> Optional[str]:
        """
        Create an element of ``kind`` from JSON-keyed ``attributes``, append
        it on top and select it. Returns the new id, or ``None`` when the
        kind or an attribute is rejected.
        """
        if self._closed:
            return None
        cls = ELEMENT_TYPES.get(kind)
        if cls is None:
            self._warn("Add element", f"Unknown element type: {kind!r}")
            return None

        table = cls.attribute_table()
        kwargs: Dict[str, Any] = {}
        try:
            for key, value in (attributes or {}).items():
                if key not in table:
                    raise ValueError(f"{kind} has no attribute '{key}'")
                kwargs[table[key][0]] = value
            element = cls(id=self._new_id(id_prefix or ID_PREFIXES[kind]), **kwargs)
        except (TypeError, ValueError) as exc:
            self._warn("Add element", str(exc))
            return None

        self.graph.append(element)
        self._set_selection([element.id])
        self._commit()
        return element.id

    def add_text(self, text: str = "Double-click to edit") -> Optional[str]:
        return self.add_element("Textbox", {
            "left": self.width / 2 - 80,
            "top": self.height / 2 - 15,
            "width": 160,
            "text": text,
            "fontSize": 16,
            "fontFamily": "Inter",
            "fill": "#1f2937",
        })

    def add_rect(self, **overrides: Any) -> Optional[str]:
        attributes = {
            "left": self.width / 2 - 60,
            "top": self.height / 2 - 30,
            "width": 120,
            "height": 60,
            "fill": "#3b82f6",
            "stroke": "#2563eb",
            "strokeWidth": 1,
            "rx": 4,
            "ry": 4,
        }
        attributes.update(overrides)
        return self.add_element("Rect", attributes)

    def add_circle(self) -> Optional[str]:
        return self.add_element("Circle", {
            "left": self.width / 2 - 30,
            "top": self.height / 2 - 30,
            "radius": 30,
            "fill": "#8b5cf6",
            "stroke": "#7c3aed",
            "strokeWidth": 1,
        })

    def add_line(self) -> Optional[str]:
        return self.add_element("Line", {
            "x1": self.width / 2 - 80,
            "y1": self.height / 2,
            "x2": self.width / 2 + 80,
            "y2": self.height / 2,
            "stroke": "#1f2937",
            "strokeWidth": 2,
        })

    def add_watermark(self, text: str = "DRAFT") -> Optional[str]:
        return self.add_element("Textbox", {
            "left": self.width / 2 - 100,
            "top": self.height / 2 - 40,
            "width": 200,
            "text": text,
            "fontSize": 48,
            "fontFamily": "Montserrat",
            "fill": "rgba(0,0,0,0.08)",
            "textAlign": "center",
            "angle": -30,
            "name": "watermark",
        }, id_prefix="watermark")

    # ------------------------------------------------------------------
    # Images: the graph stays interactive while a load is in flight
    # ------------------------------------------------------------------
    def request_image(self, source: str) -> Optional[int]:
        """Register a pending load. Hand the token back to ``complete_image``/``fail_image``."""
        if self._closed:
            return None
        token = next(self._image_tokens)
        self._pending_images[token] = source
        return token

    def complete_image(self, token: int, image: LoadedImage) -> Optional[str]:
        if self._pending_images.pop(token, None) is None:
            LOGGER.debug("Dropping stale image result %s", token)
            return None
        scale = min(IMAGE_BOX / (image.width or IMAGE_BOX), IMAGE_BOX / (image.height or IMAGE_BOX))
        return self.add_element("Image", {
            "left": self.width / 2 - IMAGE_BOX / 2,
            "top": self.height / 2 - IMAGE_BOX / 2,
            "width": image.width,
            "height": image.height,
            "src": image.data_url,
            "scaleX": scale,
            "scaleY": scale,
        })

    def fail_image(self, token: int, error: Any) -> bool:
        source = self._pending_images.pop(token, None)
        if source is None:
            return False
        self._warn("Image", f"Failed to load image {source[:80]}: {error}")
        return True

    def add_image(self, source: str, loader: Callable[[str], LoadedImage] = load_image) -> Optional[str]:
        token = self.request_image(source)
        if token is None:
            return None
        try:
            image = loader(source)
        except ImageLoadError as exc:
            self.fail_image(token, exc)
            return None
        return self.complete_image(token, image)

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------
    def set_selection(self, element_id: Optional[str]) -> bool:
        if self._closed:
            return False
        if element_id is None:
            self._set_selection([])
        elif not self._selectable(element_id):
            return False
        else:
            self._set_selection([element_id])
        self._refresh()
        return True

    def set_selection_many(self, ids: Iterable[str]) -> bool:
        if self._closed:
            return False
        ids = [i for i in ids if self._selectable(i)]
        self._set_selection(ids)
        self._refresh()
        return bool(ids)

    def select_all(self) -> bool:
        return self.set_selection_many(el.id for el in self.graph)

    def clear_selection(self) -> None:
        self.set_selection(None)

    # ------------------------------------------------------------------
    # Removal
    # ------------------------------------------------------------------
    def remove_selected(self) -> bool:
        if self._closed or not self._selection:
            return False
        removed = [
            self.graph.remove(element_id)
            for element_id in self._selection
            if self._selectable(element_id)
        ]
        self._set_selection([])
        if not any(removed):
            self._refresh()
            return False
        self._commit()
        return True

    def clear(self) -> bool:
        """Remove every element except the page-border guide."""
        if self._closed:
            return False
        self._set_selection([])
        if not self.graph.clear():
            self._refresh()
            return False
        self._commit()
        return True

    # ------------------------------------------------------------------
    # Restyle, move, resize
    # ------------------------------------------------------------------
    def update_property(self, element_id: str, key: str, value: Any) -> bool:
        """
        Set one attribute. ``width``/``height`` on sized elements go
        through :meth:`resize`, so intrinsic dimensions never change.
        """
        if self._closed:
            return False
        element = self.graph.get(element_id)
        if element is None:
            self._warn("Property", f"No element with id {element_id!r}")
            return False
        if key in ("width", "height") and element.intrinsic_size() is not None:
            return self.resize(element_id, **{key: value})
        try:
            element.set_attribute(key, value)
        except ValueError as exc:
            self._warn("Property", str(exc))
            return False
        self._commit()
        return True

    def move(self, element_id: str, left: float, top: float) -> bool:
        if self._closed:
            return False
        element = self.graph.get(element_id)
        if element is None or not element.evented:
            return False
        before = (element.left, element.top)
        try:
            element.set_attribute("left", left)
            element.set_attribute("top", top)
        except ValueError as exc:
            element.set_attribute("left", before[0])
            element.set_attribute("top", before[1])
            self._warn("Move", str(exc))
            return False
        self._commit()
        return True

    def resize(self, element_id: str, width: Optional[float] = None, height: Optional[float] = None) -> bool:
        """Turn a requested on-page size into scale factors."""
        if self._closed:
            return False
        element = self.graph.get(element_id)
        size = element.intrinsic_size() if element is not None else None
        if size is None:
            self._warn("Resize", f"Element {element_id!r} cannot be resized")
            return False

        changes = {}
        for key, requested, intrinsic in (("scaleX", width, size[0]), ("scaleY", height, size[1])):
            if requested is None:
                continue
            if isinstance(requested, bool) or not isinstance(requested, (int, float)) or requested < 0:
                self._warn("Resize", f"Invalid size {requested!r}")
                return False
            if intrinsic <= 0:
                self._warn("Resize", f"Element {element_id!r} has no intrinsic size to scale")
                return False
            changes[key] = requested / intrinsic
        if not changes:
            return False

        for key, scale in changes.items():
            element.set_attribute(key, scale)
        self._commit()
        return True

    # ------------------------------------------------------------------
    # Z-order
    # ------------------------------------------------------------------
    def bring_forward(self, element_id: Optional[str] = None) -> bool:
        element_id = element_id or self.selected_id
        if self._closed or not element_id or not self.graph.move_forward(element_id):
            return False
        self._commit()
        return True

    def send_backward(self, element_id: Optional[str] = None) -> bool:
        element_id = element_id or self.selected_id
        if self._closed or not element_id or not self.graph.move_backward(element_id):
            return False
        self._commit()
        return True

    # ------------------------------------------------------------------
    # Text edit mode
    # ------------------------------------------------------------------
    def begin_text_edit(self, element_id: str) -> bool:
        if self._closed or not isinstance(self.graph.get(element_id), TextboxElement):
            return False
        if not self.set_selection(element_id):
            return False
        self._editing_id = element_id
        return True

    def end_text_edit(self, text: Optional[str] = None) -> bool:
        element_id, self._editing_id = self._editing_id, None
        if element_id is None or text is None:
            return False
        element = self.graph.get(element_id)
        if element is None or element.get_attribute("text") == text:
            return False
        return self.update_property(element_id, "text", text)

    # ------------------------------------------------------------------
    # Undo / redo
    # ------------------------------------------------------------------
    def _restore(self, snapshot: str) -> None:
        # a snapshot we wrote ourselves; a parse failure here is a bug
        restored = loads(snapshot)
        with self._history_suppressed():
            self.graph.restore(restored.content())
            self.graph.background = restored.background
            self._set_selection(i for i in self._selection if self._selectable(i))
            self._commit()

    def undo(self) -> bool:
        if self._closed:
            return False
        snapshot = self.history.undo()
        if snapshot is None:
            return False
        self._restore(snapshot)
        return True

    def redo(self) -> bool:
        if self._closed:
            return False
        snapshot = self.history.redo()
        if snapshot is None:
            return False
        self._restore(snapshot)
        return True

    # ------------------------------------------------------------------
    # Keyboard
    # ------------------------------------------------------------------
    def handle_key(self, key: str, ctrl: bool = False, meta: bool = False, shift: bool = False,
                   in_text_input: bool = False) -> bool:
        """
        Returns True when the key was consumed. Ignored while focus sits
        in an unrelated text input or a textbox is being edited.
        """
        if self._closed or in_text_input or self.editing_text:
            return False
        command = ctrl or meta
        lowered = key.lower()
        if key in ("Delete", "Backspace"):
            self.remove_selected()
            return True
        if command and lowered == "z" and not shift:
            self.undo()
            return True
        if command and (lowered == "y" or (lowered == "z" and shift)):
            self.redo()
            return True
        return False

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------
    def serialize(self) -> str:
        return dumps(self.graph, SAVE_KEYS)

    def to_dict(self) -> Dict[str, Any]:
        return graph_to_dict(self.graph, SAVE_KEYS)

    def load_graph(self, payload: Union[str, bytes, Dict[str, Any], None]) -> bool:
        """
        Replace the whole graph. A malformed document leaves a guide-only
        graph and a warning; either way history restarts from here.
        """
        if self._closed:
            return False
        ok = True
        if payload:
            try:
                loaded = loads(payload)
            except SceneFormatError as exc:
                self._warn("Load template", f"Failed to load canvas data: {exc}")
                loaded = SceneGraph(self.width, self.height)
                ok = False
        else:
            loaded = SceneGraph(self.width, self.height)

        self.graph.restore(loaded.content())
        self.graph.background = loaded.background
        self.graph.version = loaded.version
        self._pending_images.clear()
        self._editing_id = None
        self._set_selection([])
        self.history.reset(self._snapshot())
        self._revision += 1
        self._set_dirty(False)
        self._refresh()
        self._emit(self.on_structural_mutation, self.graph)
        return ok

    # ------------------------------------------------------------------
    # Save: one request in flight at a time
    # ------------------------------------------------------------------
    def begin_save(self) -> Optional[str]:
        if self._closed or self._saving:
            return None
        self._saving = True
        self._save_revision = self._revision
        return self.serialize()

    def finish_save(self, ok: bool, error: Any = None) -> None:
        if not self._saving:
            return
        self._saving = False
        if not ok:
            self._warn("Save", f"Failed to save template: {error}")
            return
        # edits made while the request was out are still unsaved
        if self._revision == self._save_revision:
            self._set_dirty(False)
        LOGGER.info("Template saved")

    def save(self, store: TemplateStore) -> bool:
        payload = self.begin_save()
        if payload is None:
            return False
        try:
            store.save(payload)
        except StoreError as exc:
            self.finish_save(False, exc)
            return False
        self.finish_save(True)
        return True

    # ------------------------------------------------------------------
    def close(self) -> None:
        if self._closed:
            return
        self._pending_images.clear()
        self._editing_id = None
        self._selection = []
        self.surface.dispose()
        self.surface = NullSurface()
        self._closed = True
