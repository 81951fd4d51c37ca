"""Dataclasses that describe the printable document scene graph."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any, Callable, ClassVar, Dict, Iterator, List, Optional, Tuple

# A4 at 72 DPI
PAGE_WIDTH = 595
PAGE_HEIGHT = 842

FORMAT_VERSION = "6.6.1"
DEFAULT_BACKGROUND = "#ffffff"

TEXT_ALIGNMENTS = ("left", "center", "right")


# ─────────────────────────────────────────────
# Attribute checkers
# ─────────────────────────────────────────────

def _number(key: str, value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"'{key}' must be a number, got {value!r}")
    return value


def _non_negative(key: str, value: Any) -> float:
    value = _number(key, value)
    if value < 0:
        raise ValueError(f"'{key}' must be >= 0, got {value!r}")
    return value


def _opacity(key: str, value: Any) -> float:
    value = _number(key, value)
    if not 0 <= value <= 1:
        raise ValueError(f"'{key}' must be within [0, 1], got {value!r}")
    return value


def _text(key: str, value: Any) -> str:
    if not isinstance(value, str):
        raise ValueError(f"'{key}' must be a string, got {value!r}")
    return value


def _optional_text(key: str, value: Any) -> Optional[str]:
    if value is None:
        return None
    return _text(key, value)


def _flag(key: str, value: Any) -> bool:
    if not isinstance(value, bool):
        raise ValueError(f"'{key}' must be true or false, got {value!r}")
    return value


def _align(key: str, value: Any) -> str:
    if value not in TEXT_ALIGNMENTS:
        raise ValueError(f"'{key}' must be one of {', '.join(TEXT_ALIGNMENTS)}")
    return value


def _font_weight(key: str, value: Any) -> Any:
    if isinstance(value, bool) or not isinstance(value, (str, int)):
        raise ValueError(f"'{key}' must be a weight name or number, got {value!r}")
    return value


Checker = Callable[[str, Any], Any]

# json key -> (dataclass field, checker)
COMMON_ATTRIBUTES: Dict[str, Tuple[str, Checker]] = {
    "name": ("name", _optional_text),
    "left": ("left", _number),
    "top": ("top", _number),
    "opacity": ("opacity", _opacity),
    "angle": ("angle", _number),
    "scaleX": ("scale_x", _non_negative),
    "scaleY": ("scale_y", _non_negative),
    "selectable": ("selectable", _flag),
    "evented": ("evented", _flag),
}

# Emitted by the codec only when the active allow-list names them.
FLAG_KEYS = ("selectable", "evented", "excludeFromExport")


# ─────────────────────────────────────────────
# Elements
# ─────────────────────────────────────────────

@dataclass(eq=False)
class Element:
    id: str = ""
    name: Optional[str] = None
    left: float = 0
    top: float = 0
    opacity: float = 1.0
    angle: float = 0
    scale_x: float = 1.0
    scale_y: float = 1.0
    selectable: bool = True
    evented: bool = True
    exclude_from_export: bool = False
    extras: Dict[str, Any] = field(default_factory=dict)

    kind: ClassVar[str] = ""
    ATTRIBUTES: ClassVar[Dict[str, Tuple[str, Checker]]] = {}

    def __post_init__(self):
        for key, (attr, checker) in self.attribute_table().items():
            checker(key, getattr(self, attr))

    # identity is by id, never by attribute equality
    def __eq__(self, other) -> bool:
        if not isinstance(other, Element):
            return NotImplemented
        return self is other or (bool(self.id) and self.id == other.id)

    def __hash__(self) -> int:
        return hash(self.id) if self.id else id(self)

    @property
    def is_guide(self) -> bool:
        return self.exclude_from_export

    @classmethod
    def attribute_table(cls) -> Dict[str, Tuple[str, Checker]]:
        table = dict(COMMON_ATTRIBUTES)
        table.update(cls.ATTRIBUTES)
        return table

    @classmethod
    def attribute_names(cls) -> Tuple[str, ...]:
        return tuple(cls.attribute_table())

    def get_attribute(self, key: str) -> Any:
        table = self.attribute_table()
        if key not in table:
            raise KeyError(f"{self.kind} has no attribute '{key}'")
        return getattr(self, table[key][0])

    def set_attribute(self, key: str, value: Any) -> None:
        table = self.attribute_table()
        if key not in table:
            raise ValueError(f"{self.kind} has no attribute '{key}'")
        attr, checker = table[key]
        setattr(self, attr, checker(key, value))

    def visual_attributes(self) -> Dict[str, Any]:
        """Every attribute except identity and flags, keyed by its JSON name."""
        return {
            key: getattr(self, attr)
            for key, (attr, _checker) in self.attribute_table().items()
            if key not in FLAG_KEYS and key != "name"
        }

    def intrinsic_size(self) -> Optional[Tuple[float, float]]:
        return None

    def scaled_size(self) -> Optional[Tuple[float, float]]:
        size = self.intrinsic_size()
        if size is None:
            return None
        return size[0] * self.scale_x, size[1] * self.scale_y

    def same_attributes(self, other: "Element") -> bool:
        return (
            self.kind == other.kind
            and self.id == other.id
            and self.name == other.name
            and self.selectable == other.selectable
            and self.evented == other.evented
            and self.visual_attributes() == other.visual_attributes()
            and self.extras == other.extras
        )

    def clone(self) -> "Element":
        return copy.deepcopy(self)


@dataclass(eq=False)
class RectElement(Element):
    width: float = 0
    height: float = 0
    fill: Optional[str] = "#000000"
    stroke: Optional[str] = None
    stroke_width: float = 1
    rx: float = 0
    ry: float = 0

    kind: ClassVar[str] = "Rect"
    ATTRIBUTES: ClassVar[Dict[str, Tuple[str, Checker]]] = {
        "width": ("width", _non_negative),
        "height": ("height", _non_negative),
        "fill": ("fill", _optional_text),
        "stroke": ("stroke", _optional_text),
        "strokeWidth": ("stroke_width", _non_negative),
        "rx": ("rx", _non_negative),
        "ry": ("ry", _non_negative),
    }

    def intrinsic_size(self) -> Optional[Tuple[float, float]]:
        return self.width, self.height


@dataclass(eq=False)
class TextboxElement(Element):
    width: float = 0
    text: str = ""
    font_family: str = "Inter"
    font_size: float = 16
    font_weight: Any = "normal"
    fill: Optional[str] = "#000000"
    text_align: str = "left"
    line_height: float = 1.16

    kind: ClassVar[str] = "Textbox"
    ATTRIBUTES: ClassVar[Dict[str, Tuple[str, Checker]]] = {
        "width": ("width", _non_negative),
        "text": ("text", _text),
        "fontFamily": ("font_family", _text),
        "fontSize": ("font_size", _non_negative),
        "fontWeight": ("font_weight", _font_weight),
        "fill": ("fill", _optional_text),
        "textAlign": ("text_align", _align),
        "lineHeight": ("line_height", _non_negative),
    }

    @property
    def height(self) -> float:
        lines = max(1, self.text.count("\n") + 1)
        return lines * self.font_size * self.line_height

    def intrinsic_size(self) -> Optional[Tuple[float, float]]:
        return self.width, self.height


@dataclass(eq=False)
class CircleElement(Element):
    radius: float = 0
    fill: Optional[str] = "#000000"
    stroke: Optional[str] = None
    stroke_width: float = 1

    kind: ClassVar[str] = "Circle"
    ATTRIBUTES: ClassVar[Dict[str, Tuple[str, Checker]]] = {
        "radius": ("radius", _non_negative),
        "fill": ("fill", _optional_text),
        "stroke": ("stroke", _optional_text),
        "strokeWidth": ("stroke_width", _non_negative),
    }

    def intrinsic_size(self) -> Optional[Tuple[float, float]]:
        return self.radius * 2, self.radius * 2


@dataclass(eq=False)
class LineElement(Element):
    x1: float = 0
    y1: float = 0
    x2: float = 0
    y2: float = 0
    stroke: Optional[str] = "#000000"
    stroke_width: float = 1

    kind: ClassVar[str] = "Line"
    ATTRIBUTES: ClassVar[Dict[str, Tuple[str, Checker]]] = {
        "x1": ("x1", _number),
        "y1": ("y1", _number),
        "x2": ("x2", _number),
        "y2": ("y2", _number),
        "stroke": ("stroke", _optional_text),
        "strokeWidth": ("stroke_width", _non_negative),
    }

    def __post_init__(self):
        super().__post_init__()
        self.left = min(self.x1, self.x2)
        self.top = min(self.y1, self.y2)

    def set_attribute(self, key: str, value: Any) -> None:
        if key in ("left", "top"):
            value = _number(key, value)
            if key == "left":
                delta = value - self.left
                self.x1 += delta
                self.x2 += delta
            else:
                delta = value - self.top
                self.y1 += delta
                self.y2 += delta
        super().set_attribute(key, value)
        self.left = min(self.x1, self.x2)
        self.top = min(self.y1, self.y2)


@dataclass(eq=False)
class ImageElement(Element):
    width: float = 0
    height: float = 0
    src: str = ""

    kind: ClassVar[str] = "Image"
    ATTRIBUTES: ClassVar[Dict[str, Tuple[str, Checker]]] = {
        "width": ("width", _non_negative),
        "height": ("height", _non_negative),
        "src": ("src", _text),
    }

    def intrinsic_size(self) -> Optional[Tuple[float, float]]:
        return self.width, self.height


ELEMENT_TYPES: Dict[str, type] = {
    cls.kind: cls
    for cls in (RectElement, TextboxElement, CircleElement, LineElement, ImageElement)
}


def make_page_guide(width: float = PAGE_WIDTH, height: float = PAGE_HEIGHT) -> RectElement:
    return RectElement(
        name="Page Border",
        left=0,
        top=0,
        width=width - 1,
        height=height - 1,
        fill="transparent",
        stroke="#e5e7eb",
        stroke_width=1,
        selectable=False,
        evented=False,
        exclude_from_export=True,
    )


# ─────────────────────────────────────────────
# Scene graph
# ─────────────────────────────────────────────

class SceneGraph:
    """
    Ordered collection of elements in paint order (later draws on top).

    The page-border guide always sits at index 0. Iteration, ``len`` and
    ``content()`` cover the document elements only; ``elements`` includes
    the guide.
    """

    def __init__(
        self,
        width: float = PAGE_WIDTH,
        height: float = PAGE_HEIGHT,
        background: str = DEFAULT_BACKGROUND,
        version: str = FORMAT_VERSION,
    ):
        self.width = width
        self.height = height
        self.background = background
        self.version = version
        self.guide = make_page_guide(width, height)
        self._elements: List[Element] = [self.guide]

    # ------------------------------------------------------------------
    @property
    def elements(self) -> Tuple[Element, ...]:
        return tuple(self._elements)

    def content(self) -> List[Element]:
        return self._elements[1:]

    def ids(self) -> List[str]:
        return [el.id for el in self.content()]

    def __iter__(self) -> Iterator[Element]:
        return iter(self.content())

    def __len__(self) -> int:
        return len(self._elements) - 1

    def __contains__(self, element_id: object) -> bool:
        return self.get(element_id) is not None  # type: ignore[arg-type]

    def get(self, element_id: str) -> Optional[Element]:
        if not element_id:
            return None
        for el in self._elements[1:]:
            if el.id == element_id:
                return el
        return None

    def index_of(self, element_id: str) -> int:
        for idx, el in enumerate(self._elements):
            if idx and el.id == element_id:
                return idx
        return -1

    # ------------------------------------------------------------------
    def append(self, element: Element) -> None:
        if element.is_guide:
            raise ValueError("The page-border guide cannot be added twice")
        if not element.id:
            raise ValueError("Elements need a non-empty id")
        if self.get(element.id) is not None:
            raise ValueError(f"Duplicate element id: {element.id}")
        self._elements.append(element)

    def remove(self, element_id: str) -> Optional[Element]:
        idx = self.index_of(element_id)
        if idx < 1:
            return None
        return self._elements.pop(idx)

    def move_forward(self, element_id: str) -> bool:
        idx = self.index_of(element_id)
        if idx < 1 or idx >= len(self._elements) - 1:
            return False
        self._swap(idx, idx + 1)
        return True

    def move_backward(self, element_id: str) -> bool:
        idx = self.index_of(element_id)
        if idx <= 1:
            return False
        self._swap(idx, idx - 1)
        return True

    def clear(self) -> List[Element]:
        removed = self._elements[1:]
        self._elements = [self.guide]
        return removed

    def _swap(self, a: int, b: int) -> None:
        self._elements[a], self._elements[b] = self._elements[b], self._elements[a]

    # ------------------------------------------------------------------
    def snapshot(self) -> List[Element]:
        return [el.clone() for el in self.content()]

    def restore(self, elements: List[Element]) -> None:
        self._elements = [self.guide]
        for el in elements:
            self.append(el.clone())

    def same_content(self, other: "SceneGraph") -> bool:
        mine, theirs = self.content(), other.content()
        if len(mine) != len(theirs):
            return False
        return all(a.same_attributes(b) for a, b in zip(mine, theirs))
