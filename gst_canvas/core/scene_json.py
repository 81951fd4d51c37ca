"""Tagged-JSON form of the scene graph.

Document shape::

    {"version": "6.6.1", "background": "#ffffff", "objects": [...]}

Each object carries a ``type`` discriminator (``Rect``, ``Textbox``,
``Circle``, ``Line``, ``Image``), its visual attributes and an id/name
pair. Keys the running code does not understand are kept on the element
and written back unchanged.
"""

from __future__ import annotations

import json
from typing import Any, Dict, Iterable, Union

from .models import (
    DEFAULT_BACKGROUND,
    ELEMENT_TYPES,
    FORMAT_VERSION,
    Element,
    SceneGraph,
)

# Saved documents need identity and naming only; visual attributes are
# always written.
SAVE_KEYS = ("id", "name")
# History snapshots also keep the flags so the exact editing state comes back.
HISTORY_KEYS = ("id", "name", "selectable", "evented", "excludeFromExport")

_FLAG_FIELDS = {
    "selectable": "selectable",
    "evented": "evented",
    "excludeFromExport": "exclude_from_export",
}


class SceneFormatError(ValueError):
    """Raised when a serialized scene graph cannot be parsed or is invalid."""


# ─────────────────────────────────────────────
# Encoding
# ─────────────────────────────────────────────

def element_to_dict(element: Element, allow: Iterable[str] = SAVE_KEYS) -> Dict[str, Any]:
    allow = tuple(allow)
    data: Dict[str, Any] = {"type": element.kind}
    data.update(element.visual_attributes())
    if "id" in allow:
        data["id"] = element.id
    if "name" in allow and element.name is not None:
        data["name"] = element.name
    for key, attr in _FLAG_FIELDS.items():
        if key in allow:
            data[key] = getattr(element, attr)
    for key, value in element.extras.items():
        data.setdefault(key, value)
    return data


def graph_to_dict(graph: SceneGraph, allow: Iterable[str] = SAVE_KEYS) -> Dict[str, Any]:
    allow = tuple(allow)
    return {
        "version": graph.version,
        "background": graph.background,
        "objects": [
            element_to_dict(el, allow)
            for el in graph.content()
            if not el.exclude_from_export
        ],
    }


def dumps(graph: SceneGraph, allow: Iterable[str] = SAVE_KEYS) -> str:
    return json.dumps(graph_to_dict(graph, allow), ensure_ascii=False)


# ─────────────────────────────────────────────
# Decoding
# ─────────────────────────────────────────────

def element_from_dict(data: Any) -> Element:
    if not isinstance(data, dict):
        raise SceneFormatError(f"Element must be an object, got {type(data).__name__}")

    kind = data.get("type")
    cls = ELEMENT_TYPES.get(kind)
    if cls is None:
        raise SceneFormatError(f"Unknown element type: {kind!r}")

    element_id = data.get("id")
    if not isinstance(element_id, str) or not element_id:
        raise SceneFormatError(f"{kind} element without a valid id")

    table = cls.attribute_table()
    kwargs: Dict[str, Any] = {"id": element_id}
    extras: Dict[str, Any] = {}
    for key, value in data.items():
        if key in ("type", "id", "excludeFromExport"):
            continue
        if key in table:
            kwargs[table[key][0]] = value
        else:
            extras[key] = value
    kwargs["extras"] = extras

    try:
        return cls(**kwargs)
    except (TypeError, ValueError) as exc:
        raise SceneFormatError(f"Invalid {kind} '{element_id}': {exc}") from exc


def graph_from_dict(data: Any) -> SceneGraph:
    if not isinstance(data, dict):
        raise SceneFormatError("Scene document must be a JSON object")

    objects = data.get("objects", [])
    if not isinstance(objects, list):
        raise SceneFormatError("'objects' must be a list")

    background = data.get("background", DEFAULT_BACKGROUND)
    version = data.get("version", FORMAT_VERSION)
    if not isinstance(background, str) or not isinstance(version, str):
        raise SceneFormatError("'background' and 'version' must be strings")

    graph = SceneGraph(background=background, version=version)
    for raw in objects:
        # the page guide is regenerated, never loaded
        if isinstance(raw, dict) and raw.get("excludeFromExport") is True:
            continue
        element = element_from_dict(raw)
        try:
            graph.append(element)
        except ValueError as exc:
            raise SceneFormatError(str(exc)) from exc
    return graph


def loads(payload: Union[str, bytes, Dict[str, Any]]) -> SceneGraph:
    if isinstance(payload, (str, bytes)):
        try:
            payload = json.loads(payload)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise SceneFormatError(f"Scene document is not valid JSON: {exc}") from exc
        except RecursionError as exc:
            raise SceneFormatError("Scene document is nested too deeply") from exc
    return graph_from_dict(payload)
