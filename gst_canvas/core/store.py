"""Persistence collaborator for the saved scene document."""

from __future__ import annotations

import json
import os
import tempfile
from typing import Optional


class StoreError(RuntimeError):
    """Raised when the persisted document cannot be read or written."""


class TemplateStore:
    """Interface the editor saves through. ``save`` raises StoreError on failure."""

    def load(self) -> Optional[str]:
        raise NotImplementedError

    def save(self, payload: str) -> None:
        raise NotImplementedError


class MemoryStore(TemplateStore):
    def __init__(self, payload: Optional[str] = None):
        self.payload = payload
        self.saves = 0

    def load(self) -> Optional[str]:
        return self.payload

    def save(self, payload: str) -> None:
        self.payload = payload
        self.saves += 1


class JsonFileStore(TemplateStore):
    """
    Keeps the document in a JSON file.

    Without ``key`` the file *is* the scene document. With ``key`` the file
    is a JSON object (a settings file) and the serialized document is kept
    as a string under that key, the way ``custom_canvas_data`` is stored.
    """

    def __init__(self, path: str, key: Optional[str] = None):
        self.path = path
        self.key = key

    def _read_object(self) -> dict:
        if not os.path.exists(self.path):
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as exc:
            raise StoreError(f"Cannot read {self.path}: {exc}") from exc
        if not isinstance(data, dict):
            raise StoreError(f"{self.path} does not hold a JSON object")
        return data

    def load(self) -> Optional[str]:
        if self.key:
            value = self._read_object().get(self.key)
            return value if isinstance(value, str) else None
        if not os.path.exists(self.path):
            return None
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                return f.read()
        except OSError as exc:
            raise StoreError(f"Cannot read {self.path}: {exc}") from exc

    def save(self, payload: str) -> None:
        if self.key:
            data = self._read_object()
            data[self.key] = payload
            text = json.dumps(data, ensure_ascii=False, indent=2)
        else:
            text = payload
        self._write(text)

    def _write(self, text: str) -> None:
        folder = os.path.dirname(os.path.abspath(self.path))
        try:
            os.makedirs(folder, exist_ok=True)
            fd, tmp = tempfile.mkstemp(dir=folder, suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(text)
            os.replace(tmp, self.path)
        except OSError as exc:
            raise StoreError(f"Cannot write {self.path}: {exc}") from exc
