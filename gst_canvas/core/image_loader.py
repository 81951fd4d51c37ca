"""Resolve image references (file path, http(s) URL, data URL) to pixels."""

from __future__ import annotations

import base64
import binascii
import io
import logging
import os
from dataclasses import dataclass
from typing import Optional

import requests
from PIL import Image, UnidentifiedImageError

LOGGER = logging.getLogger(__name__)

DATA_URL_PREFIX = "data:"


class ImageLoadError(RuntimeError):
    """Raised when an image reference cannot be fetched or decoded."""


@dataclass(frozen=True)
class LoadedImage:
    width: int
    height: int
    data_url: str


def encode_data_url(image: Image.Image) -> str:
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return "data:image/png;base64," + base64.b64encode(buffer.getvalue()).decode("ascii")


def decode_data_url(src: str) -> bytes:
    if not src.startswith(DATA_URL_PREFIX) or "," not in src:
        raise ImageLoadError("Not a data URL")
    header, payload = src.split(",", 1)
    if not header.endswith(";base64"):
        raise ImageLoadError("Only base64 data URLs are supported")
    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ImageLoadError(f"Broken data URL: {exc}") from exc


class ImageLoader:
    def __init__(self, timeout: float = 15, session: Optional[requests.Session] = None):
        self.timeout = timeout
        self.session = session or requests.Session()

    def fetch_bytes(self, source: str) -> bytes:
        if not source:
            raise ImageLoadError("Empty image reference")
        if source.startswith(DATA_URL_PREFIX):
            return decode_data_url(source)
        if source.startswith(("http://", "https://")):
            try:
                response = self.session.get(source, timeout=self.timeout)
                response.raise_for_status()
            except requests.RequestException as exc:
                raise ImageLoadError(f"Could not download {source}: {exc}") from exc
            return response.content
        if not os.path.exists(source):
            raise ImageLoadError(f"Image file not found: {source}")
        try:
            with open(source, "rb") as f:
                return f.read()
        except OSError as exc:
            raise ImageLoadError(f"Could not read {source}: {exc}") from exc

    def open(self, source: str) -> Image.Image:
        data = self.fetch_bytes(source)
        try:
            img = Image.open(io.BytesIO(data))
            img.load()
        except (UnidentifiedImageError, OSError) as exc:
            raise ImageLoadError(f"Unsupported image data in {source[:60]}") from exc
        return img.convert("RGBA")

    def load(self, source: str) -> LoadedImage:
        """Decode ``source`` and re-encode it as a PNG data URL."""
        img = self.open(source)
        LOGGER.debug("Loaded image %sx%s from %s", img.width, img.height, source[:60])
        return LoadedImage(width=img.width, height=img.height, data_url=encode_data_url(img))


def load_image(source: str) -> LoadedImage:
    return ImageLoader().load(source)
