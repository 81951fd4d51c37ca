from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path
from typing import Dict

from gst_canvas.core.paths import ABSOLUTE_PATH

LOCALES_DIR = Path(ABSOLUTE_PATH("ui/locales"))
DEFAULT_LANGUAGE = "en"


def _locale_files() -> Dict[str, Path]:
    return {path.stem: path for path in LOCALES_DIR.glob("*.json")}


def available_languages() -> Dict[str, str]:
    """Language code -> display name, from each file's ``_meta`` block."""
    languages: Dict[str, str] = {}
    for code in sorted(_locale_files()):
        meta = load_locale(code).get("_meta", {})
        languages[code] = meta.get("display_name", code)
    return languages


def ensure_language(language: str) -> str:
    available = _locale_files()
    if language in available:
        return language
    if DEFAULT_LANGUAGE in available:
        return DEFAULT_LANGUAGE
    return sorted(available)[0] if available else language


@lru_cache(maxsize=None)
def load_locale(language: str) -> dict:
    language = ensure_language(language)
    path = LOCALES_DIR / f"{language}.json"
    if not path.is_file():
        raise FileNotFoundError(f"Locale file not found for language: {language}")
    with path.open(encoding="utf-8") as f:
        return json.load(f)


def get_section(language: str, section: str) -> dict:
    language = ensure_language(language)
    section_data = load_locale(language).get(section)
    if section_data is None and language != DEFAULT_LANGUAGE:
        section_data = load_locale(DEFAULT_LANGUAGE).get(section)
    return section_data or {}


def format_message(strings: dict, key: str, **kwargs) -> str:
    value = strings.get(key, "")
    try:
        return value.format(**kwargs)
    except (KeyError, IndexError, ValueError):
        return value
