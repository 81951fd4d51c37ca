from __future__ import annotations

import sys
from pathlib import Path

# ─────────────────────────────────────────────
# BASE DIRECTORY
# ─────────────────────────────────────────────

def application_base_dir() -> Path:
    """
    Return the package base directory.
    Works both from source and inside a PyInstaller bundle.
    """
    if hasattr(sys, "_MEIPASS"):
        return Path(sys._MEIPASS) / "gst_canvas"

    return Path(__file__).resolve().parent.parent


# ─────────────────────────────────────────────
# ABSOLUTE PATH RESOLVER
# ─────────────────────────────────────────────

def ABSOLUTE_PATH(relative_path: str) -> str:
    """Build an absolute path to a bundled resource, relative to gst_canvas/."""
    base = application_base_dir()
    return str(base.joinpath(relative_path))


def user_data_dir() -> Path:
    """Directory for saved canvas documents and exports."""
    path = Path.home() / ".gst_canvas"
    path.mkdir(parents=True, exist_ok=True)
    return path
