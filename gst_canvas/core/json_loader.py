import json
import os
from typing import Any, Dict

from .records import CompanyRecord, InvoiceRecord, TemplateSettings


class JSONLoader:
    """Reads the settings / company / invoice JSON files the editor and exporter work from."""

    def __init__(self, path):
        self.path = path
        self.data = None

    def read(self) -> Dict[str, Any]:
        if not os.path.exists(self.path):
            raise FileNotFoundError(f"JSON file not found: {self.path}")

        with open(self.path, "r", encoding="utf-8") as f:
            self.data = json.load(f)

        if not isinstance(self.data, dict):
            raise ValueError(f"{os.path.basename(self.path)} must contain a JSON object")
        return self.data

    # ─────────────────────────────────────────────
    # Records
    # ─────────────────────────────────────────────
    def load_settings(self) -> TemplateSettings:
        return TemplateSettings.from_dict(self.read())

    def load_company(self) -> CompanyRecord:
        return CompanyRecord.from_dict(self.read())

    def load_invoice(self) -> InvoiceRecord:
        """Rates and percentages are validated here; bad values raise ValueError."""
        data = self.read()
        try:
            return InvoiceRecord.from_dict(data)
        except ValueError as exc:
            raise ValueError(f"{os.path.basename(self.path)}: {exc}") from exc


def load_settings(path: str) -> TemplateSettings:
    return JSONLoader(path).load_settings()


def load_company(path: str) -> CompanyRecord:
    return JSONLoader(path).load_company()


def load_invoice(path: str) -> InvoiceRecord:
    return JSONLoader(path).load_invoice()
