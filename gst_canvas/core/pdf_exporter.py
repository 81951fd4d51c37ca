"""reportlab backend for document layouts and saved scene graphs."""

from __future__ import annotations

import logging
import os
from typing import Any, Dict, Optional, Union

from reportlab.lib import colors
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from .document_layout import (
    CircleOp,
    DocumentLayout,
    ImageOp,
    LineOp,
    RectOp,
    TextOp,
    layout_invoice,
    scene_layout,
)
from .image_loader import ImageLoader, ImageLoadError
from .models import SceneGraph
from .records import CompanyRecord, InvoiceRecord, TemplateSettings
from .scene_json import loads

LOGGER = logging.getLogger(__name__)


def to_color(value: Optional[str]) -> Optional[colors.Color]:
    """Hex and css rgb()/rgba() strings; ``None`` for transparent or unknown."""
    if not value or value.strip().lower() in ("transparent", "none"):
        return None
    try:
        return colors.toColor(value.strip())
    except ValueError:
        LOGGER.warning("Unsupported colour %r, skipped", value)
        return None


def printable(text: str) -> str:
    # base-14 fonts only cover latin-1
    return text.replace("₹", "Rs.").encode("latin-1", "ignore").decode("latin-1")


# ─────────────────────────────────────────────
# EXPORTER
# ─────────────────────────────────────────────

class PdfExporter:
    def __init__(self, image_loader: Optional[ImageLoader] = None):
        self.image_loader = image_loader or ImageLoader()
        self._images: Dict[str, ImageReader] = {}

    def export(self, layout: DocumentLayout, output_path: str, title: Optional[str] = None) -> str:
        if not layout.pages:
            raise ValueError("Layout has no pages to export")

        folder = os.path.dirname(output_path)
        if folder:
            os.makedirs(folder, exist_ok=True)

        pdf = canvas.Canvas(output_path, pagesize=(layout.width, layout.height))
        if title:
            pdf.setTitle(title)
        for page in layout.pages:
            for op in page.ops:
                self._draw(pdf, op, layout.height)
            pdf.showPage()
        pdf.save()
        LOGGER.info("PDF saved: %s (%s pages)", output_path, layout.page_count)
        return output_path

    # ------------------------------------------------------------------
    def _draw(self, pdf: canvas.Canvas, op: Any, page_height: float) -> None:
        if isinstance(op, TextOp):
            self._draw_text(pdf, op, page_height)
        elif isinstance(op, RectOp):
            self._draw_rect(pdf, op, page_height)
        elif isinstance(op, CircleOp):
            self._draw_circle(pdf, op, page_height)
        elif isinstance(op, LineOp):
            self._draw_line(pdf, op, page_height)
        elif isinstance(op, ImageOp):
            self._draw_image(pdf, op, page_height)
        else:
            raise TypeError(f"Unknown draw operation: {op!r}")

    @staticmethod
    def _rotate(pdf: canvas.Canvas, op: Any, page_height: float) -> None:
        if not op.angle:
            return
        px, py = op.pivot or (op.x, op.y)
        pdf.translate(px, page_height - py)
        # clockwise on screen is counter-clockwise in PDF space
        pdf.rotate(-op.angle)
        pdf.translate(-px, -(page_height - py))

    @staticmethod
    def _set_paint(pdf: canvas.Canvas, fill: Optional[colors.Color], stroke: Optional[colors.Color],
                   opacity: float) -> None:
        if fill is not None:
            pdf.setFillColor(fill, alpha=fill.alpha * opacity)
        if stroke is not None:
            pdf.setStrokeColor(stroke, alpha=stroke.alpha * opacity)

    def _draw_text(self, pdf: canvas.Canvas, op: TextOp, page_height: float) -> None:
        color = to_color(op.color)
        if color is None or not op.text:
            return
        pdf.saveState()
        self._rotate(pdf, op, page_height)
        self._set_paint(pdf, color, None, op.opacity)
        pdf.setFont(op.font, op.size)
        text = printable(op.text)
        y = page_height - op.y
        if op.align == "center":
            pdf.drawCentredString(op.x, y, text)
        elif op.align == "right":
            pdf.drawRightString(op.x, y, text)
        else:
            pdf.drawString(op.x, y, text)
        pdf.restoreState()

    def _draw_rect(self, pdf: canvas.Canvas, op: RectOp, page_height: float) -> None:
        fill = to_color(op.fill)
        stroke = to_color(op.stroke) if op.stroke_width > 0 else None
        if fill is None and stroke is None:
            return
        pdf.saveState()
        self._rotate(pdf, op, page_height)
        self._set_paint(pdf, fill, stroke, op.opacity)
        if stroke is not None:
            pdf.setLineWidth(op.stroke_width)
        y = page_height - op.y - op.height
        if op.radius:
            pdf.roundRect(op.x, y, op.width, op.height, op.radius,
                          stroke=int(stroke is not None), fill=int(fill is not None))
        else:
            pdf.rect(op.x, y, op.width, op.height, stroke=int(stroke is not None), fill=int(fill is not None))
        pdf.restoreState()

    def _draw_circle(self, pdf: canvas.Canvas, op: CircleOp, page_height: float) -> None:
        fill = to_color(op.fill)
        stroke = to_color(op.stroke) if op.stroke_width > 0 else None
        if fill is None and stroke is None:
            return
        pdf.saveState()
        self._set_paint(pdf, fill, stroke, op.opacity)
        if stroke is not None:
            pdf.setLineWidth(op.stroke_width)
        pdf.circle(op.cx, page_height - op.cy, op.radius,
                   stroke=int(stroke is not None), fill=int(fill is not None))
        pdf.restoreState()

    def _draw_line(self, pdf: canvas.Canvas, op: LineOp, page_height: float) -> None:
        color = to_color(op.color)
        if color is None or op.width <= 0:
            return
        pdf.saveState()
        self._set_paint(pdf, None, color, op.opacity)
        pdf.setLineWidth(op.width)
        pdf.line(op.x1, page_height - op.y1, op.x2, page_height - op.y2)
        pdf.restoreState()

    def _image(self, src: str) -> Optional[ImageReader]:
        if src not in self._images:
            try:
                self._images[src] = ImageReader(self.image_loader.open(src))
            except ImageLoadError as exc:
                LOGGER.warning("[PDF WARNING] image skipped: %s", exc)
                return None
        return self._images[src]

    def _draw_image(self, pdf: canvas.Canvas, op: ImageOp, page_height: float) -> None:
        reader = self._image(op.src)
        if reader is None:
            return
        pdf.saveState()
        self._rotate(pdf, op, page_height)
        if op.opacity < 1:
            pdf.setFillAlpha(op.opacity)
        pdf.drawImage(reader, op.x, page_height - op.y - op.height, width=op.width, height=op.height,
                      mask="auto", preserveAspectRatio=False)
        pdf.restoreState()


# ─────────────────────────────────────────────
# Entry points
# ─────────────────────────────────────────────

def export_invoice_pdf(settings: TemplateSettings, company: CompanyRecord, invoice: InvoiceRecord,
                       output_path: str) -> DocumentLayout:
    """Lay out and write the invoice; the returned layout carries the totals it printed."""
    layout = layout_invoice(settings, company, invoice)
    PdfExporter().export(layout, output_path, title=f"Invoice {invoice.invoice_no}")
    return layout


def export_scene_pdf(scene: Union[SceneGraph, str, bytes, Dict[str, Any]], output_path: str) -> DocumentLayout:
    """Paint a saved canvas document as one page. Raises SceneFormatError for bad input."""
    graph = scene if isinstance(scene, SceneGraph) else loads(scene)
    layout = scene_layout(graph)
    PdfExporter().export(layout, output_path)
    return layout
