from __future__ import annotations

import io
import logging
from pathlib import Path

from pypdf import PageObject, PdfReader, PdfWriter
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from .layout import FLOOR_PLAN_BOX, StaticPage


logger = logging.getLogger(__name__)


def build_image_overlay(
    image_path: Path,
    page_width: float,
    page_height: float,
    box: tuple[float, float, float, float] = FLOOR_PLAN_BOX,
) -> bytes:
    """Draw one image onto an otherwise empty page of the given size.

    `box` is (x, y, width, height) measured from the top-left corner, the way
    the page artwork is laid out; reportlab's origin is bottom-left.
    """
    x, top, width, height = box
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=(page_width, page_height))
    image = ImageReader(str(image_path))
    c.drawImage(
        image,
        x,
        page_height - top - height,
        width=width,
        height=height,
        preserveAspectRatio=True,
        anchor='c',
        mask='auto',
    )
    c.showPage()
    c.save()
    return buf.getvalue()


def stamp_overlay(page: PageObject, overlay_pdf: bytes) -> None:
    overlay_page = PdfReader(io.BytesIO(overlay_pdf)).pages[0]
    page.merge_page(overlay_page)


def stamp_floor_plan(writer: PdfWriter, output_index: int, image_path: Path | None, target: StaticPage) -> bool:
    if image_path is None:
        logger.info('No floor plan to stamp on %s', target.name)
        return False
    if output_index < 0 or output_index >= len(writer.pages):
        logger.warning(
            'Floor-plan page %s (source page %d) not in assembled document of %d pages; skipping',
            target.name,
            target.number,
            len(writer.pages),
        )
        return False

    page = writer.pages[output_index]
    width = float(page.mediabox.width)
    height = float(page.mediabox.height)
    stamp_overlay(page, build_image_overlay(image_path, width, height))
    logger.info('Stamped floor plan %s onto output page %d', image_path.name, output_index + 1)
    return True
