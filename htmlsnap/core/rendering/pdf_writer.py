"""
PDF Writer
==========

Serializes a paged document into a PDF with Pillow. Each page image is placed
at the top-left corner of a white frame of the full page size.
"""

from typing import Any, Dict, List
import io

from PIL import Image  # type: ignore

from htmlsnap.config.logging import get_logger
from htmlsnap.core.rendering.paginator import PagedDocument
from htmlsnap.errors import ExportError

logger = get_logger(__name__)

UNITS_PER_INCH: Dict[str, float] = {
    "mm": 25.4,
    "cm": 2.54,
    "in": 1.0,
    "pt": 72.0,
}

PAGE_BACKGROUND = (255, 255, 255)


def page_frame_pixels(document: PagedDocument) -> tuple[int, int]:
    """Frame size in raster pixels."""
    width = int(round(document.page_width_units * document.pixels_per_unit))
    height = int(round(document.page_height_units * document.pixels_per_unit))
    return max(width, 1), max(height, 1)


def compose_frames(document: PagedDocument) -> List[Image.Image]:
    """One full-size RGB frame per page with the page image at (0, 0)."""
    frame_size = page_frame_pixels(document)
    frames: List[Image.Image] = []
    for page in document.pages:
        frame = Image.new("RGB", frame_size, PAGE_BACKGROUND)
        frame.paste(page.image.convert("RGB"), (0, 0))
        frames.append(frame)
    return frames


def write_pdf(document: PagedDocument, title: str = "exported") -> bytes:
    """
    Render a paged document to PDF bytes.

    Raises:
        ExportError: If the document has no pages or the unit is unknown
    """
    if not document.pages:
        raise ExportError("Cannot write a PDF without pages")
    if document.unit not in UNITS_PER_INCH:
        raise ExportError(f"Unsupported page unit: {document.unit}")

    frames = compose_frames(document)
    dpi = document.pixels_per_unit * UNITS_PER_INCH[document.unit]

    output = io.BytesIO()
    save_kwargs: Dict[str, Any] = {
        "format": "PDF",
        "save_all": True,
        "append_images": frames[1:],
        "resolution": dpi,
        "title": title,
        "quality": 95,
    }
    frames[0].save(output, **save_kwargs)
    pdf_bytes = output.getvalue()

    logger.info(
        "PDF written",
        pages=len(frames),
        resolution=round(dpi, 2),
        file_size=len(pdf_bytes),
    )
    return pdf_bytes
