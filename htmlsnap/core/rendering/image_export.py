"""
Image Export
============

Single PNG image of a self-contained tree at the image virtual width, with
Pillow-based size optimization.
"""

from typing import Any, Dict
import io

from htmlsnap.config.logging import get_logger
from htmlsnap.core.rendering.engine import PixelBuffer

logger = get_logger(__name__)


def encode_png(buffer: PixelBuffer, optimize: bool = True) -> bytes:
    """
    Encode a pixel buffer as PNG.

    Optimization failures fall back to default compression rather than
    failing the export.

    Args:
        buffer: Rasterized content
        optimize: Use maximum compression

    Returns:
        PNG bytes
    """
    if not optimize:
        return buffer.to_png()

    try:
        output = io.BytesIO()
        save_kwargs: Dict[str, Any] = {
            "format": "PNG",
            "optimize": True,
            "compress_level": 9,
        }
        buffer.image.save(output, **save_kwargs)
        png_bytes = output.getvalue()
    except Exception as e:
        logger.warning("PNG optimization failed, using default compression", error=str(e))
        return buffer.to_png()

    logger.debug(
        "PNG encoded",
        width=buffer.width,
        height=buffer.height,
        file_size=len(png_bytes),
    )
    return png_bytes
