"""
Glyph Outliner
==============

Converts rendered text into SVG outline paths with fontTools, so vector
output does not depend on the viewer having the font installed.
"""

from typing import Any, Dict, List, Optional, Sequence, Tuple
from pathlib import Path

from fontTools.pens.svgPathPen import SVGPathPen  # type: ignore[import-untyped]
from fontTools.ttLib import TTFont, TTLibError  # type: ignore[import-untyped]

from htmlsnap.config.logging import get_logger
from htmlsnap.core.rendering.engine import GlyphBox
from htmlsnap.errors import AssetLoadError

logger = get_logger(__name__)


def _escape_attr(text: str) -> str:
    return text.replace("&", "&amp;").replace('"', "&quot;").replace("<", "&lt;")


def _num(value: float) -> str:
    rounded = round(value, 3)
    return str(int(rounded)) if rounded == int(rounded) else str(rounded)


class GlyphOutliner:
    """Outlines glyph boxes with a single TrueType/OpenType font."""

    def __init__(self, font_path: Path):
        self.font_path = Path(font_path)
        self.logger: Any = logger.bind(component="glyph_outliner")  # structlog.BoundLoggerBase
        try:
            self.font = TTFont(str(self.font_path), lazy=True)
            self.glyph_set = self.font.getGlyphSet()
            self.cmap: Dict[int, str] = self.font.getBestCmap() or {}
            self.units_per_em: int = self.font["head"].unitsPerEm
            self.ascent: int = self.font["hhea"].ascent
            self.descent: int = self.font["hhea"].descent
        except (OSError, TTLibError, KeyError) as e:
            raise AssetLoadError(str(self.font_path), str(e))
        self._paths: Dict[str, Optional[str]] = {}

    def glyph_path(self, char: str) -> Optional[str]:
        """Path data in font units (y up), or None when the font lacks the glyph."""
        if char in self._paths:
            return self._paths[char]

        glyph_name = self.cmap.get(ord(char))
        path: Optional[str] = None
        if glyph_name is not None:
            pen = SVGPathPen(self.glyph_set)
            self.glyph_set[glyph_name].draw(pen)
            path = pen.getCommands() or None
        self._paths[char] = path
        return path

    def baseline(self, box: GlyphBox) -> float:
        """Baseline y of a glyph box, with the content area centered in the box."""
        scale = box.font_size / self.units_per_em
        content_height = (self.ascent - self.descent) * scale
        return box.y + (box.height - content_height) / 2 + self.ascent * scale

    def outline(self, boxes: Sequence[GlyphBox]) -> Tuple[List[str], List[str]]:
        """
        Build one ``<path>`` per visible glyph.

        Returns:
            Tuple of (path elements, characters the font could not outline)
        """
        paths: List[str] = []
        missing: List[str] = []

        for box in boxes:
            if not box.char.strip():
                continue
            data = self.glyph_path(box.char)
            if data is None:
                if box.char not in missing:
                    missing.append(box.char)
                continue

            scale = box.font_size / self.units_per_em
            transform = (
                f"translate({_num(box.x)} {_num(self.baseline(box))}) "
                f"scale({_num(scale)} {_num(-scale)})"
            )
            paths.append(
                f'<path d="{data}" fill="{_escape_attr(box.color)}" transform="{transform}"/>'
            )

        if missing:
            self.logger.warning(
                "Glyphs missing from outline font",
                font=str(self.font_path),
                characters="".join(missing[:32]),
            )
        return paths, missing
