"""
SVG Export
==========

Wraps exported roots in an ``<svg>`` sized to the measured content, either as
static markup inside ``<foreignObject>`` or as an embedded raster. Text can
optionally be converted to glyph outlines over a text-hidden backdrop.
"""

from typing import Any, List, Optional, Sequence, Tuple
from dataclasses import dataclass, field
from pathlib import Path
import base64
import math

from htmlsnap.config.logging import get_logger
from htmlsnap.config.settings import get_settings
from htmlsnap.core.rendering.engine import PixelBuffer, RenderingEngine, Scratch
from htmlsnap.core.rendering.glyph_outliner import GlyphOutliner
from htmlsnap.core.snapshot.nodes import ElementNode
from htmlsnap.core.snapshot.serializer import render_static_html, serialize_node
from htmlsnap.errors import AssetLoadError
from htmlsnap.models.schemas import SvgMode

logger = get_logger(__name__)

SVG_NAMESPACE = "http://www.w3.org/2000/svg"
XHTML_NAMESPACE = "http://www.w3.org/1999/xhtml"


@dataclass
class SvgDocument:
    """Serialized SVG plus what happened while producing it."""

    markup: str
    width: int
    height: int
    mode: SvgMode
    outlined: bool = False
    warnings: List[str] = field(default_factory=list)


def _svg_open(width: int, height: int) -> str:
    return (
        f'<svg xmlns="{SVG_NAMESPACE}" width="{width}" height="{height}" '
        f'viewBox="0 0 {width} {height}">'
    )


def _image_element(buffer: PixelBuffer, width: int, height: int) -> str:
    encoded = base64.b64encode(buffer.to_png()).decode("utf-8")
    return (
        f'<image x="0" y="0" width="{width}" height="{height}" '
        f'preserveAspectRatio="none" href="data:image/png;base64,{encoded}"/>'
    )


def foreign_object_body(nodes: Sequence[ElementNode], width: int, height: int) -> str:
    """Static markup as well-formed XHTML inside a ``<foreignObject>``."""
    settings = get_settings()
    inner = "".join(serialize_node(node, xhtml=True) for node in nodes)
    wrapper_style = (
        f"width: {width}px; box-sizing: border-box; "
        f"padding: {settings.scratch_padding}px; background: {settings.scratch_background};"
    )
    return (
        f'<foreignObject x="0" y="0" width="{width}" height="{height}">'
        f'<div xmlns="{XHTML_NAMESPACE}" style="{wrapper_style}">{inner}</div>'
        f"</foreignObject>"
    )


class SvgExporter:
    """Produces SVG documents through a rendering engine's scratch container."""

    def __init__(self, engine: RenderingEngine, font_path: Optional[Path] = None):
        self.engine = engine
        self.settings = get_settings()
        self.font_path = font_path or self.settings.svg_outline_font_path
        self.logger: Any = logger.bind(component="svg_exporter")  # structlog.BoundLoggerBase

    async def export(
        self,
        nodes: Sequence[ElementNode],
        width: int,
        mode: SvgMode = SvgMode.FOREIGN_OBJECT,
        outline_text: bool = False,
    ) -> SvgDocument:
        """
        Render snapshot roots to SVG.

        Args:
            nodes: Snapshot roots in export order
            width: Virtual width of the scratch container
            mode: Embedding mode when text is not outlined
            outline_text: Convert text to glyph paths

        Returns:
            SVG document; outline failures are reported as warnings and the
            document falls back to ``mode``
        """
        html = render_static_html(nodes, pretty=False)
        warnings: List[str] = []

        async with self.engine.scratch_container(width) as scratch:
            await scratch.mount(html)
            measured_width, measured_height = await scratch.measure()
            svg_width = max(1, int(math.ceil(measured_width)))
            svg_height = max(1, int(math.ceil(measured_height)))

            body: Optional[str] = None
            if outline_text:
                try:
                    body, missing = await self._outlined_body(scratch, html, svg_width, svg_height)
                    if missing:
                        warnings.append("Glyphs missing from outline font: " + "".join(missing))
                except AssetLoadError as e:
                    self.logger.warning("Text outlining unavailable, keeping live text", error=str(e))
                    warnings.append(str(e))

            outlined = body is not None
            if body is None and mode == SvgMode.RASTER:
                buffer = await scratch.rasterize()
                body = _image_element(buffer, svg_width, svg_height)
            elif body is None:
                body = foreign_object_body(nodes, svg_width, svg_height)

        markup = _svg_open(svg_width, svg_height) + body + "</svg>"
        self.logger.info(
            "SVG exported",
            mode=mode.value,
            outlined=outlined,
            width=svg_width,
            height=svg_height,
            size=len(markup),
        )
        return SvgDocument(
            markup=markup,
            width=svg_width,
            height=svg_height,
            mode=mode,
            outlined=outlined,
            warnings=warnings,
        )

    async def _outlined_body(
        self, scratch: Scratch, html: str, width: int, height: int
    ) -> Tuple[str, List[str]]:
        if self.font_path is None:
            raise AssetLoadError("<outline font>", "no outline font configured")
        outliner = GlyphOutliner(self.font_path)

        boxes = await scratch.glyph_boxes()
        paths, missing = outliner.outline(boxes)

        await scratch.mount(html, hide_text=True)
        backdrop = await scratch.rasterize()
        body = _image_element(backdrop, width, height) + "<g>" + "".join(paths) + "</g>"
        return body, missing
