"""
Paginated Rasterizer
====================

Rasterizes a self-contained tree at a fixed virtual page width and slices the
tall bitmap into fixed-height pages. Content crossing a page boundary is cut
at the boundary; nothing is re-flowed.
"""

from typing import Any, List, Tuple, Union
from dataclasses import dataclass, field

from PIL import Image  # type: ignore

from htmlsnap.config.logging import get_logger
from htmlsnap.core.rendering.engine import PixelBuffer, RenderingEngine
from htmlsnap.core.snapshot.nodes import Node
from htmlsnap.core.snapshot.serializer import serialize_node
from htmlsnap.errors import RasterizationError

logger = get_logger(__name__)

# Remaining heights at or below this are treated as exhausted
HEIGHT_EPSILON = 1e-9


@dataclass
class Page:
    """One fixed-size viewport into the full-height raster."""

    image: Image.Image
    width_units: float
    height_units: float
    origin_y: float

    @property
    def end_y(self) -> float:
        return self.origin_y + self.height_units


@dataclass
class PagedDocument:
    """Pages in order, each placed at (0, 0) of its own frame."""

    page_width_units: float
    page_height_units: float
    unit: str = "mm"
    content_height_units: float = 0.0
    pixels_per_unit: float = 0.0
    pages: List[Page] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.pages)

    @property
    def ranges(self) -> List[Tuple[float, float]]:
        return [(page.origin_y, page.end_y) for page in self.pages]


def output_height_units(page_width_units: float, buffer_width: int, buffer_height: int) -> float:
    """Document-unit height of a buffer scaled to the page width, aspect preserved."""
    if buffer_width <= 0:
        raise RasterizationError("Raster buffer has no width")
    return page_width_units * buffer_height / buffer_width


def page_ranges(total_height: float, page_height: float) -> List[Tuple[float, float]]:
    """
    Vertical ranges ``[start, end)`` covering ``[0, total_height)``.

    Stops on remaining height rather than a fixed count; the final partial
    page is kept, an exhausted remainder produces no trailing page.
    """
    if page_height <= 0:
        raise ValueError("Page height must be positive")

    ranges: List[Tuple[float, float]] = []
    index = 0
    remaining = total_height
    while remaining > HEIGHT_EPSILON:
        start = index * page_height
        end = min(start + page_height, total_height)
        ranges.append((start, end))
        remaining -= page_height
        index += 1
    return ranges


def slice_pages(
    buffer: PixelBuffer,
    page_width_units: float,
    page_height_units: float,
    unit: str = "mm",
) -> PagedDocument:
    """
    Slice a tall raster into pages.

    Args:
        buffer: Full-height raster
        page_width_units: Page frame width; the buffer width maps onto it
        page_height_units: Page frame height
        unit: Measurement unit of the page geometry

    Returns:
        Paged document covering the whole buffer
    """
    total_height = output_height_units(page_width_units, buffer.width, buffer.height)
    # Single pixel/unit conversion for the whole document
    pixels_per_unit = buffer.width / page_width_units

    document = PagedDocument(
        page_width_units=page_width_units,
        page_height_units=page_height_units,
        unit=unit,
        content_height_units=total_height,
        pixels_per_unit=pixels_per_unit,
    )

    for start, end in page_ranges(total_height, page_height_units):
        top = min(buffer.height, int(round(start * pixels_per_unit)))
        bottom = min(buffer.height, int(round(end * pixels_per_unit)))
        if end >= total_height:
            bottom = buffer.height
        document.pages.append(
            Page(
                image=buffer.crop_rows(top, max(bottom, top + 1)),
                width_units=page_width_units,
                height_units=end - start,
                origin_y=start,
            )
        )

    logger.debug(
        "Sliced raster into pages",
        buffer_width=buffer.width,
        buffer_height=buffer.height,
        content_height=round(total_height, 3),
        pages=len(document.pages),
    )
    return document


class Paginator:
    """Rasterizes trees through a rendering engine and slices them into pages."""

    def __init__(self, engine: RenderingEngine):
        self.engine = engine
        self.logger: Any = logger.bind(component="paginator")  # structlog.BoundLoggerBase

    async def paginate(
        self,
        tree: Union[Node, str],
        page_width_units: float,
        page_height_units: float,
        units_per_pixel: float,
        unit: str = "mm",
    ) -> PagedDocument:
        """
        Rasterize ``tree`` and slice it into pages.

        Args:
            tree: Self-contained snapshot node or static markup
            page_width_units: Page frame width
            page_height_units: Page frame height
            units_per_pixel: Document units per CSS pixel of the virtual raster
            unit: Measurement unit

        Returns:
            Paged document

        Raises:
            RasterizationError: If rasterization fails; no partial pages
        """
        if units_per_pixel <= 0:
            raise ValueError("units_per_pixel must be positive")

        html = tree if isinstance(tree, str) else serialize_node(tree)
        virtual_width = max(1, int(round(page_width_units / units_per_pixel)))

        self.logger.info(
            "Rasterizing for pagination",
            virtual_width=virtual_width,
            page_width=page_width_units,
            page_height=page_height_units,
            unit=unit,
        )

        try:
            buffer = await self.engine.rasterize(html, virtual_width)
        except RasterizationError:
            raise
        except Exception as e:
            raise RasterizationError(f"Rasterization failed: {e}")

        document = slice_pages(buffer, page_width_units, page_height_units, unit)
        self.logger.info(
            "Pagination completed",
            pages=len(document),
            content_height=round(document.content_height_units, 3),
        )
        return document

