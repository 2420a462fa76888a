"""
Rendering Engine
================

Abstract interface to the engine that owns the live tree: style resolution,
declaration validation, scratch rendering and preview display.
"""

from typing import AsyncContextManager, Dict, List, Optional, Sequence, Tuple
from abc import ABC, abstractmethod
from dataclasses import dataclass
import io

from PIL import Image  # type: ignore

from htmlsnap.core.snapshot.nodes import LiveElement
from htmlsnap.core.styles.style_map import StyleDeclaration, check_declaration
from htmlsnap.errors import AssetLoadError, RasterizationError, StylePropertyRejected


@dataclass
class PixelBuffer:
    """Rectangular RGB bitmap, 8 bits per channel."""

    image: Image.Image

    @property
    def width(self) -> int:
        return self.image.width

    @property
    def height(self) -> int:
        return self.image.height

    @classmethod
    def from_png(cls, data: bytes) -> "PixelBuffer":
        image = Image.open(io.BytesIO(data))
        image.load()
        return cls(image.convert("RGB"))

    def crop_rows(self, top: int, bottom: int) -> Image.Image:
        """Full-width horizontal band ``[top, bottom)``."""
        return self.image.crop((0, top, self.width, bottom))

    def to_png(self) -> bytes:
        output = io.BytesIO()
        self.image.save(output, format="PNG")
        return output.getvalue()


@dataclass(frozen=True)
class GlyphBox:
    """One rendered character and where it landed, relative to the scratch root."""

    char: str
    x: float
    y: float
    width: float
    height: float
    font_size: float
    color: str


class Scratch(ABC):
    """Off-screen container attached to the live environment for one export."""

    width: int

    @abstractmethod
    async def mount(self, html: str, hide_text: bool = False) -> None:
        """Replace the scratch content and wait one layout pass."""
        pass

    @abstractmethod
    async def rasterize(self) -> PixelBuffer:
        """Capture the scratch content as pixels."""
        pass

    @abstractmethod
    async def measure(self) -> Tuple[float, float]:
        """Width and height of the scratch content in CSS pixels."""
        pass

    @abstractmethod
    async def glyph_boxes(self) -> List[GlyphBox]:
        """Per-character boxes of every visible text node."""
        pass


class RenderingEngine(ABC):
    """Black-box capability that computes cascaded styles and pixels."""

    @abstractmethod
    async def resolve_style(
        self,
        element: LiveElement,
        pseudo: Optional[str] = None,
        properties: Optional[Sequence[str]] = None,
    ) -> Dict[str, str]:
        """
        Computed values for ``element`` (or its ``::before``/``::after``).

        Raises:
            DetachedRootError: If the element is no longer attached
        """
        pass

    async def validate_declarations(
        self, element: LiveElement, declarations: Sequence[StyleDeclaration]
    ) -> List[StylePropertyRejected]:
        """Declarations the engine refuses; the default check is syntactic."""
        rejected: List[StylePropertyRejected] = []
        for declaration in declarations:
            try:
                check_declaration(declaration.name, declaration.value)
            except StylePropertyRejected as e:
                rejected.append(e)
        return rejected

    @abstractmethod
    async def capture_document(self) -> LiveElement:
        """Live tree of the current preview."""
        pass

    @abstractmethod
    async def render_preview(self, markup: str) -> None:
        """Replace the preview content with ``markup``."""
        pass

    @abstractmethod
    async def wait_for_assets(self) -> List[AssetLoadError]:
        """Wait until fonts and icons settle; report the ones that failed."""
        pass

    @abstractmethod
    def scratch_container(self, width: int) -> AsyncContextManager[Scratch]:
        """Acquire a fresh scratch container, removed on every exit path."""
        pass

    async def rasterize(self, html: str, width: int) -> PixelBuffer:
        """
        Rasterize self-contained markup at a fixed virtual width.

        Raises:
            RasterizationError: If the engine cannot produce a buffer
        """
        async with self.scratch_container(width) as scratch:
            await scratch.mount(html)
            buffer = await scratch.rasterize()

        if buffer.width <= 0 or buffer.height <= 0:
            raise RasterizationError(
                f"Rasterization produced an empty buffer ({buffer.width}x{buffer.height})"
            )
        return buffer

