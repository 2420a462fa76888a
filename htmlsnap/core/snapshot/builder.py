"""
Snapshot Builder
================

Walks a live subtree and produces a detached tree whose every element carries
an explicit, complete style declaration. Optionally pins every element to the
geometry measured at snapshot time.
"""

from typing import Any, List, Optional, Tuple
import re

from htmlsnap.config.logging import get_logger
from htmlsnap.core.rendering.engine import RenderingEngine
from htmlsnap.core.snapshot.nodes import (
    ElementNode,
    LiveElement,
    LiveNode,
    LiveText,
    Node,
    TextNode,
)
from htmlsnap.core.styles.resolver import StyleResolver
from htmlsnap.errors import DetachedRootError, SnapshotStructureError
from htmlsnap.models.schemas import PositioningMode

logger = get_logger(__name__)

_PX = re.compile(r"^\s*(-?\d+(?:\.\d+)?)px\s*$")

SnapshotPair = Tuple[LiveNode, Optional[Node]]


def parse_px(value: Optional[str]) -> float:
    """Numeric value of a ``px`` length; anything else counts as zero."""
    if not value:
        return 0.0
    match = _PX.match(value)
    return float(match.group(1)) if match else 0.0


def _format_px(value: float) -> str:
    rounded = round(value, 3)
    if rounded == int(rounded):
        return f"{int(rounded)}px"
    return f"{rounded}px"


class SnapshotBuilder:
    """Builds self-contained snapshot trees from live elements."""

    def __init__(
        self,
        engine: RenderingEngine,
        resolver: Optional[StyleResolver] = None,
        positioning: PositioningMode = PositioningMode.FLOW,
    ):
        self.engine = engine
        self.resolver = resolver or StyleResolver(engine)
        self.positioning = positioning
        self.logger: Any = logger.bind(component="snapshot_builder")  # structlog.BoundLoggerBase

    async def snapshot(
        self, root: Optional[LiveElement], positioning: Optional[PositioningMode] = None
    ) -> ElementNode:
        """
        Snapshot a live subtree.

        Args:
            root: Live root element
            positioning: Overrides the builder's positioning mode

        Returns:
            Detached element tree

        Raises:
            DetachedRootError: If the root is absent or not attached
            SnapshotStructureError: If a clone diverges from its source
        """
        if root is None or not root.connected:
            raise DetachedRootError("Snapshot root is not attached to a live document")

        mode = positioning or self.positioning
        self.logger.info("Building snapshot", root=root.tag, positioning=mode.value)

        _, clone = await self._clone(root, mode)
        if not isinstance(clone, ElementNode):
            raise SnapshotStructureError(root.tag, 1, 0)

        self.logger.info(
            "Snapshot completed",
            root=root.tag,
            elements=sum(1 for _ in clone.iter_elements()),
        )
        return clone

    async def snapshot_document(
        self, container: Optional[LiveElement], positioning: Optional[PositioningMode] = None
    ) -> ElementNode:
        """
        Snapshot the preview container's contents under an anonymous holder.

        The container's own attributes and its preview-sized width are dropped,
        so the holder fills whatever box it is rendered in. Its height is kept
        only when explicit positioning pinned the children.
        """
        mode = positioning or self.positioning
        holder = await self.snapshot(container, mode)
        holder.attributes = {}
        holder.style.remove("width")
        if mode == PositioningMode.FLOW:
            holder.style.remove("height")
        return holder

    async def _clone(self, source: LiveNode, mode: PositioningMode) -> SnapshotPair:
        if isinstance(source, LiveText):
            return source, TextNode(source.content)
        if not isinstance(source, LiveElement):
            self.logger.warning("Unsupported live node", node_type=type(source).__name__)
            return source, None

        style = await self.resolver.resolve(source)
        before = await self.resolver.resolve_pseudo(source, "before")
        after = await self.resolver.resolve_pseudo(source, "after")

        pairs: List[SnapshotPair] = []
        for child in source.children:
            pairs.append(await self._clone(child, mode))

        attributes = {k: v for k, v in source.attributes.items() if k != "style"}
        clone = ElementNode(
            tag=source.tag,
            attributes=attributes,
            style=style,
            children=[c for _, c in pairs if c is not None],
            pseudo_before=before,
            pseudo_after=after,
        )

        # Positional correlation below relies on equal child counts
        if len(clone.children) != len(source.children):
            raise SnapshotStructureError(source.tag, len(source.children), len(clone.children))

        if mode == PositioningMode.EXPLICIT:
            self._pin_children(source, clone)

        return source, clone

    def _pin_children(self, source: LiveElement, clone: ElementNode) -> None:
        """Force ``position: absolute`` with measured offsets on every child element."""
        parent_geometry = source.geometry
        if parent_geometry is None:
            return

        border_left = parse_px(clone.style.get("border-left-width"))
        border_top = parse_px(clone.style.get("border-top-width"))
        pinned = 0

        for index, live_child in enumerate(source.children):
            clone_child = clone.children[index]
            if not isinstance(live_child, LiveElement) or not isinstance(clone_child, ElementNode):
                continue
            geometry = live_child.geometry
            if geometry is None:
                continue

            left = geometry.x - parent_geometry.x - border_left
            left -= parse_px(clone_child.style.get("margin-left"))
            top = geometry.y - parent_geometry.y - border_top
            top -= parse_px(clone_child.style.get("margin-top"))

            clone_child.style.set("position", "absolute", important=True)
            clone_child.style.set("left", _format_px(left), important=True)
            clone_child.style.set("top", _format_px(top), important=True)
            clone_child.style.set("width", _format_px(geometry.width), important=True)
            clone_child.style.set("height", _format_px(geometry.height), important=True)
            clone_child.style.set("box-sizing", "border-box", important=True)
            clone_child.style.remove("right")
            clone_child.style.remove("bottom")
            pinned += 1

        if pinned and clone.style.get("position", "static") == "static":
            clone.style.set("position", "relative")
        # Pinned children no longer contribute to the parent's flow height
        if pinned and not clone.style.is_important("height"):
            height = parent_geometry.height
            if clone.style.get("box-sizing") != "border-box":
                for edge in ("padding-top", "padding-bottom", "border-top-width", "border-bottom-width"):
                    height -= parse_px(clone.style.get(edge))
            clone.style.set("height", _format_px(max(height, 0.0)))
