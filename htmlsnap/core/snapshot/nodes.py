"""
Node Models
===========

Live tree nodes as reported by the rendering engine, and the detached
snapshot nodes built from them.
"""

from typing import Any, Dict, Iterator, List, Optional, Union
from dataclasses import dataclass, field

from htmlsnap.core.styles.style_map import StyleDeclaration, StyleMap, parse_inline_style

PSEUDO_ATTRIBUTE = "data-htmlsnap-pseudo"


@dataclass(frozen=True)
class Geometry:
    """Border-box rectangle in CSS pixels, relative to the viewport."""

    x: float
    y: float
    width: float
    height: float


# Live tree
@dataclass
class LiveText:
    """Text node of the live tree."""

    content: str


@dataclass
class LiveElement:
    """Element of the live tree. ``ref`` is the engine's handle for it."""

    tag: str
    attributes: Dict[str, str] = field(default_factory=dict)
    children: List["LiveNode"] = field(default_factory=list)
    connected: bool = True
    geometry: Optional[Geometry] = None
    ref: Any = None

    @property
    def classes(self) -> List[str]:
        return self.attributes.get("class", "").split()

    @property
    def inline_style(self) -> List[StyleDeclaration]:
        return parse_inline_style(self.attributes.get("style"))

    def iter_elements(self) -> Iterator["LiveElement"]:
        """Descendant elements in document order, excluding self."""
        for child in self.children:
            if isinstance(child, LiveElement):
                yield child
                yield from child.iter_elements()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LiveElement":
        """Build a live tree from the engine's JSON capture."""
        children: List[LiveNode] = []
        for child in data.get("children", []):
            if child.get("type") == "text":
                children.append(LiveText(child.get("content", "")))
            else:
                children.append(cls.from_dict(child))

        geometry = data.get("geometry")
        return cls(
            tag=data["tag"],
            attributes=dict(data.get("attributes") or {}),
            children=children,
            connected=bool(data.get("connected", True)),
            geometry=Geometry(**geometry) if geometry else None,
            ref=data.get("ref"),
        )


LiveNode = Union[LiveElement, LiveText]


# Snapshot tree
@dataclass
class TextNode:
    """Detached text node."""

    content: str


@dataclass
class ElementNode:
    """Detached element whose ``style`` needs no stylesheet to render."""

    tag: str
    attributes: Dict[str, str] = field(default_factory=dict)
    style: StyleMap = field(default_factory=StyleMap)
    children: List["Node"] = field(default_factory=list)
    pseudo_before: Optional["ElementNode"] = None
    pseudo_after: Optional["ElementNode"] = None

    @property
    def synthetic(self) -> Optional[str]:
        """Pseudo position this node was generated for, if any."""
        return self.attributes.get(PSEUDO_ATTRIBUTE)

    def rendered_children(self) -> List["Node"]:
        """Children as they appear in output, generated content included."""
        nodes: List[Node] = []
        if self.pseudo_before is not None:
            nodes.append(self.pseudo_before)
        nodes.extend(self.children)
        if self.pseudo_after is not None:
            nodes.append(self.pseudo_after)
        return nodes

    def iter_elements(self) -> Iterator["ElementNode"]:
        """Self and descendant elements, generated content included."""
        yield self
        for child in self.rendered_children():
            if isinstance(child, ElementNode):
                yield from child.iter_elements()

    def text_content(self) -> str:
        parts: List[str] = []
        for child in self.rendered_children():
            if isinstance(child, TextNode):
                parts.append(child.content)
            else:
                parts.append(child.text_content())
        return "".join(parts)


Node = Union[ElementNode, TextNode]
