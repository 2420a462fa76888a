"""
Static Serializer
=================

Turns snapshot trees into self-contained markup with every style inlined.
"""

from typing import Dict, List, Sequence

from htmlsnap.core.snapshot.nodes import ElementNode, Node, TextNode

VOID_ELEMENTS = frozenset(
    {
        "area", "base", "br", "col", "embed", "hr", "img", "input",
        "link", "meta", "param", "source", "track", "wbr",
    }
)

STATIC_WRAPPER_STYLE = "width: 100%; height: 100%; background: #ffffff;"

INDENT = "  "


def _escape_html(text: str) -> str:
    """Escape HTML special characters."""
    if not text:
        return ""
    return (
        text.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
        .replace("'", "&#x27;")
    )


def _build_attributes(node: ElementNode) -> str:
    attributes: Dict[str, str] = dict(node.attributes)
    style = node.style.to_css()
    if style:
        attributes["style"] = style

    if not attributes:
        return ""
    pairs = [f'{name}="{_escape_html(value)}"' for name, value in attributes.items()]
    return " " + " ".join(pairs)


def _is_block_layout(children: Sequence[Node]) -> bool:
    """Children can go one per line when only whitespace text separates them."""
    has_element = False
    for child in children:
        if isinstance(child, TextNode):
            if child.content.strip():
                return False
        else:
            has_element = True
    return has_element


def serialize_node(node: Node, pretty: bool = False, depth: int = 0, xhtml: bool = False) -> str:
    """
    Serialize one snapshot node (and its subtree) to markup.

    With ``xhtml`` void elements are self-closed so the result is well-formed
    XML, as required inside SVG ``<foreignObject>``.
    """
    if isinstance(node, TextNode):
        return _escape_html(node.content)

    open_tag = f"<{node.tag}{_build_attributes(node)}>"
    if node.tag in VOID_ELEMENTS:
        return open_tag[:-1] + " />" if xhtml else open_tag

    children = node.rendered_children()
    preformatted = (node.style.get("white-space") or "").startswith("pre")
    if pretty and not preformatted and _is_block_layout(children):
        pad = INDENT * (depth + 1)
        lines = [
            pad + serialize_node(child, pretty, depth + 1, xhtml)
            for child in children
            if isinstance(child, ElementNode)
        ]
        inner = "\n" + "\n".join(lines) + "\n" + INDENT * depth
    else:
        inner = "".join(serialize_node(child, xhtml=xhtml) for child in children)

    return f"{open_tag}{inner}</{node.tag}>"


def render_static_html(nodes: Sequence[ElementNode], pretty: bool = True) -> str:
    """
    Wrap snapshot roots in the static document wrapper.

    Args:
        nodes: Snapshot roots in export order
        pretty: One element per line with two-space indentation

    Returns:
        Self-contained markup string
    """
    if pretty:
        body: List[str] = [INDENT + serialize_node(node, True, 1) for node in nodes]
        return f'<div style="{STATIC_WRAPPER_STYLE}">\n' + "\n".join(body) + "\n</div>"

    body_html = "".join(serialize_node(node) for node in nodes)
    return f'<div style="{STATIC_WRAPPER_STYLE}">{body_html}</div>'
