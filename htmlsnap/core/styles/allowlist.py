"""
Property Allow-List
===================

Versioned table of the computed properties copied into a snapshot, grouped
by family. Anything not listed here is dropped from the computed set.
"""

from typing import Dict, Tuple, List

ALLOWLIST_VERSION = 1

PROPERTY_FAMILIES: Dict[str, Tuple[str, ...]] = {
    "layout": (
        "display",
        "box-sizing",
        "width",
        "height",
        "min-width",
        "min-height",
        "max-width",
        "max-height",
        "margin-top",
        "margin-right",
        "margin-bottom",
        "margin-left",
        "padding-top",
        "padding-right",
        "padding-bottom",
        "padding-left",
        "border-top-width",
        "border-right-width",
        "border-bottom-width",
        "border-left-width",
        "border-top-style",
        "border-right-style",
        "border-bottom-style",
        "border-left-style",
        "border-top-color",
        "border-right-color",
        "border-bottom-color",
        "border-left-color",
        "border-top-left-radius",
        "border-top-right-radius",
        "border-bottom-right-radius",
        "border-bottom-left-radius",
        "overflow-x",
        "overflow-y",
        "flex-direction",
        "flex-wrap",
        "flex-grow",
        "flex-shrink",
        "flex-basis",
        "justify-content",
        "align-items",
        "align-content",
        "align-self",
        "order",
        "row-gap",
        "column-gap",
        "grid-template-columns",
        "grid-template-rows",
        "grid-auto-flow",
        "grid-column-start",
        "grid-column-end",
        "grid-row-start",
        "grid-row-end",
        "vertical-align",
        "list-style-type",
        "list-style-position",
        "table-layout",
        "border-collapse",
        "border-spacing",
    ),
    "positioning": (
        "position",
        "top",
        "right",
        "bottom",
        "left",
        "z-index",
        "float",
        "clear",
    ),
    "background": (
        "background-color",
        "background-image",
        "background-position",
        "background-size",
        "background-repeat",
        "background-origin",
        "background-clip",
        "background-attachment",
    ),
    "text": (
        "color",
        "font-family",
        "font-size",
        "font-weight",
        "font-style",
        "font-variant",
        "line-height",
        "letter-spacing",
        "word-spacing",
        "text-align",
        "text-decoration-line",
        "text-decoration-style",
        "text-decoration-color",
        "text-indent",
        "text-transform",
        "text-shadow",
        "text-overflow",
        "white-space",
        "word-break",
        "overflow-wrap",
        "direction",
    ),
    "effects": (
        "opacity",
        "visibility",
        "box-shadow",
        "filter",
        "backdrop-filter",
        "mix-blend-mode",
        "transform",
        "transform-origin",
        "clip-path",
        "outline-width",
        "outline-style",
        "outline-color",
        "outline-offset",
        "object-fit",
        "object-position",
    ),
    "animation": (
        "transition-property",
        "transition-duration",
        "transition-timing-function",
        "transition-delay",
        "animation-name",
        "animation-duration",
        "animation-timing-function",
        "animation-delay",
        "animation-iteration-count",
        "animation-direction",
        "animation-fill-mode",
    ),
    "interaction": (
        "cursor",
        "pointer-events",
        "user-select",
    ),
}

# Composite value inspected for gradients; never emitted unless it holds one.
BACKGROUND_SHORTHAND = "background"

GRADIENT_FUNCTIONS = (
    "linear-gradient(",
    "radial-gradient(",
    "conic-gradient(",
    "repeating-linear-gradient(",
    "repeating-radial-gradient(",
    "repeating-conic-gradient(",
)

BACKGROUND_LONGHANDS = frozenset(PROPERTY_FAMILIES["background"])


def allowed_properties() -> List[str]:
    """All allow-listed properties in table order."""
    seen: Dict[str, None] = {}
    for properties in PROPERTY_FAMILIES.values():
        for name in properties:
            seen.setdefault(name, None)
    return list(seen)


def family_of(name: str) -> str:
    """Family a property belongs to, or empty string when not allow-listed."""
    for family, properties in PROPERTY_FAMILIES.items():
        if name in properties:
            return family
    return ""


def contains_gradient(value: str) -> bool:
    lowered = value.lower()
    return any(function in lowered for function in GRADIENT_FUNCTIONS)
