"""
Style Resolver
==============

Flattens a live element's cascade into an explicit, allow-listed style map
and synthesizes nodes for generated ``::before``/``::after`` content.
"""

from typing import Any, Dict, List, Optional, Sequence
import re

from htmlsnap.config.logging import get_logger
from htmlsnap.core.rendering.engine import RenderingEngine
from htmlsnap.core.snapshot.nodes import PSEUDO_ATTRIBUTE, ElementNode, LiveElement, TextNode
from htmlsnap.core.styles.allowlist import (
    BACKGROUND_LONGHANDS,
    BACKGROUND_SHORTHAND,
    allowed_properties,
    contains_gradient,
)
from htmlsnap.core.styles.style_map import (
    StyleDeclaration,
    StyleMap,
    has_substitution,
    is_unresolved,
)
from htmlsnap.errors import StylePropertyRejected

logger = get_logger(__name__)

PSEUDO_POSITIONS = ("before", "after")

_NO_CONTENT = frozenset({"", "none", "normal"})
_CONTENT_TOKEN = re.compile(
    r"""
    "(?P<dq>(?:[^"\\]|\\.)*)"           # double-quoted string
    | '(?P<sq>(?:[^'\\]|\\.)*)'         # single-quoted string
    | attr\(\s*(?P<attr>[\w-]+)\s*\)    # attr(name)
    | (?P<other>[\w-]+\([^)]*\)|[\w-]+) # counters, urls, quotes
    """,
    re.VERBOSE | re.IGNORECASE,
)
_CSS_ESCAPE = re.compile(r"\\([0-9a-fA-F]{1,6})\s?|\\(.)", re.DOTALL)


def _unescape_css_string(text: str) -> str:
    def replace(match: "re.Match[str]") -> str:
        if match.group(1):
            try:
                return chr(int(match.group(1), 16))
            except ValueError:
                return "\ufffd"
        return match.group(2)

    return _CSS_ESCAPE.sub(replace, text)


def resolve_content(value: Optional[str], attributes: Dict[str, str]) -> Optional[str]:
    """
    Text produced by a computed ``content`` value.

    Returns:
        None when the pseudo-element generates nothing, else the text (which
        may be empty, e.g. ``content: ""`` on a decorative box)
    """
    if value is None or value.strip().lower() in _NO_CONTENT:
        return None

    parts: List[str] = []
    for match in _CONTENT_TOKEN.finditer(value):
        if match.group("dq") is not None:
            parts.append(_unescape_css_string(match.group("dq")))
        elif match.group("sq") is not None:
            parts.append(_unescape_css_string(match.group("sq")))
        elif match.group("attr"):
            parts.append(attributes.get(match.group("attr"), ""))
        else:
            logger.debug("Unsupported generated content token", token=match.group("other"))
    return "".join(parts)


class StyleResolver:
    """Resolves explicit style maps through a rendering engine."""

    def __init__(self, engine: RenderingEngine, properties: Optional[Sequence[str]] = None):
        self.engine = engine
        self.properties: List[str] = list(properties or allowed_properties())
        self.logger: Any = logger.bind(component="style_resolver")  # structlog.BoundLoggerBase

    @property
    def _requested(self) -> List[str]:
        return self.properties + [BACKGROUND_SHORTHAND]

    async def resolve(self, element: LiveElement) -> StyleMap:
        """
        Build the explicit style map of a live element.

        Computed allow-listed values come first, the element's own inline
        declarations are applied last. Rejected declarations are skipped.
        """
        computed = await self.engine.resolve_style(element, properties=self._requested)
        candidates = self._computed_declarations(computed)
        candidates.extend(await self._inline_declarations(element, computed))
        return await self._build_map(element, candidates)

    async def resolve_pseudo(self, element: LiveElement, position: str) -> Optional[ElementNode]:
        """
        Synthesize the generated-content node for ``position`` (before/after).

        Returns:
            An inline ``span`` tagged as synthetic, or None without content
        """
        if position not in PSEUDO_POSITIONS:
            raise ValueError(f"Unsupported pseudo position: {position}")

        computed = await self.engine.resolve_style(
            element, pseudo=f"::{position}", properties=self._requested + ["content"]
        )
        text = resolve_content(computed.get("content"), element.attributes)
        if text is None:
            return None

        style = await self._build_map(element, self._computed_declarations(computed))
        children = [TextNode(text)] if text else []

        self.logger.debug(
            "Synthesized generated content", tag=element.tag, position=position, length=len(text)
        )
        return ElementNode(
            tag="span",
            attributes={PSEUDO_ATTRIBUTE: position},
            style=style,
            children=children,
        )

    async def _inline_declarations(
        self, element: LiveElement, computed: Dict[str, str]
    ) -> List[StyleDeclaration]:
        """
        Inline declarations, with ``var()`` and ``env()`` references replaced by
        the engine's computed value. Unresolvable ones are dropped.
        """
        inline = [d for d in element.inline_style if not is_unresolved(d.value)]
        missing = [
            d.name for d in inline if has_substitution(d.value) and d.name not in computed
        ]
        if missing:
            computed = dict(computed)
            computed.update(await self.engine.resolve_style(element, properties=missing))

        declarations: List[StyleDeclaration] = []
        for declaration in inline:
            if not has_substitution(declaration.value):
                declarations.append(declaration)
                continue
            value = computed.get(declaration.name)
            if is_unresolved(value) or has_substitution(value):
                self.logger.debug(
                    "Dropped unresolved inline declaration",
                    tag=element.tag,
                    property=declaration.name,
                )
                continue
            declarations.append(
                StyleDeclaration(declaration.name, value.strip(), declaration.important)
            )
        return declarations

    def _computed_declarations(self, computed: Dict[str, str]) -> List[StyleDeclaration]:
        declarations: List[StyleDeclaration] = []
        background = computed.get(BACKGROUND_SHORTHAND) or ""
        gradient = contains_gradient(background)

        for name in self.properties:
            if gradient and name in BACKGROUND_LONGHANDS:
                continue
            value = computed.get(name)
            if value is None or is_unresolved(value):
                continue
            declarations.append(StyleDeclaration(name, value.strip()))

        # Gradients do not survive longhand decomposition
        if gradient:
            declarations.append(StyleDeclaration(BACKGROUND_SHORTHAND, background.strip()))
        return declarations

    async def _build_map(
        self, element: LiveElement, candidates: List[StyleDeclaration]
    ) -> StyleMap:
        rejected = await self.engine.validate_declarations(element, candidates)
        refused = {(r.name, r.value) for r in rejected}
        for r in rejected:
            self.logger.warning(
                "Style property rejected", tag=element.tag, property=r.name, reason=r.reason
            )

        style = StyleMap()
        for declaration in candidates:
            if (declaration.name, declaration.value) in refused:
                continue
            try:
                style.set(declaration.name, declaration.value, declaration.important)
            except StylePropertyRejected as e:
                self.logger.warning(
                    "Style property rejected", tag=element.tag, property=e.name, reason=e.reason
                )
        return style
