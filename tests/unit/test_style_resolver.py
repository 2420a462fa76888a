"""
Unit Tests for Style Resolver
=============================

Allow-listed computed styles, gradient preservation, generated content and
rejected declarations.
"""

import pytest

from htmlsnap.core.snapshot.nodes import PSEUDO_ATTRIBUTE, TextNode
from htmlsnap.core.styles.allowlist import (
    ALLOWLIST_VERSION,
    BACKGROUND_LONGHANDS,
    allowed_properties,
    contains_gradient,
    family_of,
)
from htmlsnap.core.styles.resolver import StyleResolver, resolve_content
from htmlsnap.core.styles.style_map import UNRESOLVED_VALUES

from tests.utils.mocks import FakeRenderingEngine, build_tree, element, text


@pytest.fixture
def card():
    return build_tree(element("div", text("Hello"), class_="card", title="Greeting"))


@pytest.fixture
def engine(card):
    return FakeRenderingEngine(card)


class TestAllowList:
    """Test the versioned property table."""

    def test_version_is_set(self):
        """Test the table carries a version."""
        assert ALLOWLIST_VERSION >= 1

    def test_properties_are_unique(self):
        """Test each property appears once."""
        properties = allowed_properties()
        assert len(properties) == len(set(properties))
        assert "background" not in properties

    def test_families(self):
        """Test family lookup."""
        assert family_of("color") == "text"
        assert family_of("position") == "positioning"
        assert family_of("background-color") == "background"
        assert family_of("not-a-property") == ""

    @pytest.mark.parametrize(
        "value",
        ["linear-gradient(red, blue)", "rgba(0, 0, 0, 0) REPEATING-RADIAL-GRADIENT(red, blue)"],
    )
    def test_gradient_detection(self, value):
        """Test gradient functions are detected case-insensitively."""
        assert contains_gradient(value)

    def test_plain_background_is_not_gradient(self):
        """Test plain colors are not gradients."""
        assert not contains_gradient("rgb(255, 0, 0) none repeat")


class TestResolve:
    """Test explicit style map construction."""

    @pytest.mark.asyncio
    async def test_only_allow_listed_computed_properties(self, engine, card):
        """Test computed values outside the table are dropped."""
        engine.set_computed(card, caret_color="red", color="rgb(1, 2, 3)")
        style = await StyleResolver(engine).resolve(card)

        assert style.get("color") == "rgb(1, 2, 3)"
        assert "caret-color" not in style
        assert set(style) <= set(allowed_properties())

    @pytest.mark.asyncio
    async def test_no_sentinel_values_leak(self, engine, card):
        """Test empty and cascade-keyword values never reach the map."""
        engine.set_computed(card, width="", height="inherit", opacity="initial")
        style = await StyleResolver(engine).resolve(card)

        assert "width" not in style
        assert "height" not in style
        assert "opacity" not in style
        assert all(value.strip().lower() not in UNRESOLVED_VALUES for value in style.to_dict().values())

    @pytest.mark.asyncio
    async def test_inline_declarations_override_computed(self, engine):
        """Test the element's own declarations are applied last, with priority."""
        node = build_tree(element("p", style="color: red !important; padding: 4px"))
        engine.document = node
        engine.set_computed(node, color="rgb(0, 0, 0)")

        style = await StyleResolver(engine).resolve(node)

        assert style.get("color") == "red"
        assert style.is_important("color")
        assert style.get("padding") == "4px"

    @pytest.mark.asyncio
    async def test_inline_variable_reference_uses_computed_value(self, engine):
        """Test an inline var() reference is replaced by the computed value."""
        node = build_tree(
            element("p", style="--accentColor: rgb(1, 2, 3); color: var(--accentColor)")
        )
        engine.document = node
        engine.set_computed(node, color="rgb(1, 2, 3)")

        style = await StyleResolver(engine).resolve(node)

        assert style.get("color") == "rgb(1, 2, 3)"
        assert style.get("--accentColor") == "rgb(1, 2, 3)"
        assert "var(" not in style.to_css()

    @pytest.mark.asyncio
    async def test_inline_variable_outside_allow_list_is_resolved(self, engine):
        """Test var() references on other properties are looked up individually."""
        node = build_tree(element("pre", style="tab-size: var(--indent) !important"))
        engine.document = node
        engine.set_computed(node, tab_size="4")

        style = await StyleResolver(engine).resolve(node)

        assert style.get("tab-size") == "4"
        assert style.is_important("tab-size")

    @pytest.mark.asyncio
    async def test_unresolvable_variable_reference_dropped(self, engine):
        """Test a var() reference without a computed value never reaches the map."""
        node = build_tree(element("pre", style="tab-size: var(--undefined); padding: 2px"))
        engine.document = node

        style = await StyleResolver(engine).resolve(node)

        assert "tab-size" not in style
        assert style.get("padding") == "2px"

    @pytest.mark.asyncio
    async def test_gradient_preserved_as_single_shorthand(self, engine, card):
        """Test a gradient background is copied verbatim and longhands are skipped."""
        gradient = "linear-gradient(90deg, rgb(255, 0, 0), rgb(0, 0, 255))"
        engine.set_computed(
            card,
            background=f"rgba(0, 0, 0, 0) {gradient} repeat scroll 0% 0% / auto padding-box border-box",
            background_image=gradient,
            background_color="rgba(0, 0, 0, 0)",
        )

        style = await StyleResolver(engine).resolve(card)

        assert gradient in style.get("background")
        assert not any(name in style for name in BACKGROUND_LONGHANDS)
        assert sum(1 for name in style if name == "background") == 1

    @pytest.mark.asyncio
    async def test_plain_background_uses_longhands(self, engine, card):
        """Test non-gradient backgrounds are carried by longhands only."""
        engine.set_computed(card, background_color="rgb(255, 0, 0)")
        style = await StyleResolver(engine).resolve(card)

        assert style.get("background-color") == "rgb(255, 0, 0)"
        assert "background" not in style

    @pytest.mark.asyncio
    async def test_rejected_declaration_is_skipped(self, engine, card):
        """Test a refused declaration is skipped and the rest survive."""
        engine.refused.add("filter")
        engine.set_computed(card, filter="blur(2px)", color="rgb(9, 9, 9)")

        style = await StyleResolver(engine).resolve(card)

        assert "filter" not in style
        assert style.get("color") == "rgb(9, 9, 9)"

    @pytest.mark.asyncio
    async def test_resolution_is_idempotent(self, engine, card):
        """Test resolving the same element twice gives equal maps."""
        resolver = StyleResolver(engine)
        engine.set_computed(card, display="flex", margin_top="8px")

        first = await resolver.resolve(card)
        second = await resolver.resolve(card)

        assert first == second


class TestGeneratedContent:
    """Test ::before/::after synthesis."""

    @pytest.mark.asyncio
    async def test_before_content_becomes_synthetic_span(self, engine, card):
        """Test generated content is materialized as a tagged span."""
        engine.set_pseudo(card, "before", content='"\\2605 "', color="rgb(255, 0, 0)")

        node = await StyleResolver(engine).resolve_pseudo(card, "before")

        assert node is not None
        assert node.tag == "span"
        assert node.attributes[PSEUDO_ATTRIBUTE] == "before"
        assert node.synthetic == "before"
        assert node.children == [TextNode("★")]
        assert node.style.get("color") == "rgb(255, 0, 0)"

    @pytest.mark.asyncio
    async def test_no_content_yields_nothing(self, engine, card):
        """Test pseudo-elements with content none produce no node."""
        assert await StyleResolver(engine).resolve_pseudo(card, "after") is None

    @pytest.mark.asyncio
    async def test_empty_content_keeps_decorative_box(self, engine, card):
        """Test empty content still produces a styled, childless span."""
        engine.set_pseudo(card, "after", content='""', display="block", width="10px")

        node = await StyleResolver(engine).resolve_pseudo(card, "after")

        assert node is not None
        assert node.children == []
        assert node.style.get("width") == "10px"

    @pytest.mark.asyncio
    async def test_unsupported_position(self, engine, card):
        """Test only before/after are accepted."""
        with pytest.raises(ValueError):
            await StyleResolver(engine).resolve_pseudo(card, "marker")

    def test_content_with_attr(self):
        """Test attr() pulls from the element's attributes."""
        assert resolve_content('"[" attr(title) "]"', {"title": "Greeting"}) == "[Greeting]"

    @pytest.mark.parametrize("value", [None, "", "none", "normal"])
    def test_content_absent(self, value):
        """Test values that generate nothing."""
        assert resolve_content(value, {}) is None
