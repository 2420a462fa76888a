"""
Integration Tests for the Playwright Rendering Engine
=====================================================

Drives a real headless Chromium. Skipped when the browser is not installed.
"""

from typing import AsyncGenerator

import pytest
import pytest_asyncio

from htmlsnap.core.exporter import ExportCoordinator
from htmlsnap.core.preview import PreviewSession
from htmlsnap.config.settings import get_settings
from htmlsnap.core.rendering.playwright_engine import PREVIEW_ID, PlaywrightRenderingEngine
from htmlsnap.core.snapshot.builder import SnapshotBuilder
from htmlsnap.core.snapshot.nodes import LiveElement
from htmlsnap.core.snapshot.serializer import render_static_html
from htmlsnap.core.styles.style_map import StyleDeclaration
from htmlsnap.errors import HtmlSnapError
from htmlsnap.models.schemas import SvgMode

STYLED_MARKUP = """<style>
  .card { color: rgb(200, 0, 0); padding: 8px; background: linear-gradient(90deg, red, blue); }
  .card::before { content: "\\2605"; color: rgb(0, 0, 200); }
</style>
<p class="dont-export">Header</p>
<div class="card export-this"><h1>Invoice</h1><p>Total: 42</p></div>
<p class="dont-export">Footer</p>"""


SCRATCH_OVERFLOW_JS = """
(id) => {
  const container = document.getElementById(id);
  return container.scrollWidth - container.clientWidth;
}
"""

@pytest_asyncio.fixture
async def engine() -> AsyncGenerator[PlaywrightRenderingEngine, None]:
    """Started engine, or skip when Chromium is unavailable."""
    playwright_engine = PlaywrightRenderingEngine()
    try:
        await playwright_engine.start()
    except HtmlSnapError as e:
        pytest.skip(f"Chromium unavailable: {e}")
    yield playwright_engine
    await playwright_engine.close()


async def _scratch_count(engine: PlaywrightRenderingEngine) -> int:
    return await engine.page.evaluate(
        "() => document.querySelectorAll('[id^=\"htmlsnap-scratch-\"]').length"
    )


class TestLiveTree:
    """Test preview rendering and capture."""

    @pytest.mark.asyncio
    async def test_capture_skips_non_rendered_elements(self, engine):
        """Test the captured tree mirrors the preview without style elements."""
        await engine.render_preview(STYLED_MARKUP)

        tree = await engine.capture_document()

        assert tree.attributes["id"] == PREVIEW_ID
        tags = [child.tag for child in tree.children if isinstance(child, LiveElement)]
        assert tags == ["p", "div", "p"]

    @pytest.mark.asyncio
    async def test_resolve_style_and_pseudo(self, engine):
        """Test computed values come from the stylesheet cascade."""
        await engine.render_preview(STYLED_MARKUP)
        tree = await engine.capture_document()
        card = next(e for e in tree.iter_elements() if "card" in e.classes)

        style = await engine.resolve_style(card, properties=["color", "padding-top"])
        before = await engine.resolve_style(card, pseudo="::before", properties=["content"])

        assert style == {"color": "rgb(200, 0, 0)", "padding-top": "8px"}
        assert "★" in before["content"]

    @pytest.mark.asyncio
    async def test_engine_refuses_invalid_values(self, engine):
        """Test CSS.supports-based validation."""
        await engine.render_preview("<p>x</p>")
        tree = await engine.capture_document()

        rejected = await engine.validate_declarations(
            tree,
            [StyleDeclaration("color", "not-a-color"), StyleDeclaration("color", "red")],
        )

        assert [(r.name, r.value) for r in rejected] == [("color", "not-a-color")]

    @pytest.mark.asyncio
    async def test_wait_for_assets_without_assets(self, engine):
        """Test the asset wait settles with nothing to load."""
        await engine.render_preview("<p>x</p>")
        assert await engine.wait_for_assets() == []


class TestExports:
    """Test end-to-end exports through the coordinator."""

    @pytest.mark.asyncio
    async def test_html_export_is_self_contained(self, engine):
        """Test the marked card is exported with inline computed styles."""
        assert await PreviewSession(engine).on_markup_changed(STYLED_MARKUP)

        result = await ExportCoordinator(engine).export_html("export-this")

        assert result.success is True
        assert "Header" not in result.text
        assert "color: rgb(200, 0, 0)" in result.text
        assert "linear-gradient" in result.text
        assert 'data-htmlsnap-pseudo="before"' in result.text
        assert await _scratch_count(engine) == 0

    @pytest.mark.asyncio
    async def test_pdf_and_png_exports(self, engine):
        """Test raster exports succeed and leave no scratch container behind."""
        await PreviewSession(engine).on_markup_changed(STYLED_MARKUP)
        coordinator = ExportCoordinator(engine)

        pdf = await coordinator.export_pdf("export-this")
        png = await coordinator.export_png("export-this")

        assert pdf.success is True and pdf.page_count >= 1
        assert png.success is True and png.data.startswith(b"\x89PNG")
        assert await _scratch_count(engine) == 0

    @pytest.mark.asyncio
    async def test_svg_export(self, engine):
        """Test SVG exports in both embedding modes."""
        await PreviewSession(engine).on_markup_changed(STYLED_MARKUP)
        coordinator = ExportCoordinator(engine)

        foreign = await coordinator.export_svg("export-this")
        raster = await coordinator.export_svg("export-this", svg_mode=SvgMode.RASTER)

        assert "<foreignObject" in foreign.text
        assert "data:image/png;base64," in raster.text

    @pytest.mark.asyncio
    async def test_full_width_content_fits_paged_raster(self, engine):
        """Test a full-width block is rasterized to the content edge without clipping."""
        settings = get_settings()
        await engine.render_preview('<div style="height: 40px; background: rgb(255, 0, 0)"></div>')
        tree = await engine.capture_document()
        holder = await SnapshotBuilder(engine).snapshot_document(tree)
        html = render_static_html([holder], pretty=False)

        async with engine.scratch_container(settings.pdf_virtual_width) as scratch:
            await scratch.mount(html)
            overflow = await engine.page.evaluate(SCRATCH_OVERFLOW_JS, scratch.container_id)
            buffer = await scratch.rasterize()

        scale = buffer.width / settings.pdf_virtual_width
        last_content_x = int((settings.pdf_virtual_width - settings.scratch_padding - 1) * scale)
        middle_y = int((settings.scratch_padding + 20) * scale)
        assert overflow == 0
        assert buffer.image.getpixel((last_content_x, middle_y)) == (255, 0, 0)
        assert "htmlsnap-preview" not in html
