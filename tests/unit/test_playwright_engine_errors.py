"""
Unit Tests for Playwright Engine Error Mapping
==============================================

Browser-side failures surface as htmlsnap errors, so previews and exports
fail soft. The page is mocked; no browser is launched.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from playwright.async_api import Error as PlaywrightError

from htmlsnap.core.exporter import ExportCoordinator
from htmlsnap.core.preview import PreviewSession
from htmlsnap.core.rendering.playwright_engine import PlaywrightRenderingEngine
from htmlsnap.core.styles.style_map import StyleDeclaration
from htmlsnap.errors import ExportError, PreviewRenderError, RasterizationError

from tests.utils.mocks import build_tree, element, text


def _engine_with_page(evaluate: AsyncMock) -> PlaywrightRenderingEngine:
    engine = PlaywrightRenderingEngine()
    page = MagicMock()
    page.evaluate = evaluate
    engine._page = page
    return engine


@pytest.fixture
def closed_page_engine() -> PlaywrightRenderingEngine:
    """Engine whose page fails every evaluation."""
    return _engine_with_page(AsyncMock(side_effect=PlaywrightError("Target page closed")))


class TestEngineErrorMapping:
    """Test each engine operation wraps Playwright errors."""

    @pytest.mark.asyncio
    async def test_render_preview(self, closed_page_engine):
        """Test a preview refresh failure becomes a PreviewRenderError."""
        with pytest.raises(PreviewRenderError) as exc_info:
            await closed_page_engine.render_preview("<p>next</p>")
        assert "Target page closed" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_capture_document(self, closed_page_engine):
        """Test a capture failure becomes an ExportError."""
        with pytest.raises(ExportError):
            await closed_page_engine.capture_document()

    @pytest.mark.asyncio
    async def test_resolve_style(self, closed_page_engine):
        """Test a style lookup failure becomes an ExportError."""
        node = build_tree(element("p", text("x")))
        with pytest.raises(ExportError):
            await closed_page_engine.resolve_style(node, properties=["color"])

    @pytest.mark.asyncio
    async def test_validate_declarations(self, closed_page_engine):
        """Test a CSS.supports failure becomes an ExportError."""
        node = build_tree(element("p"))
        with pytest.raises(ExportError):
            await closed_page_engine.validate_declarations(
                node, [StyleDeclaration("color", "red")]
            )

    @pytest.mark.asyncio
    async def test_wait_for_assets(self, closed_page_engine):
        """Test an asset wait failure becomes an ExportError."""
        with pytest.raises(ExportError):
            await closed_page_engine.wait_for_assets()

    @pytest.mark.asyncio
    async def test_scratch_attach(self, closed_page_engine):
        """Test a failed scratch attach becomes a RasterizationError."""
        with pytest.raises(RasterizationError):
            async with closed_page_engine.scratch_container(800):
                pass

    @pytest.mark.asyncio
    async def test_scratch_mount_and_measure(self):
        """Test scratch operations fail with RasterizationError and the container is removed."""
        evaluate = AsyncMock(
            side_effect=[
                None,
                PlaywrightError("Execution context was destroyed"),
                PlaywrightError("Execution context was destroyed"),
                None,
            ]
        )
        engine = _engine_with_page(evaluate)

        async with engine.scratch_container(800) as scratch:
            with pytest.raises(RasterizationError):
                await scratch.mount("<p>x</p>")
            with pytest.raises(RasterizationError):
                await scratch.measure()

        assert evaluate.await_count == 4


class TestFailSoftPipelines:
    """Test preview and export recover from real engine errors."""

    @pytest.mark.asyncio
    async def test_preview_keeps_previous_state(self):
        """Test a browser failure during refresh keeps the previous preview."""
        evaluate = AsyncMock(return_value=True)
        engine = _engine_with_page(evaluate)
        session = PreviewSession(engine)
        assert await session.on_markup_changed("<p>first</p>") is True

        evaluate.side_effect = PlaywrightError("Target page closed")

        assert await session.on_markup_changed("<p>next</p>") is False
        assert session.state.source_markup == "<p>first</p>"
        assert "Target page closed" in session.state.last_error

    @pytest.mark.asyncio
    async def test_export_reports_failure(self, closed_page_engine):
        """Test a browser failure during export yields an unsuccessful result."""
        result = await ExportCoordinator(closed_page_engine).export_html()

        assert result.success is False
        assert "Target page closed" in result.error
        assert result.data is None

    @pytest.mark.asyncio
    async def test_export_without_asset_wait(self, closed_page_engine, override_settings):
        """Test a capture failure is reported when the asset wait is disabled."""
        override_settings.wait_for_assets = False

        result = await ExportCoordinator(closed_page_engine).export_png()

        assert result.success is False
        assert "Target page closed" in result.error
