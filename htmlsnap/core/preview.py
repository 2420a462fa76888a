"""
Preview Session
===============

Consumes markup-changed events and keeps the live preview current. A refresh
that fails leaves the previous preview (and its state) in place.
"""

from typing import Any, Optional
from datetime import datetime, timezone

from htmlsnap.config.logging import get_logger
from htmlsnap.config.settings import get_settings
from htmlsnap.core.component.evaluator import ComponentEvaluator, is_component_markup
from htmlsnap.core.rendering.engine import RenderingEngine
from htmlsnap.errors import HtmlSnapError
from htmlsnap.models.schemas import MarkupChangedEvent, MarkupDialect, PreviewState

logger = get_logger(__name__)


def detect_dialect(markup: str, requested: MarkupDialect = MarkupDialect.AUTO) -> MarkupDialect:
    """Resolve ``auto`` to the dialect the markup is written in."""
    if requested != MarkupDialect.AUTO:
        return requested
    return MarkupDialect.COMPONENT if is_component_markup(markup) else MarkupDialect.PLAIN


class PreviewSession:
    """Owns the live preview of one editing surface."""

    def __init__(
        self,
        engine: RenderingEngine,
        evaluator: Optional[ComponentEvaluator] = None,
        dialect: Optional[MarkupDialect] = None,
    ):
        self.engine = engine
        self.settings = get_settings()
        self.evaluator = evaluator or ComponentEvaluator()
        self.dialect = dialect or MarkupDialect(self.settings.preview_dialect)
        self.state = PreviewState()
        self.logger: Any = logger.bind(component="preview_session")  # structlog.BoundLoggerBase

    async def on_markup_changed(self, markup: str) -> bool:
        """Refresh the preview from the full current markup."""
        return await self.handle(MarkupChangedEvent(markup=markup))

    async def handle(self, event: MarkupChangedEvent) -> bool:
        """
        Apply a markup-changed event.

        Args:
            event: Full markup plus an optional dialect override

        Returns:
            True if the preview was refreshed, False if the previous preview
            was kept
        """
        dialect = detect_dialect(event.markup, event.dialect or self.dialect)

        try:
            if dialect == MarkupDialect.COMPONENT:
                rendered = self.evaluator.evaluate(event.markup)
            else:
                rendered = event.markup
            await self.engine.render_preview(rendered)
        except HtmlSnapError as e:
            self.logger.error(
                "Preview refresh failed, keeping previous preview",
                dialect=dialect.value,
                error_type=type(e).__name__,
                error=str(e),
            )
            self.state.last_error = str(e)
            return False

        self.state = PreviewState(
            source_markup=event.markup,
            rendered_markup=rendered,
            dialect=dialect,
            updated_at=datetime.now(timezone.utc),
        )
        self.logger.info(
            "Preview refreshed",
            dialect=dialect.value,
            markup_length=len(event.markup),
        )
        return True
