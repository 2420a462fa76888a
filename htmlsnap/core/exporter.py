"""
Export Coordinator
==================

Runs one discrete export operation at a time: waits for assets, selects the
export roots, snapshots them and hands the self-contained trees to the
requested output serializer.
"""

from typing import Any, Dict, List, Optional, Sequence, Tuple
import asyncio
import time
import warnings

from htmlsnap.config.logging import get_logger
from htmlsnap.config.settings import get_settings
from htmlsnap.core.rendering.engine import RenderingEngine
from htmlsnap.core.rendering.image_export import encode_png
from htmlsnap.core.rendering.paginator import Paginator
from htmlsnap.core.rendering.pdf_writer import write_pdf
from htmlsnap.core.rendering.svg_export import SvgExporter
from htmlsnap.core.snapshot.builder import SnapshotBuilder
from htmlsnap.core.snapshot.nodes import ElementNode
from htmlsnap.core.snapshot.selector import select_roots
from htmlsnap.core.snapshot.serializer import render_static_html
from htmlsnap.errors import ExportError, NoMatchWarning
from htmlsnap.models.schemas import (
    MEDIA_TYPES,
    ExportFormat,
    ExportOptions,
    ExportResult,
    PageSetup,
    PositioningMode,
)

logger = get_logger(__name__)

RenderOutput = Tuple[bytes, int, Dict[str, Any]]


class ExportCoordinator:
    """Single-flight export operations over one rendering engine."""

    def __init__(self, engine: RenderingEngine, builder: Optional[SnapshotBuilder] = None):
        self.engine = engine
        self.settings = get_settings()
        self.builder = builder or SnapshotBuilder(
            engine, positioning=PositioningMode(self.settings.default_positioning)
        )
        self.paginator = Paginator(engine)
        self.svg_exporter = SvgExporter(engine)
        self._gate = asyncio.Lock()
        self.logger: Any = logger.bind(component="export_coordinator")  # structlog.BoundLoggerBase

    @property
    def busy(self) -> bool:
        """Whether an export is in flight."""
        return self._gate.locked()

    def default_page_setup(self) -> PageSetup:
        return PageSetup(
            width_units=self.settings.page_width_units,
            height_units=self.settings.page_height_units,
            unit=self.settings.page_unit,
            virtual_width=self.settings.pdf_virtual_width,
        )

    async def export_html(self, marker: str = "", **kwargs: Any) -> ExportResult:
        return await self.export(ExportOptions(format=ExportFormat.HTML, marker=marker, **kwargs))

    async def export_pdf(self, marker: str = "", **kwargs: Any) -> ExportResult:
        return await self.export(ExportOptions(format=ExportFormat.PDF, marker=marker, **kwargs))

    async def export_png(self, marker: str = "", **kwargs: Any) -> ExportResult:
        return await self.export(ExportOptions(format=ExportFormat.PNG, marker=marker, **kwargs))

    async def export_svg(self, marker: str = "", **kwargs: Any) -> ExportResult:
        return await self.export(ExportOptions(format=ExportFormat.SVG, marker=marker, **kwargs))

    async def export(self, options: Optional[ExportOptions] = None) -> ExportResult:
        """
        Export the current preview.

        Concurrent calls are serialized; each runs to completion before the
        next starts.

        Args:
            options: Format, selection marker and per-format options

        Returns:
            ExportResult; export-level failures are reported with
            ``success=False`` rather than raised
        """
        options = options or ExportOptions()
        if self.busy:
            self.logger.info("Export queued behind in-flight export", format=options.format.value)

        async with self._gate:
            start_time = time.time()
            collected: List[str] = []
            origins: List[str] = []

            try:
                self.logger.info(
                    "Starting export",
                    format=options.format.value,
                    marker=options.marker or None,
                )

                if self.settings.wait_for_assets:
                    for failure in await self.engine.wait_for_assets():
                        collected.append(str(failure))

                tree = await self.engine.capture_document()
                with warnings.catch_warnings(record=True) as caught:
                    warnings.simplefilter("always", NoMatchWarning)
                    roots = select_roots(tree, options.marker)
                collected.extend(
                    str(w.message) for w in caught if issubclass(w.category, NoMatchWarning)
                )
                origins = [root.origin for root in roots]

                nodes: List[ElementNode] = []
                for root in roots:
                    if root.is_whole_document:
                        node = await self.builder.snapshot_document(
                            root.element, options.positioning
                        )
                    else:
                        node = await self.builder.snapshot(root.element, options.positioning)
                    nodes.append(node)

                data, page_count, metadata = await self._render(options, nodes, collected)

            except ExportError as e:
                processing_time = time.time() - start_time
                self.logger.error(
                    "Export failed",
                    format=options.format.value,
                    error_type=type(e).__name__,
                    error=str(e),
                    processing_time=processing_time,
                )
                return ExportResult(
                    success=False,
                    format=options.format,
                    roots=origins,
                    warnings=collected,
                    error=str(e),
                    processing_time=processing_time,
                )

            processing_time = time.time() - start_time
            self.logger.info(
                "Export completed",
                format=options.format.value,
                roots=len(origins),
                size=len(data),
                warnings=len(collected),
                processing_time=processing_time,
            )
            return ExportResult(
                success=True,
                format=options.format,
                data=data,
                media_type=MEDIA_TYPES[options.format],
                page_count=page_count,
                roots=origins,
                warnings=collected,
                processing_time=processing_time,
                metadata=metadata,
            )

    async def _render(
        self, options: ExportOptions, nodes: Sequence[ElementNode], collected: List[str]
    ) -> RenderOutput:
        if options.format == ExportFormat.HTML:
            pretty = self.settings.pretty_html if options.pretty is None else options.pretty
            html = render_static_html(nodes, pretty=pretty)
            return html.encode("utf-8"), 0, {"pretty": pretty}

        html = render_static_html(nodes, pretty=False)

        if options.format == ExportFormat.PDF:
            page = options.page or self.default_page_setup()
            document = await self.paginator.paginate(
                html, page.width_units, page.height_units, page.units_per_pixel, page.unit
            )
            metadata = {
                "page_width": page.width_units,
                "page_height": page.height_units,
                "unit": page.unit,
                "content_height": round(document.content_height_units, 3),
            }
            return write_pdf(document), len(document), metadata

        if options.format == ExportFormat.PNG:
            buffer = await self.engine.rasterize(html, self.settings.image_virtual_width)
            metadata = {
                "width": buffer.width,
                "height": buffer.height,
                "optimized": options.optimize_png,
            }
            return encode_png(buffer, optimize=options.optimize_png), 0, metadata

        if options.format == ExportFormat.SVG:
            svg = await self.svg_exporter.export(
                nodes,
                self.settings.image_virtual_width,
                mode=options.svg_mode,
                outline_text=options.outline_text,
            )
            collected.extend(svg.warnings)
            metadata = {
                "width": svg.width,
                "height": svg.height,
                "mode": svg.mode.value,
                "outlined": svg.outlined,
            }
            return svg.markup.encode("utf-8"), 0, metadata

        raise ExportError(f"Unsupported export format: {options.format}")
