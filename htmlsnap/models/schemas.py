"""
Pydantic Models and Schemas
===========================

Export options, results, preview events and page geometry.
All models include validation and type hints.
"""

from typing import Optional, List, Dict, Any
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field, field_validator


# Enums
class ExportFormat(str, Enum):
    """Discrete export operations."""
    HTML = "html"
    PDF = "pdf"
    PNG = "png"
    SVG = "svg"


class PositioningMode(str, Enum):
    """How the snapshot reproduces layout."""
    FLOW = "flow"
    EXPLICIT = "explicit"


class MarkupDialect(str, Enum):
    """Supported markup dialects."""
    AUTO = "auto"
    PLAIN = "plain"
    COMPONENT = "component"


class SvgMode(str, Enum):
    """What the SVG wrapper embeds."""
    FOREIGN_OBJECT = "foreign_object"
    RASTER = "raster"


MEDIA_TYPES: Dict[ExportFormat, str] = {
    ExportFormat.HTML: "text/html",
    ExportFormat.PDF: "application/pdf",
    ExportFormat.PNG: "image/png",
    ExportFormat.SVG: "image/svg+xml",
}


# Page Models
class PageSetup(BaseModel):
    """Physical page frame used by paged output."""
    width_units: float = Field(210.0, gt=0, description="Page frame width")
    height_units: float = Field(297.0, gt=0, description="Page frame height")
    unit: str = Field("mm", description="Measurement unit")
    virtual_width: int = Field(800, gt=0, le=4000, description="Raster width in CSS pixels")

    @property
    def units_per_pixel(self) -> float:
        """Document units covered by one CSS pixel of the virtual raster."""
        return self.width_units / self.virtual_width


# Export Models
class ExportOptions(BaseModel):
    """Options for a single export invocation."""
    format: ExportFormat = Field(ExportFormat.HTML, description="Output format")
    marker: str = Field("", description="Class name selecting export roots; blank for all")
    positioning: Optional[PositioningMode] = Field(
        None, description="Snapshot positioning mode; settings default when omitted"
    )
    pretty: Optional[bool] = Field(None, description="Pretty-print static HTML")

    # Paged output
    page: Optional[PageSetup] = Field(None, description="Page geometry; settings default when omitted")

    # SVG options
    svg_mode: SvgMode = Field(SvgMode.FOREIGN_OBJECT, description="SVG embedding mode")
    outline_text: bool = Field(False, description="Convert SVG text glyphs to outline paths")

    # Image options
    optimize_png: bool = Field(True, description="Optimize PNG file size")

    @field_validator("marker")
    @classmethod
    def strip_marker(cls, v: str) -> str:
        """Blank markers select the whole document."""
        return v.strip()


class ExportResult(BaseModel):
    """Result of an export invocation."""
    success: bool = Field(..., description="Whether the export succeeded")
    format: ExportFormat = Field(..., description="Requested output format")
    data: Optional[bytes] = Field(None, description="Artifact payload", exclude=True)
    media_type: Optional[str] = Field(None, description="Artifact media type")
    page_count: int = Field(0, ge=0, description="Pages in paged output")
    roots: List[str] = Field(default_factory=list, description="Origin of each export root")
    warnings: List[str] = Field(default_factory=list, description="Non-fatal warnings")
    error: Optional[str] = Field(None, description="Error message if failed")
    processing_time: float = Field(0.0, description="Processing time in seconds")
    metadata: Dict[str, Any] = Field(default_factory=dict, description="Export metadata")

    @property
    def text(self) -> Optional[str]:
        """Decoded payload for textual formats."""
        if self.data is None or self.format not in (ExportFormat.HTML, ExportFormat.SVG):
            return None
        return self.data.decode("utf-8")


# Preview Models
class MarkupChangedEvent(BaseModel):
    """Full current markup emitted by the editing surface."""
    markup: str = Field(..., description="Full markup, no diffing")
    dialect: Optional[MarkupDialect] = Field(None, description="Dialect override")
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class PreviewState(BaseModel):
    """Last successfully displayed preview."""
    source_markup: Optional[str] = Field(None, description="Markup as edited")
    rendered_markup: Optional[str] = Field(None, description="Markup placed in the preview")
    dialect: Optional[MarkupDialect] = Field(None, description="Dialect that produced it")
    updated_at: Optional[datetime] = None
    last_error: Optional[str] = Field(None, description="Most recent refresh failure")
