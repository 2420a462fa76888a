"""
Application Settings
===================

Main application settings and environment configuration using Pydantic Settings.
Supports development, testing, and production environments.
"""

from typing import Optional
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from pathlib import Path


class Settings(BaseSettings):
    """Main application settings with environment variable support."""

    # Application Configuration
    app_name: str = Field(default="htmlsnap", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    environment: str = Field(
        default="development", description="Environment: development, testing, production"
    )
    debug: bool = Field(default=True, description="Debug mode")
    log_level: str = Field(default="INFO", description="Logging level")

    # Storage Configuration
    storage_path: Path = Field(default=Path("./storage"), description="Storage directory path")

    # Browser Configuration
    playwright_headless: bool = Field(default=True, description="Run browser in headless mode")
    playwright_timeout: int = Field(default=30000, description="Playwright timeout in milliseconds")
    device_scale_factor: float = Field(
        default=2.0, gt=0, le=4.0, description="Raster scale relative to CSS pixels"
    )
    wait_for_assets: bool = Field(
        default=True, description="Wait for fonts and icons before resolving styles"
    )
    preview_width: Optional[int] = Field(
        default=None,
        gt=0,
        le=4000,
        description="Viewport width of the live preview; defaults to the paged content width",
    )
    preview_height: int = Field(
        default=1000, gt=0, description="Viewport height of the live preview"
    )

    # Page Geometry Configuration
    page_width_units: float = Field(default=210.0, gt=0, description="Page frame width")
    page_height_units: float = Field(default=297.0, gt=0, description="Page frame height")
    page_unit: str = Field(default="mm", description="Page measurement unit: mm, cm, in, pt")
    pdf_virtual_width: int = Field(
        default=800, gt=0, le=4000, description="Virtual raster width for paged output"
    )
    image_virtual_width: int = Field(
        default=1200, gt=0, le=4000, description="Virtual raster width for image output"
    )

    # Scratch Container Configuration
    scratch_padding: int = Field(default=20, ge=0, description="Scratch container padding in px")
    scratch_background: str = Field(
        default="#ffffff", description="Scratch container background color"
    )

    # Export Configuration
    default_positioning: str = Field(
        default="flow", description="Snapshot positioning mode: flow or explicit"
    )
    preview_dialect: str = Field(
        default="auto", description="Markup dialect: auto, plain or component"
    )
    pretty_html: bool = Field(default=True, description="Pretty-print static HTML output")
    svg_outline_font_path: Optional[Path] = Field(
        default=None, description="TrueType/OpenType font used to outline SVG text"
    )

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment value."""
        allowed = {"development", "testing", "production"}
        if v not in allowed:
            raise ValueError(f"Environment must be one of: {allowed}")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in allowed:
            raise ValueError(f"Log level must be one of: {allowed}")
        return v.upper()

    @field_validator("page_unit")
    @classmethod
    def validate_page_unit(cls, v: str) -> str:
        """Validate page measurement unit."""
        allowed = {"mm", "cm", "in", "pt"}
        if v.lower() not in allowed:
            raise ValueError(f"Page unit must be one of: {allowed}")
        return v.lower()

    @field_validator("default_positioning")
    @classmethod
    def validate_positioning(cls, v: str) -> str:
        """Validate snapshot positioning mode."""
        allowed = {"flow", "explicit"}
        if v.lower() not in allowed:
            raise ValueError(f"Positioning must be one of: {allowed}")
        return v.lower()

    @field_validator("preview_dialect")
    @classmethod
    def validate_preview_dialect(cls, v: str) -> str:
        """Validate markup dialect."""
        allowed = {"auto", "plain", "component"}
        if v.lower() not in allowed:
            raise ValueError(f"Preview dialect must be one of: {allowed}")
        return v.lower()

    @field_validator("storage_path")
    @classmethod
    def create_directories(cls, v: Path) -> Path:
        """Ensure directories exist."""
        v.mkdir(parents=True, exist_ok=True)
        return v

    @model_validator(mode="after")
    def derive_preview_width(self) -> "Settings":
        """Fit full-width preview content inside the padded paged scratch container."""
        content_width = self.pdf_virtual_width - 2 * self.scratch_padding
        if content_width <= 0:
            raise ValueError("Scratch padding leaves no room for content at the PDF virtual width")
        if self.preview_width is None:
            self.preview_width = content_width
        return self

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False, env_prefix="HTMLSNAP_"
    )


# Global settings instance - will be initialized when needed
settings = None


def get_settings() -> Settings:
    """Get the global settings instance."""
    global settings
    if settings is None:
        settings = Settings()
    return settings


def reload_settings() -> Settings:
    """Reload settings from environment."""
    global settings
    settings = Settings()
    return settings
