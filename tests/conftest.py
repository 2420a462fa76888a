"""
Test Configuration
==================

Pytest configuration with fixtures for all test types.
Provides test settings, the fake rendering engine and sample live trees.
"""

import os

os.environ.setdefault("HTMLSNAP_ENVIRONMENT", "testing")

import shutil
import tempfile
from pathlib import Path
from typing import Generator
from unittest.mock import patch

import pytest
from pydantic_settings import SettingsConfigDict

from htmlsnap.config.settings import Settings
from htmlsnap.core.snapshot.nodes import LiveElement

from tests.utils.mocks import FakeRenderingEngine, build_tree, element, text


# Test settings override
class TestSettings(Settings):
    """Test-specific settings."""

    environment: str = "testing"
    debug: bool = True
    storage_path: Path = Path("./test_storage")
    playwright_headless: bool = True
    log_level: str = "DEBUG"
    wait_for_assets: bool = True

    model_config = SettingsConfigDict(env_file=".env.test", env_prefix="HTMLSNAP_TEST_")


@pytest.fixture(scope="session")
def test_settings() -> TestSettings:
    """Test settings fixture."""
    return TestSettings()


@pytest.fixture(autouse=True)
def override_settings(test_settings: TestSettings):
    """Override application settings for testing."""
    settings = test_settings.model_copy()
    with patch("htmlsnap.config.settings.settings", settings):
        yield settings


@pytest.fixture(scope="session")
def temp_dir() -> Generator[Path, None, None]:
    """Create temporary directory for test files."""
    temp_path = Path(tempfile.mkdtemp(prefix="htmlsnap_test_"))
    yield temp_path
    shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def marked_document() -> LiveElement:
    """Preview holding one marked card between two unmarked siblings."""
    return build_tree(
        element(
            "div",
            element("p", text("Header"), class_="dont-export"),
            element(
                "div",
                element("h1", text("Invoice")),
                element("p", text("Total: 42")),
                class_="card export-this",
                style="padding: 12px",
            ),
            element("p", text("Footer"), class_="dont-export"),
            id="htmlsnap-preview",
            geometry=(0, 0, 800, 300),
        )
    )


@pytest.fixture
def fake_engine(marked_document: LiveElement) -> FakeRenderingEngine:
    """Fake rendering engine showing the marked document."""
    return FakeRenderingEngine(marked_document)


@pytest.fixture
def component_markup() -> str:
    """Component-template markup with data and computed bindings."""
    return """<template>
  <div class="greeting">
    <h1>{{ title }}</h1>
    <p>{{ summary }}</p>
  </div>
</template>
<script>
data:
  title: Quarterly report
  items: [3, 4, 5]
computed:
  summary: "'Total: ' ~ (items | sum)"
</script>
<style>.greeting { color: navy; }</style>"""


# Pytest configuration
def pytest_collection_modifyitems(config, items):
    """Modify test collection to add markers based on file paths."""
    for item in items:
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
