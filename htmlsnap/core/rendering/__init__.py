"""
Rendering Module
===============

Rasterization and output writers.

Components:
- engine: Rendering engine interface and pixel buffers
- playwright_engine: Headless Chromium engine via Playwright
- paginator: Fixed-width rasterization sliced into fixed-height pages
- pdf_writer: Paged document to PDF
- image_export: Single PNG image output
- svg_export: SVG wrapper output
- glyph_outliner: Text glyphs to SVG outline paths
"""
