"""
htmlsnap
========

Computed-style snapshot and paginated rasterization engine.

Converts a live, browser-rendered markup fragment into portable static
artifacts:
- Self-contained HTML with every style inlined
- Multi-page PDF sliced from a single tall raster
- PNG image at a fixed virtual width
- SVG wrapping the static tree or its raster
"""

__version__ = "1.0.0"
__author__ = "htmlsnap Team"
