"""
Styles Module
=============

Explicit style resolution.

Components:
- allowlist: Versioned table of copied computed properties per family
- style_map: Priority-aware property map and inline style parsing
- resolver: Computed + inline merge, gradients and generated content
"""
