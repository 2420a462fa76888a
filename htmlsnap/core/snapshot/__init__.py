"""
Snapshot Module
===============

Detached, style-self-sufficient clones of live subtrees.

Components:
- nodes: Live tree and snapshot tree node models
- selector: Export root selection by class marker
- builder: Recursive snapshot with optional explicit positioning
- serializer: Static markup output
"""
