"""
Core Business Logic
==================

Snapshot, selection, rasterization and preview logic.

Modules:
- styles: Allow-listed style resolution and priority-aware style maps
- snapshot: Live tree capture, snapshot building, root selection, serialization
- rendering: Rendering engine, pagination and output writers
- component: Data-driven component template evaluation
- preview: Markup-changed event handling
- exporter: Export operation selection and single-flight gate
"""
