"""
Data Models
===========

Pydantic models for export options and results, preview events and page setup.
"""
