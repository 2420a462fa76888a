"""
Configuration Management
=======================

Environment-based configuration using Pydantic Settings.

Components:
- settings: Application, browser, page geometry and export settings
- logging: Structured logging configuration
"""
