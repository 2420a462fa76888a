"""
Test Suite
==========

Test suite matching the htmlsnap/ package structure.

Test Categories:
- unit: Browser-free tests against the fake rendering engine
- integration: Tests driving a real headless Chromium through Playwright
"""
