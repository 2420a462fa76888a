"""
Test Utilities
==============

Fake rendering engine and live-tree builders for testing.
"""

from .mocks import *
