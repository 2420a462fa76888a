"""
Component Module
================

Data-driven component template evaluation for the component markup dialect.
"""
