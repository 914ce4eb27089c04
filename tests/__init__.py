"""
Test Suite
==========

Test suite matching the seedmap/ package structure.

Test Categories:
- unit: Unit tests for individual components
- integration: Orchestrated pipeline and API endpoint tests
"""
