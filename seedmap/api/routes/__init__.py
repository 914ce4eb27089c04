"""
API Routes
==========

Route modules: generate, status, health.
"""
