"""
API Module
==========

FastAPI application and REST endpoints for map generation.
"""
