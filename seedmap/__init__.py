"""
Seed Map Generator
==================

Render Minecraft seed maps through browser automation and serve them as
square PNG images.

This package provides:
- Job admission and lifecycle tracking with a concurrency ceiling
- Playwright-driven render sessions against mcseedmap.net
- Deterministic crop geometry for parameterized world sizes
- Image processing with Pillow and local artifact storage
- FastAPI REST endpoints for HTTP access
"""

__version__ = "1.0.0"
__author__ = "Seed Map Generator Team"
