"""
Rendering Module
===============

Browser automation and image processing for seed map captures.

Components:
- browser_session: Playwright render session for a single job
- image_processor: Crop, resize and PNG encoding with Pillow
"""
