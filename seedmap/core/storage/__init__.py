"""
Storage Module
=============

Local file storage for generated map images.
"""
