"""
Core Business Logic
==================

Core modules for seed map generation.

Modules:
- geometry: World-size to crop rectangle mapping
- rendering: Browser automation and image processing
- storage: Generated map file management
- queue: Job admission, lifecycle tracking and orchestration
"""
