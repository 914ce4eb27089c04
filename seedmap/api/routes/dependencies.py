"""
Route Dependencies
==================

FastAPI dependencies shared by the route modules.
"""

from fastapi import Request

from seedmap.config.settings import Settings
from seedmap.core.queue.orchestrator import GenerationOrchestrator


def get_orchestrator(request: Request) -> GenerationOrchestrator:
    """Orchestrator attached to the running application."""
    return request.app.state.orchestrator


def get_app_settings(request: Request) -> Settings:
    """Settings attached to the running application."""
    return request.app.state.settings
