"""
API Dependencies
================

FastAPI dependencies resolving shared services from application state.
Tests replace them through ``app.dependency_overrides``.
"""

from fastapi import Request

from byos_render.config.settings import Settings, get_settings
from byos_render.core.devices.repository import DeviceRepository
from byos_render.core.rendering.pipeline import RenderPipeline


def get_current_settings() -> Settings:
    """Dependency to get current settings."""
    return get_settings()


def get_device_repository(request: Request) -> DeviceRepository:
    """Device collaborator configured on the application."""
    return request.app.state.device_repository


def get_render_pipeline(request: Request) -> RenderPipeline:
    """Render pipeline configured on the application."""
    return request.app.state.render_pipeline
