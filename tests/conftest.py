"""
Test Configuration
==================

Pytest configuration with fixtures for all test types.
Provides isolated settings, template stores, device records and encoded images.
"""

import os

# Must be set before byos_render configures logging on import
os.environ.setdefault("BYOS_ENVIRONMENT", "testing")
os.environ.setdefault("BYOS_LOG_LEVEL", "DEBUG")

import pytest
from pathlib import Path

from byos_render.config.settings import Settings
from byos_render.core.devices.repository import InMemoryDeviceRepository
from byos_render.core.rendering.template_composer import TemplateComposer, memory_store
from byos_render.models.schemas import Device

from tests.utils.helpers import build_settings
from tests.utils.images import make_gradient_png, make_png


BASE_LAYOUT = """<!DOCTYPE html>
<html><head><title>Test</title></head>
<body>{{ embed }}</body></html>"""


@pytest.fixture
def test_settings(tmp_path: Path) -> Settings:
    """Test settings fixture."""
    return build_settings(tmp_path)


@pytest.fixture
def layout_store():
    """In-memory template store with a minimal base layout."""
    return memory_store({"base.html": BASE_LAYOUT})


@pytest.fixture
def composer(layout_store, test_settings) -> TemplateComposer:
    """Template composer over the in-memory store."""
    return TemplateComposer(store=layout_store, settings=test_settings)


@pytest.fixture
def sample_device() -> Device:
    """Device without a rendered screen."""
    return Device(
        mac_address="AA:BB:CC:DD:EE:FF",
        api_key="test_api_key",
        friendly_id="device-DD:EE:FF",
        name="Test Device",
        last_battery_voltage=3.7,
        last_rssi_level=-50,
        default_refresh_interval=60,
    )


@pytest.fixture
def device_repository(sample_device) -> InMemoryDeviceRepository:
    """Repository holding the sample device."""
    return InMemoryDeviceRepository([sample_device])


@pytest.fixture
def display_png() -> bytes:
    """Panel-sized gradient screenshot."""
    return make_gradient_png()


@pytest.fixture
def gray_png() -> bytes:
    """Panel-sized mid-gray screenshot."""
    return make_png(color=(128, 128, 128))
