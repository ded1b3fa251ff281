"""
Integration Tests for API Routes
================================

Request/response contracts of the display, render and health endpoints with the
render pipeline mocked and an in-memory device repository.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import status
from fastapi.testclient import TestClient

from byos_render.api.dependencies import (
    get_current_settings,
    get_device_repository,
    get_render_pipeline,
)
from byos_render.api.main import app
from byos_render.core.errors import ConversionError, NavigationError, TemplateError
from byos_render.core.rendering.pipeline import RenderPipeline
from byos_render.models.schemas import RenderedImage

from tests.utils.helpers import build_settings


MAC = "AA:BB:CC:DD:EE:FF"
TOKEN = "test_api_key"
CREDENTIALS = {"id": MAC, "access-token": TOKEN}


@pytest.fixture
def rendered(test_settings) -> RenderedImage:
    return RenderedImage.allocate(test_settings.generated_path)


@pytest.fixture
def pipeline(rendered):
    mock = MagicMock(spec=RenderPipeline)
    mock.render_url = AsyncMock(return_value=rendered)
    mock.render_template = AsyncMock(return_value=rendered)
    return mock


@pytest.fixture
def client(test_settings, device_repository, pipeline):
    """Test client with collaborators replaced."""
    app.dependency_overrides[get_current_settings] = lambda: test_settings
    app.dependency_overrides[get_device_repository] = lambda: device_repository
    app.dependency_overrides[get_render_pipeline] = lambda: pipeline
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestDisplayEndpoint:
    """Test GET /api/display."""

    def test_missing_headers(self, client):
        """Test display request without device headers."""
        response = client.get("/api/display")

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["error_code"] == "400"

    def test_missing_token(self, client):
        """Test display request without an access token."""
        response = client.get("/api/display", headers={"id": MAC})
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_unknown_device(self, client):
        """Test display request for an unknown device."""
        response = client.get("/api/display", headers={"id": MAC, "access-token": "nope"})
        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_setup_image(self, client):
        """Test display directive for the setup image."""
        response = client.get("/api/display", headers=CREDENTIALS)

        assert response.status_code == status.HTTP_200_OK
        payload = response.json()
        assert len(payload) == 8
        assert payload["image_url"] == "http://localhost:3000/storage/images/setup-logo.bmp"
        assert payload["filename"] == "setup-logo.bmp"
        assert payload["refresh_rate"] == 60
        assert payload["image_url_timeout"] == 15
        assert payload["special_function"] == "sleep"
        assert payload["firmware_url"] is None
        assert "X-Request-ID" in response.headers

    @pytest.mark.asyncio
    async def test_new_firmware_gets_png(self, client, device_repository):
        """Test telemetry update and PNG for new firmware."""
        await device_repository.assign_screen_image(MAC, "abc")

        response = client.get(
            "/api/display",
            headers={**CREDENTIALS, "rssi": "-55", "battery_voltage": "3.9", "fw-version": "1.6.0"},
        )

        assert response.json()["image_url"] == (
            "http://localhost:3000/storage/images/generated/abc.png"
        )
        device = await device_repository.find_by_mac(MAC)
        assert device.last_firmware_version == "1.6.0"
        assert device.last_rssi_level == -55
        assert device.last_battery_voltage == 3.9

    @pytest.mark.asyncio
    async def test_old_firmware_gets_bmp(self, client, device_repository):
        """Test bitmap for old firmware."""
        await device_repository.assign_screen_image(MAC, "abc")

        response = client.get(
            "/api/display",
            headers={**CREDENTIALS, "rssi": "-55", "battery_voltage": "3.9", "fw-version": "1.4.0"},
        )

        assert response.json()["filename"] == "abc.bmp"

    @pytest.mark.asyncio
    async def test_malformed_telemetry_is_ignored(self, client, device_repository):
        """Test malformed telemetry headers are ignored."""
        await device_repository.assign_screen_image(MAC, "abc")

        response = client.get(
            "/api/display",
            headers={**CREDENTIALS, "rssi": "strong", "battery_voltage": "3.9", "fw-version": "1.6.0"},
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["filename"] == "abc.bmp"
        device = await device_repository.find_by_mac(MAC)
        assert device.last_firmware_version is None
        assert device.last_rssi_level == -50


class TestRenderEndpoint:
    """Test POST /api/render."""

    def test_render_url(self, client, pipeline, rendered):
        """Test rendering a URL."""
        response = client.post("/api/render", json={"url": "https://example.com"})

        assert response.status_code == status.HTTP_200_OK
        payload = response.json()
        assert payload["image_id"] == rendered.id
        assert payload["bmp_url"] == (
            f"http://localhost:3000/storage/images/generated/{rendered.id}.bmp"
        )
        assert payload["png_url"].endswith(f"/{rendered.id}.png")
        pipeline.render_url.assert_awaited_once_with("https://example.com")

    @pytest.mark.asyncio
    async def test_render_template_assigns_device(self, client, pipeline, rendered, device_repository):
        """Test rendering a template onto a device."""
        response = client.post(
            "/api/render",
            json={
                "template": "<h1>{{ title }}</h1>",
                "data": {"title": "hello world"},
                "device_id": MAC,
            },
        )

        assert response.status_code == status.HTTP_200_OK
        pipeline.render_template.assert_awaited_once_with(
            "<h1>{{ title }}</h1>", {"title": "hello world"}, layout="base.html"
        )
        device = await device_repository.find_by_mac(MAC)
        assert device.current_screen_image == rendered.id

    def test_both_sources_rejected(self, client, pipeline):
        """Test rejecting a request with URL and template."""
        response = client.post(
            "/api/render", json={"url": "https://example.com", "template": "<p>x</p>"}
        )

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        pipeline.render_url.assert_not_awaited()

    def test_file_url_rejected_by_default(self, client, pipeline):
        """Test local file URLs are refused unless enabled in settings."""
        response = client.post("/api/render", json={"url": "file:///etc/passwd"})

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        assert response.json()["error"] == "file:// URLs are disabled"
        pipeline.render_url.assert_not_awaited()

    def test_file_url_allowed_when_enabled(self, tmp_path, device_repository, pipeline):
        """Test local file URLs render once allowed in settings."""
        settings = build_settings(tmp_path, allow_file_urls=True)
        app.dependency_overrides[get_current_settings] = lambda: settings
        app.dependency_overrides[get_device_repository] = lambda: device_repository
        app.dependency_overrides[get_render_pipeline] = lambda: pipeline
        try:
            response = TestClient(app).post("/api/render", json={"url": "file:///tmp/page.html"})
        finally:
            app.dependency_overrides.clear()

        assert response.status_code == status.HTTP_200_OK
        pipeline.render_url.assert_awaited_once_with("file:///tmp/page.html")

    def test_unknown_device_checked_first(self, client, pipeline):
        """Test unknown device is rejected before rendering."""
        response = client.post(
            "/api/render", json={"url": "https://example.com", "device_id": "00:00:00:00:00:00"}
        )

        assert response.status_code == status.HTTP_404_NOT_FOUND
        pipeline.render_url.assert_not_awaited()

    def test_renderer_unavailable(self, client, pipeline):
        """Test browser failure maps to 503."""
        pipeline.render_url.side_effect = NavigationError("Navigation failed: net::ERR_FAILED")

        response = client.post("/api/render", json={"url": "https://example.com"})

        assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
        assert response.json()["error_code"] == "RENDERER_UNAVAILABLE"

    def test_template_error(self, client, pipeline):
        """Test template error maps to 422."""
        pipeline.render_template.side_effect = TemplateError(
            "'title' is undefined", stage="user", cause="undefined-variable"
        )

        response = client.post("/api/render", json={"template": "<h1>{{ title }}</h1>"})

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        payload = response.json()
        assert payload["error_code"] == "TEMPLATE_ERROR"
        assert payload["details"]["stage"] == "user"
        assert payload["details"]["cause"] == "undefined-variable"

    @pytest.mark.asyncio
    async def test_conversion_error_leaves_device_untouched(
        self, client, pipeline, device_repository
    ):
        """Test conversion failure leaves the device unchanged."""
        pipeline.render_url.side_effect = ConversionError("ImageMagick exited with status 1")

        response = client.post(
            "/api/render", json={"url": "https://example.com", "device_id": MAC}
        )

        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert response.json()["error_code"] == "CONVERSION_ERROR"
        assert (await device_repository.find_by_mac(MAC)).current_screen_image is None


class TestHealthEndpoint:
    """Test GET /api/health."""

    def test_health(self, client, test_settings):
        """Test health check endpoint."""
        response = client.get("/api/health")

        assert response.status_code == status.HTTP_200_OK
        payload = response.json()
        assert payload["status"] == "healthy"
        assert payload["environment"] == "testing"
        assert payload["version"] == test_settings.app_version
