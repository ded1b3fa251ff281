"""
Unit Tests for Schemas
======================
"""

from pathlib import Path

import pytest
from pydantic import ValidationError

from byos_render.models.schemas import ImageFormat, RenderedImage, RenderRequest


class TestRenderedImage:
    """Test artifact pair identity."""

    def test_allocate(self, tmp_path):
        """Test allocating an artifact pair."""
        rendered = RenderedImage.allocate(tmp_path)

        assert rendered.bmp_path == tmp_path / f"{rendered.id}.bmp"
        assert rendered.png_path == tmp_path / f"{rendered.id}.png"
        assert rendered.path_for(ImageFormat.BMP) == rendered.bmp_path
        assert rendered.path_for(ImageFormat.PNG) == rendered.png_path

    def test_allocate_unique(self, tmp_path):
        """Test allocated identifiers are unique."""
        assert RenderedImage.allocate(tmp_path).id != RenderedImage.allocate(tmp_path).id

    def test_mismatched_stem(self):
        """Test rejecting paths with different stems."""
        with pytest.raises(ValidationError):
            RenderedImage(id="a", png_path=Path("/x/a.png"), bmp_path=Path("/x/b.bmp"))

    def test_frozen(self, tmp_path):
        """Test rendered images are immutable."""
        rendered = RenderedImage.allocate(tmp_path)
        with pytest.raises(ValidationError):
            rendered.id = "other"


class TestRenderRequest:
    """Test render request validation."""

    def test_url(self):
        """Test URL render request."""
        request = RenderRequest(url="https://example.com")
        assert request.layout == "base.html"
        assert request.data == {}

    def test_template(self):
        """Test template render request."""
        request = RenderRequest(template="<p>{{ x }}</p>", data={"x": 1}, device_id="AA")
        assert request.device_id == "AA"

    def test_requires_a_source(self):
        """Test a request without a source."""
        with pytest.raises(ValidationError):
            RenderRequest()

    def test_rejects_both_sources(self):
        """Test a request with both sources."""
        with pytest.raises(ValidationError):
            RenderRequest(url="https://example.com", template="<p>x</p>")
