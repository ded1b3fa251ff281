"""
Test Helpers
============

Helper functions for common testing operations.
"""

from pathlib import Path
from typing import Any

from byos_render.config.settings import Settings


def build_settings(tmp_path: Path, **overrides: Any) -> Settings:
    """Settings rooted in a temporary directory with fast retries."""
    values: dict[str, Any] = {
        "environment": "testing",
        "assets_path": tmp_path / "assets",
        "log_path": tmp_path / "logs",
        "port": 3000,
        "base_url": None,
        "launch_backoff": 0.0,
        "render_timeout": 5.0,
        "conversion_timeout": 5.0,
    }
    values.update(overrides)
    return Settings(**values)
