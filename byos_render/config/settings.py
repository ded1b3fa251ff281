"""
Application Settings
===================

Main application settings and environment configuration using Pydantic Settings.
Supports development, testing, and production environments.
"""

from typing import Optional
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from pathlib import Path


class Settings(BaseSettings):
    """Main application settings with environment variable support."""

    # Application Configuration
    app_name: str = Field(default="BYOS Render Server", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    environment: str = Field(
        default="development", description="Environment: development, testing, production"
    )
    debug: bool = Field(default=True, description="Debug mode")

    # Server Configuration
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=3000, description="Server port")
    base_url: Optional[str] = Field(
        default=None, description="Public base URL devices use to reach this server"
    )

    # Storage Configuration
    assets_path: Path = Field(default=Path("./assets"), description="Static assets directory")
    template_path: Optional[Path] = Field(
        default=None, description="Directory holding base layouts (defaults to bundled templates)"
    )
    log_path: Path = Field(default=Path("./logs"), description="Log file directory")

    # Display Configuration
    display_width: int = Field(default=800, gt=0, description="Panel width in pixels")
    display_height: int = Field(default=480, gt=0, description="Panel height in pixels")
    device_scale_factor: float = Field(default=1.0, gt=0, description="Device pixel ratio")

    # Browser Configuration
    playwright_headless: bool = Field(default=True, description="Run browser in headless mode")
    playwright_timeout: int = Field(default=30000, description="Playwright timeout in milliseconds")
    render_timeout: float = Field(default=30.0, gt=0, description="Render deadline in seconds")
    allow_file_urls: bool = Field(
        default=False, description="Allow rendering file:// URLs from the local filesystem"
    )

    # Retry Configuration
    launch_retries: int = Field(default=3, ge=0, description="Retries after a browser launch failure")
    launch_backoff: float = Field(default=1.0, ge=0, description="Initial launch retry delay")
    max_backoff: float = Field(default=30.0, ge=0, description="Upper bound for retry delay")
    navigation_retries: int = Field(
        default=1, ge=0, description="Retries with a fresh session after navigation/capture failure"
    )

    # Conversion Configuration
    image_converter: str = Field(default="pillow", description="Converter backend: pillow, magick")
    magick_binary: str = Field(default="magick", description="ImageMagick executable")
    conversion_timeout: float = Field(
        default=30.0, gt=0, description="External conversion timeout in seconds"
    )

    # Monitoring Configuration
    log_level: str = Field(default="INFO", description="Logging level")

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment value."""
        allowed = {"development", "testing", "production"}
        if v not in allowed:
            raise ValueError(f"Environment must be one of: {allowed}")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in allowed:
            raise ValueError(f"Log level must be one of: {allowed}")
        return v.upper()

    @field_validator("image_converter")
    @classmethod
    def validate_image_converter(cls, v: str) -> str:
        """Validate converter backend name."""
        allowed = {"pillow", "magick"}
        if v.lower() not in allowed:
            raise ValueError(f"Image converter must be one of: {allowed}")
        return v.lower()

    @model_validator(mode="after")
    def default_base_url(self) -> "Settings":
        """Derive the base URL from the port when it is not configured."""
        if not self.base_url:
            self.base_url = f"http://localhost:{self.port}"
        self.base_url = self.base_url.rstrip("/")
        return self

    @property
    def generated_path(self) -> Path:
        """Directory for rendered artifact pairs."""
        return self.assets_path / "images" / "generated"

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False, env_prefix="BYOS_"
    )


# Global settings instance - will be initialized when needed
settings = None


def get_settings() -> Settings:
    """Get the global settings instance."""
    global settings
    if settings is None:
        settings = Settings()
    return settings
