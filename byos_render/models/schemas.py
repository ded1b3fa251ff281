"""
Pydantic Models and Schemas
===========================

Core data models for rendered artifacts, devices, display directives and API
requests/responses.
"""

from typing import Optional, Dict, Any
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
import uuid

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ImageFormat(str, Enum):
    """Raster formats a device can be served."""

    BMP = "bmp"
    PNG = "png"


# Rendering Models
class RenderedImage(BaseModel):
    """Artifact pair produced by one render, keyed by a fresh identifier."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Unique artifact identifier")
    png_path: Path = Field(..., description="Lossless raster path")
    bmp_path: Path = Field(..., description="Packed 1-bit bitmap path")

    @classmethod
    def allocate(cls, directory: Path) -> "RenderedImage":
        """Create paths for a new artifact pair under ``directory``."""
        image_id = str(uuid.uuid4())
        stem = directory / image_id
        return cls(
            id=image_id,
            png_path=stem.with_suffix(".png"),
            bmp_path=stem.with_suffix(".bmp"),
        )

    @model_validator(mode="after")
    def validate_shared_stem(self) -> "RenderedImage":
        """Both representations must live side by side under one stem."""
        if self.png_path.with_suffix("") != self.bmp_path.with_suffix(""):
            raise ValueError("PNG and BMP paths must share a stem")
        return self

    def path_for(self, image_format: ImageFormat) -> Path:
        """Return the artifact path for a format."""
        return self.bmp_path if image_format is ImageFormat.BMP else self.png_path


# Device Models
class Device(BaseModel):
    """Device record as exposed by the device collaborator."""

    mac_address: str = Field(..., description="Device MAC address")
    api_key: str = Field(..., description="Device access token")
    friendly_id: Optional[str] = Field(None, description="Human readable identifier")
    name: Optional[str] = Field(None, description="Display name")
    current_screen_image: Optional[str] = Field(None, description="Current artifact identifier")
    last_firmware_version: Optional[str] = Field(None, description="Last reported firmware")
    last_rssi_level: Optional[int] = Field(None, description="Last reported Wi-Fi RSSI")
    last_battery_voltage: Optional[float] = Field(None, description="Last reported battery voltage")
    default_refresh_interval: int = Field(60, ge=0, description="Refresh interval in seconds")


class DeviceTelemetry(BaseModel):
    """Status values a device reports with each display request."""

    rssi: int
    battery_voltage: float
    firmware_version: str


class DisplayDirective(BaseModel):
    """What a device should download and how it should behave afterwards."""

    image_url: str = Field(..., description="Absolute URL of the image to display")
    filename: str = Field(..., description="Filename the device stores the image as")
    refresh_rate: int = Field(..., description="Seconds until the next request")
    image_url_timeout: int = Field(15, description="Download timeout in seconds")
    reset_firmware: bool = Field(False, description="Ask the device to reset its firmware")
    update_firmware: bool = Field(False, description="Ask the device to update its firmware")
    firmware_url: Optional[str] = Field(None, description="Firmware download URL")
    special_function: str = Field("sleep", description="Action after displaying")


# API Request/Response Models
class RenderRequest(BaseModel):
    """Request to render a web page or template fragment."""

    url: Optional[str] = Field(None, description="Page to render")
    template: Optional[str] = Field(None, description="HTML fragment to embed in the layout")
    data: Dict[str, Any] = Field(default_factory=dict, description="Values for the fragment")
    layout: str = Field("base.html", description="Base layout name")
    device_id: Optional[str] = Field(None, description="MAC address to assign the image to")

    @model_validator(mode="after")
    def validate_source(self) -> "RenderRequest":
        """Exactly one of url or template must be given."""
        if bool(self.url) == bool(self.template):
            raise ValueError("Provide exactly one of 'url' or 'template'")
        return self


class RenderResponse(BaseModel):
    """Result of a render request."""

    image_id: str = Field(..., description="Artifact identifier")
    png_url: str = Field(..., description="URL of the lossless raster")
    bmp_url: str = Field(..., description="URL of the 1-bit bitmap")


class ErrorResponse(BaseModel):
    """Standard error response model."""

    error: str = Field(..., description="Error message")
    error_code: Optional[str] = Field(None, description="Error code")
    details: Optional[Dict[str, Any]] = Field(None, description="Additional error details")
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc), description="Error timestamp"
    )
    request_id: Optional[str] = Field(None, description="Request identifier for tracking")
