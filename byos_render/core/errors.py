"""
Render Errors
=============

Typed failures for every stage of the render path. Each class carries a coarse
``category`` the HTTP layer maps to a status code; the underlying exception is
chained as ``__cause__``.
"""

from typing import Optional


class RenderError(Exception):
    """Base class for render pipeline failures."""

    category = "internal"

    def __init__(self, message: str, diagnostic: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.diagnostic = diagnostic


class TemplateError(RenderError):
    """Template parsing or rendering failed."""

    category = "configuration"

    STAGES = ("user", "base")
    CAUSES = ("syntax", "undefined-variable", "io")

    def __init__(self, message: str, stage: str, cause: str):
        if stage not in self.STAGES:
            raise ValueError(f"Unknown template stage: {stage}")
        if cause not in self.CAUSES:
            raise ValueError(f"Unknown template failure cause: {cause}")
        super().__init__(f"{stage} template {cause}: {message}")
        self.stage = stage
        self.cause = cause


class SessionLaunchError(RenderError):
    """The headless browser could not be started."""

    category = "unavailable"


class NavigationError(RenderError):
    """Navigation failed or the load event did not arrive before the deadline."""

    category = "unavailable"


class CaptureError(RenderError):
    """Screenshot capture failed or produced an unexpected raster."""

    category = "unavailable"


class DecodeError(RenderError):
    """Captured bytes are not a decodable raster."""

    category = "conversion"


class ConversionError(RenderError):
    """Grayscale/dither conversion failed.

    ``diagnostic`` holds captured output of an external tool when one was used.
    """

    category = "conversion"


class ArtifactWriteError(RenderError):
    """An artifact could not be written to the generated-assets store."""

    category = "storage"
