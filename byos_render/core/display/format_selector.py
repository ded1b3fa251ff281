"""
Format Selector
===============

Decide which raster a device should download on its next display request.

Firmware older than the gate cannot decode PNG and gets the BMP. The gate uses
plain string ordering, so "1.10.0" sorts before "1.5.2" and is served BMP.
"""

from typing import Optional, Tuple

from byos_render.models.schemas import Device, DisplayDirective, ImageFormat

FIRMWARE_PNG_GATE = "1.5.2"
SETUP_FILENAME = "setup-logo.bmp"
SETUP_PATH = "images/setup-logo.bmp"
GENERATED_PREFIX = "images/generated"

IMAGE_URL_TIMEOUT = 15
SPECIAL_FUNCTION = "sleep"


def version_compare(a: str, b: str) -> int:
    """Compare two firmware strings lexicographically, returning -1, 0 or 1."""
    if a < b:
        return -1
    if a > b:
        return 1
    return 0


def select_format(firmware_version: Optional[str]) -> ImageFormat:
    """BMP for unknown firmware or anything ordering before the gate, PNG otherwise."""
    if firmware_version is None or version_compare(firmware_version, FIRMWARE_PNG_GATE) < 0:
        return ImageFormat.BMP
    return ImageFormat.PNG


def select_image(device: Device) -> Tuple[str, str]:
    """Return ``(filename, storage-relative path)`` for the device's next image."""
    image_id = device.current_screen_image
    if image_id is None:
        return SETUP_FILENAME, SETUP_PATH

    image_format = select_format(device.last_firmware_version)
    filename = f"{image_id}.{image_format.value}"
    return filename, f"{GENERATED_PREFIX}/{filename}"


def select(device: Device, base_url: str) -> DisplayDirective:
    """
    Build the display directive for a device.

    Args:
        device: Device record from the collaborator
        base_url: Public server URL, without trailing slash

    Returns:
        DisplayDirective pointing at the setup asset or the stored image
    """
    filename, path = select_image(device)
    return DisplayDirective(
        image_url=f"{base_url}/storage/{path}",
        filename=filename,
        refresh_rate=device.default_refresh_interval,
        image_url_timeout=IMAGE_URL_TIMEOUT,
        reset_firmware=False,
        update_firmware=False,
        firmware_url=None,
        special_function=SPECIAL_FUNCTION,
    )
