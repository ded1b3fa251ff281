"""
Display Routes
==============

Device-facing endpoint telling a panel which image to download next.
"""

from typing import Optional, Type, TypeVar

from fastapi import APIRouter, Depends, Header, HTTPException

from byos_render.api.dependencies import get_current_settings, get_device_repository
from byos_render.config.logging import get_logger
from byos_render.config.settings import Settings
from byos_render.core.devices.repository import DeviceRepository
from byos_render.core.display.format_selector import select
from byos_render.models.schemas import DeviceTelemetry, DisplayDirective

logger = get_logger(__name__)

router = APIRouter(prefix="/api", tags=["Display"])

N = TypeVar("N", int, float)


def parse_numeric_header(value: Optional[str], kind: Type[N]) -> Optional[N]:
    """Parse an optional numeric header, returning None when absent or malformed."""
    if value is None:
        return None
    try:
        return kind(value.strip())
    except ValueError:
        return None


@router.get("/display", response_model=DisplayDirective)
async def display(
    mac_address: Optional[str] = Header(None, alias="id"),
    access_token: Optional[str] = Header(None, alias="access-token"),
    rssi: Optional[str] = Header(None, alias="rssi"),
    battery_voltage: Optional[str] = Header(
        None, alias="battery_voltage", convert_underscores=False
    ),
    fw_version: Optional[str] = Header(None, alias="fw-version"),
    repository: DeviceRepository = Depends(get_device_repository),
    settings: Settings = Depends(get_current_settings),
) -> DisplayDirective:
    """Return the display directive for the requesting device."""
    if not mac_address or not access_token:
        raise HTTPException(status_code=400, detail="Missing 'id' or 'access-token' header")

    device = await repository.find_by_credentials(mac_address, access_token)
    if device is None:
        raise HTTPException(status_code=404, detail="Device not found")

    rssi_value = parse_numeric_header(rssi, int)
    voltage_value = parse_numeric_header(battery_voltage, float)
    if rssi_value is not None and voltage_value is not None and fw_version:
        device = await repository.update_device_info(
            mac_address,
            DeviceTelemetry(
                rssi=rssi_value, battery_voltage=voltage_value, firmware_version=fw_version
            ),
        )
        logger.info(
            "Device telemetry updated",
            mac_address=mac_address,
            rssi=rssi_value,
            battery_voltage=voltage_value,
            firmware_version=fw_version,
        )

    directive = select(device, settings.base_url or "")
    logger.info("Display directive issued", mac_address=mac_address, image_url=directive.image_url)
    return directive
