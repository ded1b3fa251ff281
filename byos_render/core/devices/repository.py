"""
Device Repository
=================

Boundary to the device collaborator. The render core only reads device records
and writes back telemetry and the current screen image; persistence itself is
owned elsewhere.
"""

from typing import Any, Dict, Iterable, Optional
from abc import ABC, abstractmethod
import asyncio

from byos_render.config.logging import get_logger
from byos_render.models.schemas import Device, DeviceTelemetry

logger = get_logger(__name__)


class DeviceNotFoundError(Exception):
    """Raised when a write targets an unknown device."""

    pass


class DeviceRepository(ABC):
    """Abstract access to device records."""

    @abstractmethod
    async def find_by_credentials(self, mac_address: str, api_key: str) -> Optional[Device]:
        """Return the device matching both MAC address and access token."""
        pass

    @abstractmethod
    async def find_by_mac(self, mac_address: str) -> Optional[Device]:
        """Return the device with this MAC address."""
        pass

    @abstractmethod
    async def update_device_info(self, mac_address: str, telemetry: DeviceTelemetry) -> Device:
        """Store the latest reported rssi, battery voltage and firmware version."""
        pass

    @abstractmethod
    async def assign_screen_image(self, mac_address: str, image_id: str) -> Device:
        """Point the device at a newly rendered image."""
        pass


class InMemoryDeviceRepository(DeviceRepository):
    """Device repository held in process memory."""

    def __init__(self, devices: Optional[Iterable[Device]] = None):
        self._devices: Dict[str, Device] = {d.mac_address: d for d in devices or []}
        self._lock = asyncio.Lock()
        self.logger: Any = logger.bind(repository="memory")

    async def add(self, device: Device) -> Device:
        async with self._lock:
            self._devices[device.mac_address] = device
        return device

    async def find_by_credentials(self, mac_address: str, api_key: str) -> Optional[Device]:
        device = self._devices.get(mac_address)
        if device is None or device.api_key != api_key:
            return None
        return device

    async def find_by_mac(self, mac_address: str) -> Optional[Device]:
        return self._devices.get(mac_address)

    async def update_device_info(self, mac_address: str, telemetry: DeviceTelemetry) -> Device:
        return await self._update(
            mac_address,
            last_rssi_level=telemetry.rssi,
            last_battery_voltage=telemetry.battery_voltage,
            last_firmware_version=telemetry.firmware_version,
        )

    async def assign_screen_image(self, mac_address: str, image_id: str) -> Device:
        return await self._update(mac_address, current_screen_image=image_id)

    async def _update(self, mac_address: str, **changes: Any) -> Device:
        async with self._lock:
            device = self._devices.get(mac_address)
            if device is None:
                raise DeviceNotFoundError(f"Unknown device: {mac_address}")
            updated = device.model_copy(update=changes)
            self._devices[mac_address] = updated

        self.logger.debug("Device updated", mac_address=mac_address, fields=sorted(changes))
        return updated
