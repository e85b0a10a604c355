"""
Dimmer control surface bound to one accessory
Maps on/off and brightness get/set onto Light.GetStatus / Light.Set
"""

import logging
from typing import Optional, Protocol

from .rpc_client import RpcClient, RpcError, DEFAULT_RPC_PORT

logger = logging.getLogger(__name__)

MANUFACTURER = "Shelly"
LIGHT_ID = 0


class ServiceCommunicationError(Exception):
    """The device did not answer a control request with a usable value"""


class ControlSink(Protocol):
    """The get/set surface a host wires into its own property model"""

    async def get_on(self) -> bool: ...

    async def set_on(self, value: bool) -> None: ...

    async def get_brightness(self) -> int: ...

    async def set_brightness(self, value: int) -> None: ...


class DeviceController:
    """Controls the light channel of a bound Shelly dimmer"""

    def __init__(self, accessory, port: int = DEFAULT_RPC_PORT, timeout_seconds: float = 5,
                 client: Optional[RpcClient] = None):
        self.accessory = accessory
        device = accessory.context['device']
        self.ip_address = device['ip_address']
        self.client = client or RpcClient(self.ip_address, port=port, timeout_seconds=timeout_seconds)

        accessory.information.update({
            'manufacturer': MANUFACTURER,
            'model': device['model'],
            'name': device['name'],
        })

    async def _rpc(self, method: str, expect_body: bool = True, **params) -> dict:
        try:
            return await self.client.call(method, {'id': LIGHT_ID, **params}, expect_body=expect_body)
        except RpcError as e:
            logger.debug(f"[RPC] {self.accessory.display_name}: {e}")
            raise ServiceCommunicationError(str(e)) from e

    async def _status_field(self, field: str, expected_type: type):
        status = await self._rpc("Light.GetStatus")
        value = status.get(field)
        # bool is an int subclass, so brightness must reject it explicitly
        if not isinstance(value, expected_type) or (expected_type is int and isinstance(value, bool)):
            raise ServiceCommunicationError(f"Light.GetStatus returned unusable '{field}': {value!r}")
        return value

    async def get_on(self) -> bool:
        is_on = await self._status_field('output', bool)
        logger.debug(f"Get On -> {is_on}")
        return is_on

    async def set_on(self, value: bool) -> None:
        # Light.Set acknowledgements vary by firmware; only the status matters
        await self._rpc("Light.Set", expect_body=False, on=bool(value))
        logger.debug(f"Set On -> {value}")

    async def get_brightness(self) -> int:
        brightness = await self._status_field('brightness', int)
        logger.debug(f"Get Brightness -> {brightness}")
        return brightness

    async def set_brightness(self, value: int) -> None:
        if isinstance(value, bool) or not 0 <= int(value) <= 100:
            raise ValueError(f"Brightness must be between 0 and 100, got {value!r}")
        await self._rpc("Light.Set", expect_body=False, brightness=int(value))
        logger.debug(f"Set Brightness -> {value}")
