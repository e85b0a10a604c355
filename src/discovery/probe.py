"""
Device info probe - confirms a discovered candidate is a supported dimmer
"""

import logging
from typing import Optional

from device.rpc_client import RpcClient, RpcError, DEFAULT_RPC_PORT
from .models import DeviceRecord

logger = logging.getLogger(__name__)

SUPPORTED_MODEL = "SNDM-0013US"

OPTIONAL_INFO_FIELDS = ('mac', 'gen', 'fw_id', 'ver', 'app', 'auth_en')


class ProbeError(Exception):
    """The info endpoint could not be reached or returned an unusable body"""


class DeviceInfoProbe:
    """Fetches Shelly.GetDeviceInfo and checks the model"""

    def __init__(self, model: str = SUPPORTED_MODEL, port: int = DEFAULT_RPC_PORT, timeout_seconds: float = 5):
        self.model = model
        self.port = port
        self.timeout_seconds = timeout_seconds

    async def probe(self, ip_address: str) -> Optional[DeviceRecord]:
        """
        Returns the confirmed DeviceRecord, or None if the device is some other model.
        Raises ProbeError on transport or parse failure.
        """
        logger.info(f"Getting Shelly device info from {ip_address}")
        client = RpcClient(ip_address, port=self.port, timeout_seconds=self.timeout_seconds)
        try:
            info = await client.call("Shelly.GetDeviceInfo")
        except RpcError as e:
            raise ProbeError(f"Device info probe of {ip_address} failed: {e.reason}") from e

        record = self._parse_device_info(info, ip_address)
        if record.model != self.model:
            logger.info(f"Device {record.model} at {ip_address} is not a {self.model}, ignoring")
            return None

        logger.info(f"Device has info: {info}")
        return record

    def _parse_device_info(self, info: dict, ip_address: str) -> DeviceRecord:
        device_id = info.get('id')
        model = info.get('model')
        if not isinstance(device_id, str) or not device_id:
            raise ProbeError(f"Device info from {ip_address} has no id")
        if not isinstance(model, str):
            raise ProbeError(f"Device info from {ip_address} has no model")

        # Firmware reports name: null until the user names the device
        name = info.get('name') or device_id
        extras = {key: info[key] for key in OPTIONAL_INFO_FIELDS if key in info}
        return DeviceRecord(name=name, id=device_id, ip_address=ip_address, model=model, **extras)
