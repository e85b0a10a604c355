"""
Binding coordinator - drives one discovery session to a single bound dimmer
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Set

from device.controller import ControlSink, DeviceController
from services.accessory_registry import Accessory, AccessoryRegistry, accessory_uuid
from .listener import DiscoveryListener, QuerySendError
from .models import Candidate, DeviceRecord, DiscoverySession
from .probe import DeviceInfoProbe, ProbeError, SUPPORTED_MODEL

logger = logging.getLogger(__name__)

SERVICE_NAME = "_shelly._tcp.local"


@dataclass
class Binding:
    """Result of a successful discovery session"""
    device: DeviceRecord
    accessory: Accessory
    controller: ControlSink
    reused: bool


class BindingCoordinator:
    """Orchestrates listener + probe and binds at most one device per session"""

    def __init__(self, config: Dict, registry: AccessoryRegistry, device_config: Optional[Dict] = None,
                 probe: Optional[DeviceInfoProbe] = None,
                 listener_factory: Optional[Callable[..., DiscoveryListener]] = None):
        self.config = config
        self.registry = registry
        self.service_name = config.get('service_name', SERVICE_NAME)
        self.model = config.get('model', SUPPORTED_MODEL)
        self.interface = config.get('interface', '0.0.0.0')

        device_config = device_config or {}
        self.device_port = device_config.get('port', 80)
        self.device_timeout = device_config.get('request_timeout', 5)

        self.probe = probe or DeviceInfoProbe(
            model=self.model,
            port=self.device_port,
            timeout_seconds=config.get('request_timeout', 5)
        )
        self._listener_factory = listener_factory or DiscoveryListener

        self.status = "idle"
        self.session: Optional[DiscoverySession] = None
        self.listener: Optional[DiscoveryListener] = None
        self.binding: Optional[Binding] = None
        self._bound: Optional[asyncio.Future] = None
        self._tasks: Set[asyncio.Task] = set()

    async def run(self) -> DiscoverySession:
        """
        Start a discovery session. Returns once the query is out; binding
        happens later as responses arrive. Raises QuerySendError if the
        query could not be sent.
        """
        self.session = DiscoverySession(self.service_name)
        self._bound = asyncio.get_running_loop().create_future()
        self.listener = self._listener_factory(self.session, self._on_candidate, interface=self.interface)

        try:
            await self.listener.start()
        except QuerySendError as e:
            self.status = "failed"
            logger.error(f"[DISCOVERY] Session terminated: {e}")
            self._bound.set_exception(e)
            # Retrieved here so an unawaited wait_bound() does not warn
            self._bound.exception()
            raise

        self.status = "searching"
        logger.info(f"[DISCOVERY] Listening for {self.model} devices on {self.service_name}")
        return self.session

    async def wait_bound(self) -> Binding:
        if self._bound is None:
            raise RuntimeError("Discovery session has not been started")
        return await asyncio.shield(self._bound)

    def _on_candidate(self, candidate: Candidate) -> None:
        task = asyncio.get_running_loop().create_task(self._evaluate(candidate))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _evaluate(self, candidate: Candidate) -> None:
        session = self.session
        if session is None or session.bound:
            return

        try:
            record = await self.probe.probe(candidate.ip_address)
        except ProbeError as e:
            logger.warning(f"[DISCOVERY] {e} - still listening")
            return

        if record is None:
            return

        # Claim before anything else; no suspension point between check and set
        if not session.claim_binding():
            logger.debug(f"[BIND] Session already bound, ignoring {record.id} at {record.ip_address}")
            return

        logger.info(f"Found a {self.model}, stopping mDNS")
        self.listener.stop()

        try:
            self.binding = self._bind(record)
        except Exception as e:
            logger.error(f"[BIND] Failed to bind {record.name} ({record.ip_address}): {e}")
            self.status = "failed"
            self._bound.set_exception(e)
            self._bound.exception()
            return

        self.status = "bound"
        self._bound.set_result(self.binding)

    def _bind(self, record: DeviceRecord) -> Binding:
        accessory_id = accessory_uuid(record.id)
        existing = self.registry.get(accessory_id)

        if existing:
            logger.info(f"[BIND] Restoring existing accessory from cache: {existing.display_name}")
            existing.context['device'] = record.to_context()
            controller = self._make_controller(existing)
            self.registry.update([existing])
            return Binding(record, existing, controller, reused=True)

        logger.info(f"[BIND] Adding new accessory: {record.name}")
        accessory = self.registry.create(record.name, accessory_id)
        accessory.context['device'] = record.to_context()
        controller = self._make_controller(accessory)
        self.registry.register([accessory])
        return Binding(record, accessory, controller, reused=False)

    def _make_controller(self, accessory: Accessory) -> ControlSink:
        return DeviceController(accessory, port=self.device_port, timeout_seconds=self.device_timeout)

    async def close(self) -> None:
        """Stop listening and cancel in-flight probes"""
        if self.listener:
            self.listener.stop()
        for task in list(self._tasks):
            task.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
