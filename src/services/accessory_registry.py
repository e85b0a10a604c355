"""
Accessory registry - the host side of device binding
Tracks previously known accessories and publishes new ones
"""

import logging
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

# Fixed namespace so the same device id always maps to the same accessory uuid
ACCESSORY_NAMESPACE = uuid.UUID("6f1c9a52-3d0e-5b8a-9a41-5e11e7d1a0b3")


def accessory_uuid(device_id: str) -> str:
    """Stable accessory identifier derived from a device id"""
    return str(uuid.uuid5(ACCESSORY_NAMESPACE, device_id))


@dataclass
class Accessory:
    """Host-owned accessory; the core only reads/writes context['device']"""
    display_name: str
    uuid: str
    context: Dict[str, Any] = field(default_factory=dict)
    information: Dict[str, str] = field(default_factory=dict)


class AccessoryRegistry(ABC):
    """Lookup, factory and registration calls the binding coordinator depends on"""

    @abstractmethod
    def get(self, accessory_id: str) -> Optional[Accessory]:
        ...

    @abstractmethod
    def create(self, display_name: str, accessory_id: str) -> Accessory:
        ...

    @abstractmethod
    def register(self, accessories: List[Accessory]) -> None:
        ...

    @abstractmethod
    def update(self, accessories: List[Accessory]) -> None:
        ...


class InMemoryAccessoryRegistry(AccessoryRegistry):
    """Registry kept in process memory; restored accessories come in via configure_accessory()"""

    def __init__(self):
        self.accessories: Dict[str, Accessory] = {}
        self.registered: List[Accessory] = []

    def configure_accessory(self, accessory: Accessory) -> None:
        """Restore a previously known accessory so discovery can reuse it"""
        logger.info(f"Loading accessory from cache: {accessory.display_name}")
        self.accessories[accessory.uuid] = accessory

    def get(self, accessory_id: str) -> Optional[Accessory]:
        return self.accessories.get(accessory_id)

    def create(self, display_name: str, accessory_id: str) -> Accessory:
        return Accessory(display_name=display_name, uuid=accessory_id)

    def register(self, accessories: List[Accessory]) -> None:
        for accessory in accessories:
            if accessory.uuid in self.accessories:
                raise ValueError(f"Accessory already registered: {accessory.uuid}")
            self.accessories[accessory.uuid] = accessory
            self.registered.append(accessory)
            logger.info(f"[REGISTRY] Registered accessory {accessory.display_name} ({accessory.uuid})")

    def update(self, accessories: List[Accessory]) -> None:
        for accessory in accessories:
            self.accessories[accessory.uuid] = accessory
            logger.debug(f"[REGISTRY] Updated accessory {accessory.display_name}")

    def list(self) -> List[Accessory]:
        return list(self.accessories.values())
