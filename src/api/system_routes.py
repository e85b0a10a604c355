"""
System status API routes
"""

from fastapi import APIRouter
from pydantic import BaseModel
from typing import List, Optional
import logging

logger = logging.getLogger(__name__)

# Response models
class DiscoveryStatusResponse(BaseModel):
    status: str
    service_name: str
    model: str
    device: Optional[dict] = None
    accessory_id: Optional[str] = None
    version: str

class AccessoryResponse(BaseModel):
    uuid: str
    display_name: str
    information: dict
    device: Optional[dict] = None

def create_system_routes(coordinator, registry, version: str):
    """Create discovery status and accessory listing routes"""
    router = APIRouter(prefix="/api", tags=["system"])

    @router.get("/system/status", response_model=DiscoveryStatusResponse)
    async def get_system_status():
        """Discovery state and the bound device, if any"""
        binding = coordinator.binding
        return DiscoveryStatusResponse(
            status=coordinator.status,
            service_name=coordinator.service_name,
            model=coordinator.model,
            device=binding.device.to_context() if binding else None,
            accessory_id=binding.accessory.uuid if binding else None,
            version=version
        )

    @router.get("/accessories", response_model=List[AccessoryResponse])
    async def list_accessories():
        """List accessories known to the registry"""
        return [AccessoryResponse(
            uuid=a.uuid,
            display_name=a.display_name,
            information=a.information,
            device=a.context.get('device')
        ) for a in registry.list()]

    return router
