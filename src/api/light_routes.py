"""
Light control API routes
"""

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field
import logging

from device.controller import ControlSink, ServiceCommunicationError

logger = logging.getLogger(__name__)

# Request models
class OnRequest(BaseModel):
    on: bool

class BrightnessRequest(BaseModel):
    brightness: int = Field(ge=0, le=100)

class LightStateResponse(BaseModel):
    accessory_id: str
    name: str
    on: bool
    brightness: int


def _require_binding(coordinator):
    binding = coordinator.binding
    if binding is None:
        raise HTTPException(status_code=503, detail=f"No dimmer bound yet (discovery {coordinator.status})")
    return binding


def _require_controller(coordinator) -> ControlSink:
    return _require_binding(coordinator).controller


def create_light_routes(coordinator):
    """Create light control routes backed by the bound device's ControlSink"""
    router = APIRouter(prefix="/api", tags=["light"])

    @router.get("/light", response_model=LightStateResponse)
    async def get_light():
        """Read on/off and brightness from the device"""
        binding = _require_binding(coordinator)
        controller: ControlSink = binding.controller
        try:
            is_on = await controller.get_on()
            brightness = await controller.get_brightness()
        except ServiceCommunicationError as e:
            logger.warning(f"[API] Light status failed: {e}")
            raise HTTPException(status_code=503, detail=str(e))

        return LightStateResponse(
            accessory_id=binding.accessory.uuid,
            name=binding.accessory.display_name,
            on=is_on,
            brightness=brightness
        )

    @router.put("/light/on")
    async def set_light_on(request: OnRequest):
        """Switch the light on or off"""
        controller = _require_controller(coordinator)
        try:
            await controller.set_on(request.on)
        except ServiceCommunicationError as e:
            logger.warning(f"[API] Set on failed: {e}")
            raise HTTPException(status_code=503, detail=str(e))
        return {"status": "success", "on": request.on}

    @router.put("/light/brightness")
    async def set_light_brightness(request: BrightnessRequest):
        """Set brightness (0-100)"""
        controller = _require_controller(coordinator)
        try:
            await controller.set_brightness(request.brightness)
        except ServiceCommunicationError as e:
            logger.warning(f"[API] Set brightness failed: {e}")
            raise HTTPException(status_code=503, detail=str(e))
        return {"status": "success", "brightness": request.brightness}

    return router
