"""
Local HTTP API for the Shelly Dimmer Bridge
Exposes the bound dimmer's on/off and brightness plus discovery status
"""

from fastapi import FastAPI
import logging

from .light_routes import create_light_routes
from .system_routes import create_system_routes

logger = logging.getLogger(__name__)

API_VERSION = "1.0.0"


class DimmerAPI:
    """Local HTTP API wiring the DeviceController into request handlers"""

    def __init__(self, coordinator, registry):
        self.coordinator = coordinator
        self.registry = registry
        self.app = FastAPI(
            title="Shelly Dimmer Bridge",
            description="Local API for a discovered Shelly dimmer",
            version=API_VERSION
        )
        self._setup_routes()

    def _setup_routes(self):
        """Setup FastAPI routes using modular approach"""
        self.app.include_router(create_system_routes(self.coordinator, self.registry, API_VERSION))
        self.app.include_router(create_light_routes(self.coordinator))
