"""
Dimmer Server - Main orchestrator for discovery, binding and the control API
"""

import asyncio
import logging
from typing import List, Optional

import uvicorn

from config_loader import load_config, setup_logging
from discovery.manager import BindingCoordinator, Binding
from api.main_api import DimmerAPI
from services.accessory_registry import InMemoryAccessoryRegistry

logger = logging.getLogger(__name__)

class DimmerServer:
    """Runs one discovery session in the background and serves the local API"""

    def __init__(self, config_path: str = "config/config.yaml", registry: Optional[InMemoryAccessoryRegistry] = None):
        self.config = load_config(config_path)
        setup_logging(self.config)

        self.registry = registry or InMemoryAccessoryRegistry()
        self.coordinator = BindingCoordinator(self.config['discovery'], self.registry, self.config['device'])
        self.api = DimmerAPI(self.coordinator, self.registry)

        self.running = False
        self.tasks: List[asyncio.Task] = []

    async def start(self):
        """Start discovery and serve the API until stopped"""
        logger.info("Starting Shelly Dimmer Bridge...")

        try:
            await self.coordinator.run()
            self.running = True

            self.tasks = [asyncio.create_task(self._binding_service())]
            logger.info("Discovery running - control API will answer 503 until a dimmer is bound")

            await self._start_api_server()

        except Exception as e:
            logger.error(f"Server startup failed: {e}")
            raise

    async def stop(self):
        """Stop all server services gracefully"""
        if not self.running:
            return
        logger.info("Stopping server...")
        self.running = False

        await self.coordinator.close()

        for task in self.tasks:
            task.cancel()
        if self.tasks:
            await asyncio.gather(*self.tasks, return_exceptions=True)

        logger.info("Server stopped")

    async def _binding_service(self):
        """Report the binding once discovery completes"""
        try:
            binding: Binding = await self.coordinator.wait_bound()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"[BIND] Discovery ended without a device: {e}")
            return

        action = "Reused" if binding.reused else "Registered"
        logger.info(f"[SUCCESS] {action} {binding.device.name} ({binding.device.ip_address}) as {binding.accessory.uuid}")

    async def _start_api_server(self):
        """Start the FastAPI server"""
        config = uvicorn.Config(
            self.api.app,
            host=self.config['api']['host'],
            port=self.config['api']['port'],
            log_level="info",
            access_log=False  # We handle our own logging
        )

        server = uvicorn.Server(config)

        logger.info(f"Starting API server on {self.config['api']['host']}:{self.config['api']['port']}")
        logger.info(f"API documentation: http://localhost:{self.config['api']['port']}/docs")

        await server.serve()
