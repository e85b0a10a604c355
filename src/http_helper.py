# HTTP Helper for Shelly Device Connections
# Session configuration for the local device RPC endpoint (always plain HTTP)

import aiohttp
import logging

logger = logging.getLogger(__name__)

def create_device_session(timeout_seconds: float = 5) -> aiohttp.ClientSession:
    """
    Create properly configured aiohttp session for local Shelly RPC calls
    Prevents connection leaks with proper cleanup and limits
    """
    connector = aiohttp.TCPConnector(
        limit_per_host=2,           # Gen2 devices handle very few parallel sockets
        ssl=False,                  # Local RPC is HTTP only
        force_close=True,           # Force connection cleanup
        enable_cleanup_closed=True  # Additional cleanup
    )

    return aiohttp.ClientSession(
        connector=connector,
        timeout=aiohttp.ClientTimeout(total=timeout_seconds)
    )
