"""
HTTP RPC client for Shelly Gen2 devices
Every call is a single GET against http://{host}/rpc/{Method}
"""

import asyncio
import logging
from typing import Any, Dict, Optional

import aiohttp

from http_helper import create_device_session

logger = logging.getLogger(__name__)

DEFAULT_RPC_PORT = 80


class RpcError(Exception):
    """Raised when an RPC call fails at the transport, HTTP or JSON layer"""

    def __init__(self, method: str, reason: str):
        super().__init__(f"{method} failed: {reason}")
        self.method = method
        self.reason = reason


def _encode_param(value: Any) -> str:
    # The device expects JSON-style booleans in the query string
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class RpcClient:
    """Issues GET requests to a device's RPC endpoint and returns the parsed JSON body"""

    def __init__(self, host: str, port: int = DEFAULT_RPC_PORT, timeout_seconds: float = 5):
        self.host = host
        self.port = port
        self.timeout_seconds = timeout_seconds

    @property
    def base_url(self) -> str:
        if self.port == DEFAULT_RPC_PORT:
            return f"http://{self.host}/rpc"
        return f"http://{self.host}:{self.port}/rpc"

    def build_url(self, method: str) -> str:
        return f"{self.base_url}/{method}"

    async def call(self, method: str, params: Optional[Dict[str, Any]] = None,
                   expect_body: bool = True) -> Dict[str, Any]:
        """
        Call an RPC method and return its JSON object.
        Raises RpcError on connection failure, timeout, non-2xx status or a body
        that is not a JSON object. With expect_body=False only the status is
        checked and an empty dict is returned.
        """
        url = self.build_url(method)
        query = {key: _encode_param(value) for key, value in (params or {}).items()}

        try:
            async with create_device_session(self.timeout_seconds) as session:
                async with session.get(url, params=query) as response:
                    if response.status < 200 or response.status >= 300:
                        raise RpcError(method, f"HTTP {response.status}")
                    if not expect_body:
                        logger.debug(f"[RPC] {self.host} {method} {query} -> HTTP {response.status}")
                        return {}
                    body = await response.json(content_type=None)
        except RpcError:
            raise
        except asyncio.TimeoutError:
            raise RpcError(method, f"timed out after {self.timeout_seconds}s")
        except aiohttp.ClientError as e:
            raise RpcError(method, f"{type(e).__name__}: {e}")
        except ValueError as e:
            raise RpcError(method, f"malformed JSON: {e}")

        if not isinstance(body, dict):
            raise RpcError(method, f"expected JSON object, got {type(body).__name__}")

        logger.debug(f"[RPC] {self.host} {method} {query} -> {body}")
        return body
