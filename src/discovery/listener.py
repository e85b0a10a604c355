"""
Multicast DNS listener for Shelly devices
Sends one PTR query and turns incoming responses into candidates
"""

import asyncio
import logging
import socket
from typing import Callable, Optional, Tuple

from .mdns import MDNS_ADDRESS, MDNS_PORT, build_ptr_query, parse_records
from .models import Candidate, DiscoverySession

logger = logging.getLogger(__name__)


class QuerySendError(Exception):
    """The discovery query could not be sent; the session never produces a candidate"""


class _MdnsProtocol(asyncio.DatagramProtocol):
    """Adapter between the asyncio transport and DiscoveryListener"""

    def __init__(self, listener: 'DiscoveryListener'):
        self.listener = listener

    def datagram_received(self, data: bytes, addr: Tuple[str, int]):
        self.listener.datagram_received(data, addr)

    def error_received(self, exc: Exception):
        logger.warning(f"mDNS socket error: {exc}")

    def connection_lost(self, exc: Optional[Exception]) -> None:
        if exc is not None:
            logger.warning(f"mDNS socket closed with error: {exc}")


class DiscoveryListener:
    """Owns the mDNS socket for one discovery session"""

    def __init__(self, session: DiscoverySession, on_candidate: Callable[[Candidate], None],
                 interface: str = "0.0.0.0"):
        self.session = session
        self.on_candidate = on_candidate
        self.interface = interface
        self.transport: Optional[asyncio.DatagramTransport] = None

    @property
    def running(self) -> bool:
        return self.transport is not None

    def create_socket(self) -> socket.socket:
        """Bind the mDNS port and join the multicast group"""
        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM, socket.IPPROTO_UDP)
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            if hasattr(socket, 'SO_REUSEPORT'):
                sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEPORT, 1)
            sock.bind(('', MDNS_PORT))
            mreq = socket.inet_aton(MDNS_ADDRESS) + socket.inet_aton(self.interface)
            sock.setsockopt(socket.IPPROTO_IP, socket.IP_ADD_MEMBERSHIP, mreq)
            if self.interface != "0.0.0.0":
                sock.setsockopt(socket.IPPROTO_IP, socket.IP_MULTICAST_IF, socket.inet_aton(self.interface))
            sock.setsockopt(socket.IPPROTO_IP, socket.IP_MULTICAST_TTL, 255)
            sock.setblocking(False)
        except OSError:
            sock.close()
            raise
        return sock

    async def start(self) -> None:
        """Open the socket and send the PTR query; raises QuerySendError on failure"""
        query = build_ptr_query(self.session.service_name)
        sock = None
        try:
            sock = self.create_socket()
            logger.info(f"[DISCOVERY] Querying mDNS for {self.session.service_name}")
            # Sent on the raw socket so a failure surfaces here rather than in error_received
            sock.sendto(query, (MDNS_ADDRESS, MDNS_PORT))
            loop = asyncio.get_running_loop()
            self.transport, _ = await loop.create_datagram_endpoint(
                lambda: _MdnsProtocol(self), sock=sock
            )
        except OSError as e:
            if sock is not None:
                sock.close()
            logger.error(f"[DISCOVERY] Error while querying: {e}")
            raise QuerySendError(f"Could not send mDNS query for {self.session.service_name}: {e}") from e

    def datagram_received(self, data: bytes, addr: Tuple[str, int]) -> None:
        if self.session.bound:
            return

        records = parse_records(data)
        if not records:
            return

        candidate = self.session.feed_packet(records)
        if candidate:
            logger.info(f"[DISCOVERY] Candidate {candidate.instance_id} at {candidate.ip_address} (from {addr[0]})")
            self.on_candidate(candidate)

    def stop(self) -> None:
        """Close the socket; safe to call more than once"""
        if self.transport is not None:
            self.transport.close()
            self.transport = None
            logger.info("[DISCOVERY] mDNS listener stopped")
