"""Shared fixtures: a fake Shelly Gen2 device served over real HTTP."""

import asyncio
import socket

import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer
from zeroconf import DNSAddress, DNSOutgoing, DNSPointer
from zeroconf.const import _CLASS_IN, _FLAGS_AA, _FLAGS_QR_RESPONSE, _TYPE_A, _TYPE_PTR

DIMMER_MODEL = "SNDM-0013US"
DIMMER_ID = "shellywalldimmer-b0b21c12d4e8"


class FakeShelly:
    """Minimal stand-in for a Shelly Plus dimmer RPC endpoint"""

    def __init__(self, model=DIMMER_MODEL, name="Hall Dimmer", device_id=DIMMER_ID):
        self.info = {
            "name": name,
            "id": device_id,
            "mac": "B0B21C12D4E8",
            "model": model,
            "gen": 2,
            "fw_id": "20230912-082404/1.0.3-g6176478",
            "ver": "1.0.3",
            "app": "PlusWallDimmer",
            "auth_en": False,
        }
        self.output = False
        self.brightness = 20
        self.status_code = 200
        self.raw_body = None
        # Body returned by Light.Set alone; some firmware acknowledges with nothing
        self.set_body = None
        self.delay = 0
        self.requests = []
        self.host = None
        self.port = None

    def make_app(self) -> web.Application:
        app = web.Application()
        app.router.add_get('/rpc/Shelly.GetDeviceInfo', self.get_device_info)
        app.router.add_get('/rpc/Light.GetStatus', self.light_get_status)
        app.router.add_get('/rpc/Light.Set', self.light_set)
        return app

    async def _respond(self, request, body):
        self.requests.append((request.path, dict(request.query)))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.status_code != 200:
            return web.json_response({"code": -103, "message": "error"}, status=self.status_code)
        if self.raw_body is not None:
            return web.Response(text=self.raw_body, content_type="application/json")
        return web.json_response(body)

    async def get_device_info(self, request):
        return await self._respond(request, self.info)

    async def light_get_status(self, request):
        return await self._respond(request, {
            "id": 0, "source": "http", "output": self.output, "brightness": self.brightness
        })

    async def light_set(self, request):
        was_on = self.output
        if self.status_code == 200 and self.raw_body is None:
            if "on" in request.query:
                self.output = request.query["on"] == "true"
            if "brightness" in request.query:
                self.brightness = int(request.query["brightness"])
        if self.set_body is not None and self.status_code == 200:
            self.requests.append((request.path, dict(request.query)))
            return web.Response(text=self.set_body, content_type="text/plain")
        return await self._respond(request, {"was_on": was_on})


@pytest_asyncio.fixture
async def fake_device():
    device = FakeShelly()
    async with TestServer(device.make_app(), host="127.0.0.1") as server:
        device.host = server.host
        device.port = server.port
        yield device


@pytest.fixture
def unused_port():
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


def a_record(address, host="shellywalldimmer.local."):
    return DNSAddress(host, _TYPE_A, _CLASS_IN, 120, socket.inet_aton(address))


def response_packet(instance=None, address=None, service="_shelly._tcp.local.", answer_addresses=()):
    """
    Encode an mDNS response with an optional PTR answer and A additionals.
    address may be a single IP or a list; answer_addresses go in the answer section.
    """
    out = DNSOutgoing(_FLAGS_QR_RESPONSE | _FLAGS_AA, multicast=True)
    if instance:
        out.add_answer_at_time(DNSPointer(service, _TYPE_PTR, _CLASS_IN, 120, instance), 0)
    for ip in answer_addresses:
        out.add_answer_at_time(a_record(ip, host=f"host-{ip}.local."), 0)
    if address:
        for ip in [address] if isinstance(address, str) else address:
            out.add_additional_answer(a_record(ip, host=f"host-{ip}.local."))
    return out.packets()[0]
