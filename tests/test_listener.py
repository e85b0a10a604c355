"""Tests for mDNS encoding/decoding and the discovery listener."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
from zeroconf import DNSIncoming, DNSOutgoing, DNSPointer
from zeroconf.const import _CLASS_IN, _FLAGS_AA, _FLAGS_QR_RESPONSE, _TYPE_PTR

from conftest import response_packet
from discovery.listener import DiscoveryListener, QuerySendError
from discovery.mdns import MDNS_ADDRESS, MDNS_PORT, build_ptr_query, parse_records
from discovery.models import Candidate, DiscoverySession, MdnsRecord, TYPE_A, TYPE_PTR

SERVICE = "_shelly._tcp.local"
INSTANCE = "shellywalldimmer-b0b21c12d4e8._shelly._tcp.local."


class TestMdnsCodec:

    def test_query_is_single_ptr_question(self):
        message = DNSIncoming(build_ptr_query(SERVICE))
        assert message.is_query()
        assert len(message.questions) == 1
        assert message.questions[0].name == "_shelly._tcp.local."
        assert message.questions[0].type == _TYPE_PTR

    def test_parse_ptr_and_a(self):
        records = parse_records(response_packet(INSTANCE, "192.168.1.40"))
        assert MdnsRecord(TYPE_PTR, "_shelly._tcp.local.", INSTANCE) in records
        assert any(r.type == TYPE_A and r.data == "192.168.1.40" for r in records)

    def test_a_records_only_taken_from_additional_section(self):
        records = parse_records(response_packet(INSTANCE, "192.168.1.40", answer_addresses=["10.0.0.9"]))
        assert [r.data for r in records if r.type == TYPE_A] == ["192.168.1.40"]

    def test_ptr_outside_answer_section_ignored(self):
        out = DNSOutgoing(_FLAGS_QR_RESPONSE | _FLAGS_AA, multicast=True)
        out.add_additional_answer(DNSPointer("_shelly._tcp.local.", _TYPE_PTR, _CLASS_IN, 120, INSTANCE))
        assert parse_records(out.packets()[0]) == []

    def test_queries_yield_no_records(self):
        assert parse_records(build_ptr_query(SERVICE)) == []

    def test_garbage_yields_no_records(self):
        assert parse_records(b"\x00\x01garbage") == []


class TestDiscoveryListener:

    def make_listener(self):
        candidates = []
        session = DiscoverySession(SERVICE)
        return DiscoveryListener(session, candidates.append), candidates

    def test_single_packet_with_both_records(self):
        listener, candidates = self.make_listener()
        listener.datagram_received(response_packet(INSTANCE, "192.168.1.40"), ("192.168.1.40", 5353))
        assert candidates == [Candidate("shellywalldimmer-b0b21c12d4e8", "192.168.1.40")]

    def test_records_split_across_packets(self):
        listener, candidates = self.make_listener()
        listener.datagram_received(response_packet(address="192.168.1.40"), ("192.168.1.40", 5353))
        assert candidates == []
        listener.datagram_received(response_packet(INSTANCE), ("192.168.1.40", 5353))
        assert candidates == [Candidate("shellywalldimmer-b0b21c12d4e8", "192.168.1.40")]

    def test_last_a_record_in_packet_wins(self):
        listener, candidates = self.make_listener()
        packet = response_packet(INSTANCE, ["192.168.1.40", "192.168.1.41"])
        listener.datagram_received(packet, ("192.168.1.41", 5353))
        assert [c.ip_address for c in candidates] == ["192.168.1.41"]

    def test_answer_section_address_does_not_complete_pair(self):
        listener, candidates = self.make_listener()
        listener.datagram_received(response_packet(INSTANCE, answer_addresses=["10.0.0.9"]), ("10.0.0.9", 5353))
        assert candidates == []
        assert listener.session.pending_address is None

    def test_bound_session_ignores_packets(self):
        listener, candidates = self.make_listener()
        listener.session.claim_binding()
        listener.datagram_received(response_packet(INSTANCE, "192.168.1.40"), ("192.168.1.40", 5353))
        assert candidates == []

    @pytest.mark.asyncio
    async def test_start_sends_query_and_stop_is_idempotent(self, monkeypatch):
        listener, _ = self.make_listener()
        sock = MagicMock()
        transport = MagicMock()
        monkeypatch.setattr(listener, "create_socket", lambda: sock)
        loop = asyncio.get_running_loop()
        monkeypatch.setattr(loop, "create_datagram_endpoint", AsyncMock(return_value=(transport, None)))

        await listener.start()

        sock.sendto.assert_called_once_with(build_ptr_query(SERVICE), (MDNS_ADDRESS, MDNS_PORT))
        assert listener.running

        listener.stop()
        listener.stop()
        transport.close.assert_called_once()
        assert not listener.running

    @pytest.mark.asyncio
    async def test_send_failure_raises_query_send_error(self, monkeypatch):
        listener, candidates = self.make_listener()
        sock = MagicMock()
        sock.sendto.side_effect = OSError(101, "Network is unreachable")
        monkeypatch.setattr(listener, "create_socket", lambda: sock)

        with pytest.raises(QuerySendError):
            await listener.start()

        sock.close.assert_called_once()
        assert not listener.running
        assert candidates == []

    @pytest.mark.asyncio
    async def test_socket_failure_raises_query_send_error(self, monkeypatch):
        listener, _ = self.make_listener()

        def refuse():
            raise OSError(98, "Address already in use")

        monkeypatch.setattr(listener, "create_socket", refuse)
        with pytest.raises(QuerySendError):
            await listener.start()
