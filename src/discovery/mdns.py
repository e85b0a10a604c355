"""
mDNS wire helpers built on zeroconf's DNS message classes
Only PTR answers and A additionals are of interest to discovery
"""

import ipaddress
import logging
from typing import List

from zeroconf import DNSAddress, DNSIncoming, DNSOutgoing, DNSPointer, DNSQuestion
from zeroconf.const import _CLASS_IN, _FLAGS_QR_QUERY, _TYPE_A, _TYPE_PTR

from .models import MdnsRecord, TYPE_A, TYPE_PTR

logger = logging.getLogger(__name__)

MDNS_ADDRESS = "224.0.0.251"
MDNS_PORT = 5353


def fqdn(name: str) -> str:
    """zeroconf names always carry the trailing root dot"""
    return name.rstrip('.') + '.'


def build_ptr_query(service_name: str) -> bytes:
    """Encode a single multicast PTR question for service_name"""
    out = DNSOutgoing(_FLAGS_QR_QUERY, multicast=True)
    out.add_question(DNSQuestion(fqdn(service_name), _TYPE_PTR, _CLASS_IN))
    return out.packets()[0]


def parse_records(data: bytes) -> List[MdnsRecord]:
    """
    Decode a datagram and return PTR records from the answer section and
    A records from the additional section, in packet order.
    Queries and undecodable packets yield nothing.
    """
    message = DNSIncoming(data)
    if not message.valid or not message.is_response():
        return []

    # answers() concatenates all three sections and leaves out records it
    # could not decode, so a record at index i sat at position i..i+skipped
    decoded = message.answers()
    skipped = message.num_answers + message.num_authorities + message.num_additionals - len(decoded)
    additional_start = message.num_answers + message.num_authorities

    records = []
    for index, record in enumerate(decoded):
        in_answers = index + skipped < message.num_answers
        in_additionals = index >= additional_start

        if isinstance(record, DNSPointer) and in_answers:
            records.append(MdnsRecord(TYPE_PTR, record.name, record.alias))
        elif isinstance(record, DNSAddress) and record.type == _TYPE_A and in_additionals:
            try:
                address = str(ipaddress.IPv4Address(record.address))
            except ipaddress.AddressValueError:
                logger.debug(f"Skipping malformed A record for {record.name}")
                continue
            records.append(MdnsRecord(TYPE_A, record.name, address))
    return records
