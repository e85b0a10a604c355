"""
Discovery data structures and models
Includes the record correlation state machine and the binding claim
"""

import threading
from dataclasses import dataclass, field, asdict, replace
from typing import Any, Dict, FrozenSet, Iterable, Optional, Tuple

TYPE_A = "A"
TYPE_PTR = "PTR"


@dataclass(frozen=True)
class MdnsRecord:
    """A PTR or A record taken from an mDNS response"""
    type: str
    name: str
    data: str


@dataclass(frozen=True)
class Candidate:
    """Instance id + address pair awaiting confirmation by the info probe"""
    instance_id: str
    ip_address: str


@dataclass
class DeviceRecord:
    """A device confirmed by Shelly.GetDeviceInfo"""
    name: str
    id: str
    ip_address: str
    model: str
    mac: Optional[str] = None
    gen: Optional[int] = None
    fw_id: Optional[str] = None
    ver: Optional[str] = None
    app: Optional[str] = None
    auth_en: Optional[bool] = None

    def to_context(self) -> Dict[str, Any]:
        return asdict(self)


def normalize_service_name(name: str) -> str:
    return name.rstrip('.').lower()


@dataclass(frozen=True)
class CorrelationState:
    """
    Pending PTR/A halves of a candidate.
    Persists across packets since the two record types may arrive separately.
    """
    service_name: str
    pending_id: Optional[str] = None
    pending_address: Optional[str] = None
    emitted: FrozenSet[Candidate] = frozenset()


def _apply(state: CorrelationState, record: MdnsRecord) -> CorrelationState:
    if record.type == TYPE_PTR:
        if normalize_service_name(record.name) != normalize_service_name(state.service_name) or not record.data:
            return state
        return replace(state, pending_id=record.data.split('.', 1)[0])
    if record.type == TYPE_A and record.data:
        return replace(state, pending_address=record.data)
    return state


def on_packet(state: CorrelationState, records: Iterable[MdnsRecord]) -> Tuple[CorrelationState, Optional[Candidate]]:
    """
    Pure transition: fold every record of one packet into the state, then
    check once for a complete pair. The last A record of a packet wins.
    """
    for record in records:
        state = _apply(state, record)

    if state.pending_id is None or state.pending_address is None:
        return state, None

    candidate = Candidate(state.pending_id, state.pending_address)
    if candidate in state.emitted:
        return state, None
    return replace(state, emitted=state.emitted | {candidate}), candidate


def on_record(state: CorrelationState, record: MdnsRecord) -> Tuple[CorrelationState, Optional[Candidate]]:
    """A packet holding a single record"""
    return on_packet(state, (record,))


class BindingClaim:
    """Compare-and-set flag granting binding rights exactly once"""

    def __init__(self):
        self._lock = threading.Lock()
        self._claimed = False

    @property
    def claimed(self) -> bool:
        return self._claimed

    def try_claim(self) -> bool:
        with self._lock:
            if self._claimed:
                return False
            self._claimed = True
            return True


@dataclass
class DiscoverySession:
    """State shared by the listener and coordinator for one discovery pass"""
    service_name: str
    state: CorrelationState = field(init=False)
    claim: BindingClaim = field(default_factory=BindingClaim)

    def __post_init__(self):
        self.state = CorrelationState(self.service_name)

    @property
    def pending_id(self) -> Optional[str]:
        return self.state.pending_id

    @property
    def pending_address(self) -> Optional[str]:
        return self.state.pending_address

    @property
    def bound(self) -> bool:
        return self.claim.claimed

    def feed_packet(self, records: Iterable[MdnsRecord]) -> Optional[Candidate]:
        """Apply the records of one packet; inert once the session is bound"""
        if self.bound:
            return None
        self.state, candidate = on_packet(self.state, records)
        return candidate

    def feed(self, record: MdnsRecord) -> Optional[Candidate]:
        return self.feed_packet((record,))

    def claim_binding(self) -> bool:
        return self.claim.try_claim()
