"""
Discovery module for Shelly dimmer discovery and binding
"""

from .manager import BindingCoordinator, Binding
from .models import DeviceRecord, DiscoverySession, Candidate, MdnsRecord
from .listener import DiscoveryListener, QuerySendError
from .probe import DeviceInfoProbe, ProbeError

__all__ = ['BindingCoordinator', 'Binding', 'DeviceRecord', 'DiscoverySession', 'Candidate', 'MdnsRecord',
           'DiscoveryListener', 'QuerySendError', 'DeviceInfoProbe', 'ProbeError']
