"""
Device module for Shelly Dimmer RPC control
"""

from .rpc_client import RpcClient, RpcError
from .controller import DeviceController, ControlSink, ServiceCommunicationError

__all__ = ['RpcClient', 'RpcError', 'DeviceController', 'ControlSink', 'ServiceCommunicationError']
