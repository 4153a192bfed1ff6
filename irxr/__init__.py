from .client import NetClient, ConnectionState, EventHook
from .info import HostInfo
from .zmq_transport import ZmqTransportFactory
from .errors import IRXRError, MalformedAddressError, DiscoveryDecodeError, NotConnectedError, RequestTimeout

__all__ = [
    "NetClient", "ConnectionState", "EventHook", "HostInfo", "ZmqTransportFactory",
    "IRXRError", "MalformedAddressError", "DiscoveryDecodeError", "NotConnectedError", "RequestTimeout",
]
