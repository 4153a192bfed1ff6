class IRXRError(Exception):
    pass


class MalformedAddressError(IRXRError, ValueError):
    """Raised when an IPv4 address or subnet mask cannot be parsed."""


class DiscoveryDecodeError(IRXRError):
    """Raised when a discovery datagram is not a valid SimPub announcement."""


class NotConnectedError(IRXRError):
    """Raised when a request is issued before the service channel is connected."""


class RequestTimeout(IRXRError, TimeoutError):
    """Raised when a service reply does not arrive before the deadline."""
