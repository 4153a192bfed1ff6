from __future__ import annotations
import abc
from typing import Optional, Tuple


def tcp(ip: str, port: int) -> str:
    return f"tcp://{ip}:{port}"


class Channel(abc.ABC):
    """
    One messaging socket, as the client sees it.

    The PUB/SUB/REQ/REP roles are all expressed through this surface so a
    platform can supply its own transport.  Endpoints are transport strings
    such as ``tcp://10.0.0.5:7722``.
    """

    @property
    @abc.abstractmethod
    def bound(self) -> Optional[str]: ...

    @property
    @abc.abstractmethod
    def connected(self) -> Optional[str]: ...

    @abc.abstractmethod
    def bind(self, endpoint: str) -> None: ...

    @abc.abstractmethod
    def unbind(self) -> None: ...

    @abc.abstractmethod
    def connect(self, endpoint: str) -> None: ...

    @abc.abstractmethod
    def disconnect(self) -> None: ...

    @abc.abstractmethod
    def subscribe_all(self) -> None: ...

    @abc.abstractmethod
    def send(self, frame: bytes, more: bool = False) -> None: ...

    @abc.abstractmethod
    def try_receive(self) -> Optional[bytes]:
        """Return one pending frame, or None without blocking."""

    @abc.abstractmethod
    def receive(self, timeout_s: Optional[float] = None) -> Tuple[bytes, bool]:
        """
        Block for one frame and report whether continuation frames follow.
        Raises TimeoutError if `timeout_s` elapses first.
        """

    @abc.abstractmethod
    def reset(self) -> None:
        """Replace the underlying socket, keeping the connected endpoint."""

    @abc.abstractmethod
    def close(self) -> None: ...


class TransportFactory(abc.ABC):
    """Creates the four client channels and owns any shared transport state."""

    @abc.abstractmethod
    def publisher(self) -> Channel: ...

    @abc.abstractmethod
    def subscriber(self) -> Channel: ...

    @abc.abstractmethod
    def requester(self) -> Channel: ...

    @abc.abstractmethod
    def responder(self) -> Channel: ...

    @abc.abstractmethod
    def term(self) -> None:
        """Release shared state; only valid after every channel is closed."""
