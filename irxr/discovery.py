"""UDP listener for SimPub server announcements.

A server broadcasts ``SimPub:<json>`` on a well-known port, where the JSON
body is ``{"name": ..., "ip": ..., "topics": [...], "services": [...]}``.
The ``ip`` field is not trusted; the datagram's source address replaces it.

The listener is polled, never blocks, and reads at most one datagram per
call.  Deciding whether an announcement starts a connection is left to
:class:`irxr.client.NetClient`.
"""

from __future__ import annotations

import socket
from typing import Optional, Tuple

from loguru import logger

from .config import DISCOVERY_TAG, ServerPort
from .errors import DiscoveryDecodeError
from .info import HostInfo


class UdpDiscoverySocket:
    """Non-blocking UDP receiver bound to the discovery port."""

    def __init__(self, port: int = int(ServerPort.DISCOVERY), host: str = "", bufsize: int = 65535):
        self.port = port
        self.bufsize = bufsize
        self._sock: socket.socket | None = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        self._sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        self._sock.setsockopt(socket.SOL_SOCKET, socket.SO_BROADCAST, 1)
        if hasattr(socket, "SO_REUSEPORT"):
            try:
                self._sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEPORT, 1)
            except OSError:
                pass
        self._sock.bind((host, port))
        self._sock.setblocking(False)
        self.port = self._sock.getsockname()[1]

    def try_receive(self) -> Optional[Tuple[bytes, str]]:
        if self._sock is None:
            return None
        try:
            data, addr = self._sock.recvfrom(self.bufsize)
        except (BlockingIOError, InterruptedError):
            return None
        return data, addr[0]

    def close(self) -> None:
        if self._sock:
            self._sock.close()
            self._sock = None


def parse_announcement(data: bytes, sender_ip: str, tag: str = DISCOVERY_TAG) -> HostInfo:
    try:
        message = data.decode("utf-8")
    except UnicodeDecodeError as ex:
        raise DiscoveryDecodeError(f"announcement is not UTF-8: {ex}") from ex
    if not message.startswith(tag):
        raise DiscoveryDecodeError(f"missing {tag!r} tag")
    _tag, sep, body = message.partition(":")
    if not sep:
        raise DiscoveryDecodeError("missing ':' after tag")
    info = HostInfo.from_json(body)
    info.ip = sender_ip
    return info


class DiscoveryListener:
    """Polls a discovery socket and decodes one announcement per call."""

    def __init__(self, sock, tag: str = DISCOVERY_TAG):
        self.sock = sock
        self.tag = tag

    def poll(self) -> Optional[HostInfo]:
        received = self.sock.try_receive()
        if received is None:
            return None
        data, ip = received
        try:
            return parse_announcement(data, ip, self.tag)
        except DiscoveryDecodeError as ex:
            logger.debug(f"[IRXR/Discovery] dropped datagram from {ip}: {ex}")
            return None

    def close(self) -> None:
        self.sock.close()
