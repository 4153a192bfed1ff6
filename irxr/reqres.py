"""
Blocking service calls to the server.

    reply = reqres.request_string("Echo", "hello")

A request sends one ``"<service>:<body>"`` frame and waits for the reply,
joining continuation frames in arrival order.  With ``timeout_s=None`` (the
default) the wait has no bound: an unresponsive server stalls the caller,
and through it the whole tick.  Passing a deadline turns that into a
``RequestTimeout`` and rebuilds the request socket, since a REQ socket that
never saw its reply refuses to send again.
"""
from __future__ import annotations
import time
from typing import List, Optional

from loguru import logger

from .errors import NotConnectedError, RequestTimeout
from .transport import Channel, tcp


class ReqResChannel:
    def __init__(self, requester: Channel, timeout_s: Optional[float] = None):
        self.requester = requester
        self.timeout_s = timeout_s

    @property
    def connected(self) -> bool:
        return self.requester.connected is not None

    def connect(self, ip: str, port: int) -> None:
        endpoint = tcp(ip, port)
        if self.requester.connected == endpoint:
            return
        if self.requester.connected:
            self.requester.disconnect()
        self.requester.connect(endpoint)
        logger.info(f"[IRXR/ReqRes] starting service connection to {endpoint}")

    def disconnect(self) -> None:
        self.requester.disconnect()

    def _call(self, frame: bytes, timeout_s: Optional[float]) -> List[bytes]:
        if not self.connected:
            raise NotConnectedError("service channel is not connected")
        timeout_s = self.timeout_s if timeout_s is None else timeout_s
        deadline = None if timeout_s is None else time.monotonic() + timeout_s
        self.requester.send(frame)
        parts: List[bytes] = []
        try:
            more = True
            while more:
                remaining = None if deadline is None else max(0.0, deadline - time.monotonic())
                part, more = self.requester.receive(remaining)
                parts.append(part)
        except TimeoutError as ex:
            logger.warning(f"[IRXR/ReqRes] no reply within {timeout_s}s, resetting request socket")
            self.requester.reset()
            raise RequestTimeout(str(ex)) from ex
        return parts

    def request_bytes(self, service: str, body: bytes = b"", timeout_s: Optional[float] = None) -> bytes:
        return b"".join(self._call(service.encode("utf-8") + b":" + body, timeout_s))

    def request_string(self, service: str, body: str = "", timeout_s: Optional[float] = None) -> str:
        parts = self._call(f"{service}:{body}".encode("utf-8"), timeout_s)
        return b"".join(parts).decode("utf-8")
