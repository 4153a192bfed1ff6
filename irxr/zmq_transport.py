from typing import Optional, Tuple
import time
import zmq
from loguru import logger

from .transport import Channel, TransportFactory


class ZmqChannel(Channel):
    """
    A single pyzmq socket behind the Channel interface.

    - Sockets are created with LINGER=0 so teardown never waits on peers.
    - The bound / connected endpoint is remembered, so unbind() and
      disconnect() act on what was actually used even if the server's
      address has since changed.
    - bind() resolves wildcard ports ("tcp://127.0.0.1:*") through
      LAST_ENDPOINT before storing it.
    """

    def __init__(self, ctx: zmq.Context, kind: int):
        self._ctx = ctx
        self._kind = kind
        self._sock = self._new_socket()
        self._bound: Optional[str] = None
        self._connected: Optional[str] = None
        self._subscribed = False

    def _new_socket(self) -> zmq.Socket:
        s = self._ctx.socket(self._kind)
        s.setsockopt(zmq.LINGER, 0)
        return s

    @property
    def bound(self) -> Optional[str]:
        return self._bound

    @property
    def connected(self) -> Optional[str]:
        return self._connected

    def bind(self, endpoint: str, retries: int = 10) -> None:
        # a just-unbound port may still be held by the I/O thread for a moment
        for attempt in range(retries):
            try:
                self._sock.bind(endpoint)
                break
            except zmq.ZMQError as ex:
                if ex.errno != zmq.EADDRINUSE or attempt == retries - 1:
                    raise
                time.sleep(0.05)
        last = self._sock.getsockopt(zmq.LAST_ENDPOINT)
        self._bound = last.decode("utf-8") if last else endpoint

    def unbind(self) -> None:
        if not self._bound:
            return
        try:
            self._sock.unbind(self._bound)
        except zmq.ZMQError as ex:
            # endpoint already gone (interface dropped, context shutting down)
            logger.debug(f"[IRXR/ZMQ] unbind {self._bound}: {ex}")
        self._bound = None

    def connect(self, endpoint: str) -> None:
        self._sock.connect(endpoint)
        self._connected = endpoint

    def disconnect(self) -> None:
        if not self._connected:
            return
        try:
            self._sock.disconnect(self._connected)
        except zmq.ZMQError as ex:
            logger.debug(f"[IRXR/ZMQ] disconnect {self._connected}: {ex}")
        self._connected = None

    def subscribe_all(self) -> None:
        self._sock.setsockopt(zmq.SUBSCRIBE, b"")
        self._subscribed = True

    def send(self, frame: bytes, more: bool = False) -> None:
        self._sock.send(frame, zmq.SNDMORE if more else 0)

    def try_receive(self) -> Optional[bytes]:
        try:
            return self._sock.recv(flags=zmq.NOBLOCK)
        except zmq.Again:
            return None

    def receive(self, timeout_s: Optional[float] = None) -> Tuple[bytes, bool]:
        if timeout_s is not None:
            if not self._sock.poll(int(timeout_s * 1000), zmq.POLLIN):
                raise TimeoutError(f"no frame within {timeout_s}s")
        frame = self._sock.recv()
        return frame, bool(self._sock.getsockopt(zmq.RCVMORE))

    def reset(self) -> None:
        # a REQ socket stuck waiting for a reply cannot send again; swap it out
        endpoint = self._connected
        self._sock.close(0)
        self._sock = self._new_socket()
        self._bound = None
        self._connected = None
        if self._subscribed:
            self.subscribe_all()
        if endpoint:
            self.connect(endpoint)

    def close(self) -> None:
        if not self._sock.closed:
            self._sock.close(0)
        self._bound = None
        self._connected = None


class ZmqTransportFactory(TransportFactory):
    """
    Owns a dedicated zmq.Context (not Context.instance()) so that term()
    after closing the client's sockets cannot affect other zmq users
    in the process.
    """

    def __init__(self, ctx: Optional[zmq.Context] = None):
        self._ctx = ctx or zmq.Context()

    @property
    def context(self) -> zmq.Context:
        return self._ctx

    def publisher(self) -> ZmqChannel:
        return ZmqChannel(self._ctx, zmq.PUB)

    def subscriber(self) -> ZmqChannel:
        return ZmqChannel(self._ctx, zmq.SUB)

    def requester(self) -> ZmqChannel:
        return ZmqChannel(self._ctx, zmq.REQ)

    def responder(self) -> ZmqChannel:
        return ZmqChannel(self._ctx, zmq.REP)

    def term(self) -> None:
        if not self._ctx.closed:
            self._ctx.term()
