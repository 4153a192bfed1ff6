"""Fakes shared by the unit tests: channels, transport, discovery socket, clock."""

from __future__ import annotations

import json
from collections import deque
from typing import Callable, List, Optional, Tuple

import pytest

from irxr.client import NetClient
from irxr.transport import Channel, TransportFactory


class FakeChannel(Channel):
    def __init__(self, role: str, journal: List[str]):
        self.role = role
        self.journal = journal
        self._bound: Optional[str] = None
        self._connected: Optional[str] = None
        self.subscribed = False
        self.sent: List[bytes] = []
        self.inbox: deque = deque()
        self.replies: deque = deque()
        self.on_send: Optional[Callable[[bytes], List[bytes]]] = None
        self.resets = 0
        self.closed = False
        self.bind_count = 0
        self.connect_count = 0

    @property
    def bound(self):
        return self._bound

    @property
    def connected(self):
        return self._connected

    def bind(self, endpoint):
        self.bind_count += 1
        self._bound = endpoint
        self.journal.append(f"{self.role}.bind {endpoint}")

    def unbind(self):
        if self._bound:
            self.journal.append(f"{self.role}.unbind {self._bound}")
        self._bound = None

    def connect(self, endpoint):
        self.connect_count += 1
        self._connected = endpoint
        self.journal.append(f"{self.role}.connect {endpoint}")

    def disconnect(self):
        if self._connected:
            self.journal.append(f"{self.role}.disconnect {self._connected}")
        self._connected = None

    def subscribe_all(self):
        self.subscribed = True

    def send(self, frame, more=False):
        self.sent.append(frame)
        self.journal.append(f"{self.role}.send {frame.decode('utf-8', 'replace')}")
        if self.on_send is not None:
            frames = self.on_send(frame)
            for i, f in enumerate(frames):
                self.replies.append((f, i < len(frames) - 1))

    def try_receive(self):
        return self.inbox.popleft() if self.inbox else None

    def receive(self, timeout_s=None) -> Tuple[bytes, bool]:
        if self.replies:
            return self.replies.popleft()
        if timeout_s is None:
            raise AssertionError("receive() would block forever")
        raise TimeoutError(f"no frame within {timeout_s}s")

    def reset(self):
        self.resets += 1
        endpoint = self._connected
        self.replies.clear()
        self._connected = None
        if endpoint:
            self.connect(endpoint)

    def close(self):
        self.closed = True
        self.journal.append(f"{self.role}.close")


class FakeTransport(TransportFactory):
    def __init__(self, journal: List[str]):
        self.journal = journal
        self.pub = FakeChannel("pub", journal)
        self.sub = FakeChannel("sub", journal)
        self.req = FakeChannel("req", journal)
        self.rep = FakeChannel("rep", journal)
        self.terminated = False

    def publisher(self): return self.pub
    def subscriber(self): return self.sub
    def requester(self): return self.req
    def responder(self): return self.rep

    def term(self):
        self.terminated = True
        self.journal.append("transport.term")


class FakeDiscoverySocket:
    def __init__(self, journal: List[str]):
        self.journal = journal
        self.pending: deque = deque()
        self.closed = False

    def push(self, data: bytes, ip: str = "192.168.1.10") -> None:
        self.pending.append((data, ip))

    def announce(self, ip: str = "192.168.1.10", name: str = "srv", services=("Register",), topics=()) -> None:
        body = json.dumps({"name": name, "ip": "(overwritten)", "topics": list(topics), "services": list(services)})
        self.push(f"SimPub:{body}".encode("utf-8"), ip)

    def try_receive(self):
        return self.pending.popleft() if self.pending else None

    def close(self):
        self.closed = True
        self.journal.append("discovery.close")


class FakeClock:
    def __init__(self, now: float = 100.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, dt: float) -> None:
        self.now += dt


@pytest.fixture
def journal() -> List[str]:
    return []


@pytest.fixture
def transport(journal):
    t = FakeTransport(journal)
    t.req.on_send = lambda frame: [b"OK"]
    return t


@pytest.fixture
def disco(journal):
    return FakeDiscoverySocket(journal)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def client(disco, transport, clock):
    return NetClient(
        discovery=disco,
        transport=transport,
        host="unit-client",
        clock=clock,
        local_addresses=["10.0.0.7", "192.168.1.42"],
    )


@pytest.fixture
def make_channel(journal):
    return lambda role: FakeChannel(role, journal)
