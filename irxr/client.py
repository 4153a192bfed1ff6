from __future__ import annotations
from enum import Enum
from typing import Any, Callable, Iterable, List, Mapping, Optional
import time

from loguru import logger

from .config import ServerPort, ClientPort, DEFAULT_HOST, DEFAULT_SUBNET_MASK, DEFAULT_TIMEOUT_S, resolve
from .errors import IRXRError
from .discovery import DiscoveryListener, UdpDiscoverySocket
from .info import HostInfo
from .pubsub import PubSubChannel, TopicHandler
from .registry import Registry, ServiceHandler
from .reqres import ReqResChannel
from .subnet import local_ip_in_subnet
from .transport import TransportFactory


class ConnectionState(Enum):
    IDLE = "idle"
    CONNECTED = "connected"


class EventHook:
    """Ordered list of callbacks fired with the client as the only argument."""

    def __init__(self, name: str):
        self.name = name
        self._callbacks: List[Callable[["NetClient"], None]] = []

    def add(self, cb: Callable[["NetClient"], None]) -> None:
        self._callbacks.append(cb)

    def remove(self, cb: Callable[["NetClient"], None]) -> None:
        if cb in self._callbacks:
            self._callbacks.remove(cb)

    def fire(self, client: "NetClient") -> None:
        for cb in list(self._callbacks):
            try:
                cb(client)
            except Exception as ex:
                logger.warning(f"[IRXR/Client] {self.name} hook {cb!r} failed: {ex}")

    def __len__(self) -> int:
        return len(self._callbacks)


class NetClient:
    """
    Discovers one SimPub server and keeps the four channels in step with it.

    Nothing runs in the background: the host calls tick() at a fixed rate.
    Each tick checks liveness, dispatches at most one topic message and reads
    at most one discovery datagram.  Any valid announcement refreshes the
    liveness clock; one that arrives after more than `timeout_s` of silence
    while IDLE also runs the connect sequence.
    """

    def __init__(
        self,
        discovery,
        transport: TransportFactory,
        host: str = DEFAULT_HOST,
        *,
        service_port: int = int(ServerPort.SERVICE),
        topic_port: int = int(ServerPort.TOPIC),
        client_topic_port: int = int(ClientPort.TOPIC),
        subnet_mask: str = DEFAULT_SUBNET_MASK,
        timeout_s: float = DEFAULT_TIMEOUT_S,
        request_timeout_s: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
        local_addresses: Optional[Iterable[str]] = None,
    ):
        self.host = host
        self.service_port = service_port
        self.topic_port = topic_port
        self.client_topic_port = client_topic_port
        self.subnet_mask = subnet_mask
        self.timeout_s = timeout_s
        self.clock = clock
        self._local_addresses = local_addresses

        self.transport = transport
        self.discovery = DiscoveryListener(discovery)
        self.pubsub = PubSubChannel(transport.publisher(), transport.subscriber())
        self.reqres = ReqResChannel(transport.requester(), timeout_s=request_timeout_s)
        # inbound service calls are not handled; the socket is owned for teardown only
        self._responder = transport.responder()

        self.state = ConnectionState.IDLE
        self.server: Optional[HostInfo] = None
        self.local = HostInfo(name=host)
        self.registry = Registry(self.local, self.reqres, lambda: self.connected)
        self.last_seen: Optional[float] = None
        self._closed = False

        self.on_discovered = EventHook("discovered")
        self.on_connected = EventHook("connected")
        self.on_disconnected = EventHook("disconnected")

    @classmethod
    def zmq(
        cls,
        host: str = DEFAULT_HOST,
        *,
        discovery_port: int = int(ServerPort.DISCOVERY),
        discovery_host: str = "",
        **kwargs: Any,
    ) -> "NetClient":
        from .zmq_transport import ZmqTransportFactory

        return cls(
            discovery=UdpDiscoverySocket(discovery_port, host=discovery_host),
            transport=ZmqTransportFactory(),
            host=host,
            **kwargs,
        )

    @classmethod
    def from_config(cls, cfg: Optional[Mapping[str, Any]] = None, **overrides: Any) -> "NetClient":
        c = resolve(cfg)
        c.pop("tick_hz")
        c.update(overrides)
        return cls.zmq(**c)

    @property
    def connected(self) -> bool:
        return self.state is ConnectionState.CONNECTED

    # lifecycle
    def tick(self) -> None:
        now = self.clock()
        if self.connected and self.last_seen is not None and now - self.last_seen > self.timeout_s:
            self._disconnect()
            return
        self.pubsub.spin()
        announcement = self.discovery.poll()
        if announcement is None:
            return
        fresh = self.last_seen is None or now - self.last_seen > self.timeout_s
        self.server = announcement
        if fresh and not self.connected and not self._connect(announcement):
            # leave last_seen alone so the next announcement retries
            return
        self.last_seen = now

    def _connect(self, server: HostInfo) -> bool:
        self.local.ip = local_ip_in_subnet(server.ip, self.subnet_mask, self._local_addresses)
        logger.info(f"[IRXR/Client] discovered server {server.name!r} at {server.ip} "
                    f"with local IP {self.local.ip}")
        try:
            self.reqres.connect(server.ip, self.service_port)
            self.on_discovered.fire(self)

            self.state = ConnectionState.CONNECTED
            self.pubsub.bind_publisher(self.local.ip, self.client_topic_port)
            try:
                self.registry.register_info_to_server()
            except IRXRError as ex:
                logger.warning(f"[IRXR/Client] registration failed: {ex}")
            self.pubsub.start_subscription(server.ip, self.topic_port)
        except Exception as ex:
            logger.error(f"[IRXR/Client] connect to {server.ip} failed: {ex}")
            self.state = ConnectionState.IDLE
            self._teardown()
            return False
        self.on_connected.fire(self)
        return True

    def _disconnect(self) -> None:
        logger.info("[IRXR/Client] disconnected")
        self.state = ConnectionState.IDLE
        self._teardown()
        self.on_disconnected.fire(self)

    def _teardown(self) -> None:
        self.pubsub.stop_subscription()
        self.pubsub.unbind_publisher()
        self.reqres.disconnect()

    def close(self) -> None:
        if self._closed:
            return
        if self.connected:
            self._disconnect()
        # discovery socket, then messaging sockets, then the shared transport
        self.discovery.close()
        for ch in (self.reqres.requester, self._responder, self.pubsub.subscriber, self.pubsub.publisher):
            ch.close()
        self.transport.term()
        self._closed = True

    stop = close

    def __enter__(self): return self
    def __exit__(self, exc_type, exc, tb): self.close()

    # pub/sub
    def subscribe_topic(self, topic: str, callback: TopicHandler) -> None:
        self.pubsub.subscribe_topic(topic, callback)

    def unsubscribe_topic(self, topic: str) -> None:
        self.pubsub.unsubscribe_topic(topic)

    def create_topic(self, topic: str) -> None:
        self.registry.create_topic(topic)

    def publish_string(self, topic: str, payload: str) -> bool:
        return self.pubsub.publish_string(topic, payload)

    def publish_bytes(self, topic: str, payload: bytes) -> bool:
        return self.pubsub.publish_bytes(topic, payload)

    # req/res
    def request_string(self, service: str, body: str = "", timeout_s: Optional[float] = None) -> str:
        return self.reqres.request_string(service, body, timeout_s)

    def request_bytes(self, service: str, body: bytes = b"", timeout_s: Optional[float] = None) -> bytes:
        return self.reqres.request_bytes(service, body, timeout_s)

    # registry
    def register_info_to_server(self) -> Optional[str]:
        return self.registry.register_info_to_server()

    def register_service_callback(self, service: str, callback: ServiceHandler) -> None:
        self.registry.register_service_callback(service, callback)

    @property
    def local_info(self) -> HostInfo:
        return self.registry.local_info

    def wait_for_server(self, timeout_s: float = 5.0, poll_s: float = 0.02) -> bool:
        """Tick until connected; for scripts that have no tick loop of their own."""
        deadline = time.monotonic() + timeout_s
        while time.monotonic() < deadline:
            self.tick()
            if self.connected:
                return True
            time.sleep(poll_s)
        return self.connected
