from __future__ import annotations
import signal, threading, time
from typing import Any, Callable, Dict, List, Optional

from loguru import logger

from .client import NetClient
from .config import DEFAULT_HOST, DEFAULT_TICK_HZ

TopicHandler = Callable[[str], None]


class IRXRDaemon:
    """
    Host loop for a NetClient: builds it, wires handlers, ticks it at a fixed rate.

    Usage:
        class PoseListener(IRXRDaemon):
            host = "pose-listener"
            topics = {"pose": lambda payload: print(payload)}

        if __name__ == "__main__":
            PoseListener().serve()
    """
    # simple attributes users set
    host: str = DEFAULT_HOST
    tick_hz: float = DEFAULT_TICK_HZ
    config: Optional[Dict[str, Any]] = None

    # payload-only handlers for server topics, and topics this host publishes
    topics: Dict[str, TopicHandler] = {}
    publish_topics: List[str] = []

    # optional hooks
    def on_start(self, client: NetClient) -> None: ...
    def on_connected(self, client: NetClient) -> None: ...
    def on_disconnected(self, client: NetClient) -> None: ...
    def on_tick(self, client: NetClient) -> None: ...
    def on_stop(self) -> None: ...

    def config_host(self) -> str: return (self.config or {}).get("host") or self.host
    def config_tick_hz(self) -> float: return float((self.config or {}).get("tick_hz") or self.tick_hz)

    # user-facing helpers
    def add_topic(self, topic: str, fn: TopicHandler) -> None:
        self.topics = {**self.topics, topic: fn}
        if hasattr(self, "client"):
            self.client.subscribe_topic(topic, fn)

    def build_client(self) -> NetClient:
        cfg = dict(self.config or {})
        cfg["host"] = self.config_host()
        cfg.pop("tick_hz", None)
        return NetClient.from_config(cfg)

    def serve(self, stop_evt: Optional[threading.Event] = None) -> None:
        if stop_evt is None:
            stop_evt = threading.Event()
            def _sig(_s, _f): stop_evt.set()
            signal.signal(signal.SIGINT, _sig)
            signal.signal(signal.SIGTERM, _sig)

        try:
            self.client = self.build_client()
        except Exception as ex:
            logger.error(f"[{self.__class__.__name__}] failed to start: {ex}")
            raise

        for topic, fn in self.topics.items():
            self.client.subscribe_topic(topic, fn)
        # advertised in the first Register, before any connection exists
        for topic in self.publish_topics:
            self.client.local.add_topic(topic)
        self.client.on_connected.add(self.on_connected)
        self.client.on_disconnected.add(self.on_disconnected)

        self.on_start(self.client)
        logger.info(f"[{self.__class__.__name__}] up: host={self.config_host()} tick={self.config_tick_hz()}Hz")
        period = 1.0 / self.config_tick_hz()
        try:
            while not stop_evt.is_set():
                started = time.monotonic()
                self.client.tick()
                self.on_tick(self.client)
                stop_evt.wait(max(0.0, period - (time.monotonic() - started)))
        finally:
            try:
                self.on_stop()
            finally:
                self.client.close()
                logger.info(f"[{self.__class__.__name__}] stopped")
