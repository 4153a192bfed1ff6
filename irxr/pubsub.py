from __future__ import annotations
from typing import Callable, Dict, Optional, Union

from loguru import logger

from .transport import Channel, tcp

TopicHandler = Callable[[str], None]


class PubSubChannel:
    """
    Publisher (bound locally) plus subscriber (connected to the server).

    The subscriber takes every topic; filtering happens here against the
    topic table.  spin() handles at most one frame per call, so a burst
    from the server is worked off across several ticks instead of stalling
    one of them.
    """

    def __init__(self, publisher: Channel, subscriber: Channel):
        self.publisher = publisher
        self.subscriber = subscriber
        self.topics: Dict[str, TopicHandler] = {}
        self._spinning = False

    @property
    def spinning(self) -> bool:
        return self._spinning

    # publisher
    def bind_publisher(self, ip: str, port: int) -> None:
        if self.publisher.bound:
            return
        self.publisher.bind(tcp(ip, port))
        logger.info(f"[IRXR/PubSub] publisher bound at {self.publisher.bound}")

    def unbind_publisher(self) -> None:
        self.publisher.unbind()

    def publish_bytes(self, topic: str, payload: bytes) -> bool:
        if not self.publisher.bound:
            logger.debug(f"[IRXR/PubSub] publisher not bound, dropping {topic!r}")
            return False
        self.publisher.send(topic.encode("utf-8") + b":" + payload)
        return True

    def publish_string(self, topic: str, payload: str) -> bool:
        return self.publish_bytes(topic, payload.encode("utf-8"))

    # subscriber
    def start_subscription(self, ip: str, port: int) -> None:
        self.stop_subscription()
        self.subscriber.connect(tcp(ip, port))
        self.subscriber.subscribe_all()
        self._spinning = True
        logger.info(f"[IRXR/PubSub] connected topic to {self.subscriber.connected}")

    def stop_subscription(self) -> int:
        """Disconnect and throw away anything already buffered. Returns the drop count."""
        drained = 0
        if self.subscriber.connected:
            self.subscriber.disconnect()
            while self.subscriber.try_receive() is not None:
                drained += 1
        self._spinning = False
        return drained

    def spin(self) -> bool:
        if not self._spinning:
            return False
        frame = self.subscriber.try_receive()
        if frame is None:
            return False
        self.dispatch(frame)
        return True

    def dispatch(self, frame: Union[bytes, str]) -> bool:
        if isinstance(frame, bytes):
            try:
                frame = frame.decode("utf-8")
            except UnicodeDecodeError:
                logger.debug("[IRXR/PubSub] dropped non UTF-8 frame")
                return False
        topic, sep, payload = frame.partition(":")
        if not sep:
            return False
        handler: Optional[TopicHandler] = self.topics.get(topic)
        if handler is None:
            return False
        handler(payload)
        return True

    # topic table
    def subscribe_topic(self, topic: str, callback: TopicHandler) -> None:
        self.topics[topic] = callback
        logger.info(f"[IRXR/PubSub] subscribe a new topic {topic}")

    def unsubscribe_topic(self, topic: str) -> None:
        self.topics.pop(topic, None)
