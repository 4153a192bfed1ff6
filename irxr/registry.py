from __future__ import annotations
import copy
from typing import Callable, Dict, Optional

from loguru import logger

from .config import REGISTER_SERVICE
from .info import HostInfo
from .reqres import ReqResChannel

ServiceHandler = Callable[[str], str]


class Registry:
    """
    What this client advertises: its identity, topics and services.

    The server learns about it through a ``Register`` request carrying
    LocalInfo as JSON, sent on every connect and whenever a topic is added.
    """

    def __init__(self, local: HostInfo, reqres: ReqResChannel, is_connected: Callable[[], bool]):
        self.local = local
        self.reqres = reqres
        self._is_connected = is_connected
        self.services: Dict[str, ServiceHandler] = {}

    @property
    def local_info(self) -> HostInfo:
        return copy.deepcopy(self.local)

    def register_info_to_server(self) -> Optional[str]:
        if not self._is_connected():
            return None
        return self.reqres.request_string(REGISTER_SERVICE, self.local.to_json())

    def create_topic(self, topic: str) -> None:
        if not self.local.add_topic(topic):
            logger.warning(f"[IRXR/Registry] topic {topic} already exists")
        self.register_info_to_server()

    def register_service_callback(self, service: str, callback: ServiceHandler) -> None:
        # inbound service calls are not served by this client; handlers are kept for the host
        self.services[service] = callback
