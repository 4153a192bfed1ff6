from __future__ import annotations
import json
from dataclasses import dataclass, field, asdict
from typing import Any, List

from .errors import DiscoveryDecodeError


@dataclass
class HostInfo:
    """
    Identity record exchanged with the server.

    The same shape describes the discovered server (decoded from an
    announcement) and this client (sent as the body of ``Register``).
    ``topics`` and ``services`` keep insertion order and never hold duplicates.
    """
    name: str = ""
    ip: str = ""
    topics: List[str] = field(default_factory=list)
    services: List[str] = field(default_factory=list)

    def add_topic(self, topic: str) -> bool:
        if topic in self.topics:
            return False
        self.topics.append(topic)
        return True

    def add_service(self, service: str) -> bool:
        if service in self.services:
            return False
        self.services.append(service)
        return True

    def to_dict(self) -> dict:
        return asdict(self)

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @classmethod
    def from_dict(cls, data: Any) -> "HostInfo":
        if not isinstance(data, dict):
            raise DiscoveryDecodeError(f"expected a JSON object, got {type(data).__name__}")
        topics = data.get("topics") or []
        services = data.get("services") or []
        if not isinstance(topics, list) or not isinstance(services, list):
            raise DiscoveryDecodeError("'topics' and 'services' must be lists")
        info = cls(name=str(data.get("name") or ""), ip=str(data.get("ip") or ""))
        for t in topics:
            info.add_topic(str(t))
        for s in services:
            info.add_service(str(s))
        return info

    @classmethod
    def from_json(cls, text: str) -> "HostInfo":
        try:
            data = json.loads(text)
        except ValueError as ex:
            raise DiscoveryDecodeError(f"invalid JSON body: {ex}") from ex
        except RecursionError as ex:
            # deeply nested arrays/objects exhaust the decoder's stack
            raise DiscoveryDecodeError("JSON body nested too deeply") from ex
        return cls.from_dict(data)
