"""
Publish-only message bus used to reach devices.

The broker itself (MQTT in deployment) is an external collaborator; the
hub only depends on :class:`MessageBus`.  :class:`InMemoryMessageBus`
keeps every publish in-process and is what local runs and tests use.
"""

from __future__ import annotations

import json
import logging
import threading
from typing import Any, Protocol, Union

logger = logging.getLogger(__name__)

Payload = Union[dict[str, Any], str]


def integration_topic(device_uuid: str) -> str:
    return f"devices/{device_uuid}/integration"


class MessageBus(Protocol):
    def publish(self, topic: str, payload: Payload, qos: int = 0, retain: bool = False) -> None:
        ...


class InMemoryMessageBus:
    """Records published messages as ``(topic, encoded payload)`` pairs."""

    def __init__(self) -> None:
        self.published: list[tuple[str, str]] = []
        self._lock = threading.Lock()

    def publish(self, topic: str, payload: Payload, qos: int = 0, retain: bool = False) -> None:
        encoded = payload if isinstance(payload, str) else json.dumps(payload, default=str)
        with self._lock:
            self.published.append((topic, encoded))
        logger.debug("Published to %s (qos=%d retain=%s): %s", topic, qos, retain, encoded)

    def messages_for(self, topic: str) -> list[Any]:
        """Decoded payloads published to *topic*, oldest first."""
        with self._lock:
            raw = [p for t, p in self.published if t == topic]
        out = []
        for item in raw:
            try:
                out.append(json.loads(item))
            except json.JSONDecodeError:
                out.append(item)
        return out
