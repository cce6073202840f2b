"""
Event envelope and publisher selection.

Events describe changes to tasks after they are committed. Each envelope
carries the acting user and a ``data`` dict whose ``task_id`` doubles as the
partition key, so one task's events stay ordered for a consumer.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from django.conf import settings
from django.utils.module_loading import import_string

SCHEMA_VERSION = 1

PUBLISHERS = {
    "kafka": "apps.common.events.kafka_publisher.KafkaEventPublisher",
    "memory": "apps.common.events.memory_publisher.MemoryEventPublisher",
}


def _utcnow():
    return datetime.now(timezone.utc)


@dataclass
class EventPayload:
    event_type: str
    user_id: Optional[int]
    data: Dict[str, Any] = None
    metadata: Dict[str, Any] = None
    timestamp: datetime = field(default_factory=_utcnow)

    def __post_init__(self):
        self.data = self.data or {}
        self.metadata = self.metadata or {}

    @property
    def key(self) -> Optional[str]:
        task_id = self.data.get("task_id")
        return str(task_id) if task_id is not None else None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event_type": self.event_type,
            "schema_version": SCHEMA_VERSION,
            "user_id": self.user_id,
            "timestamp": self.timestamp.isoformat(),
            "data": self.data,
            "metadata": self.metadata,
        }


class EventPublisher(ABC):
    @abstractmethod
    def publish(self, topic: str, event: EventPayload, key: str = None) -> bool:
        """Send ``event`` to ``topic``; return False when it was not delivered."""

    @abstractmethod
    def close(self):
        pass


class EventPublisherFactory:
    """One publisher per process, chosen by ``settings.EVENT_PUBLISHER_TYPE``."""

    _publisher = None

    @classmethod
    def get_publisher(cls) -> EventPublisher:
        if cls._publisher is None:
            publisher_type = getattr(settings, "EVENT_PUBLISHER_TYPE", "kafka")
            try:
                path = PUBLISHERS[publisher_type]
            except KeyError:
                raise ValueError(f"Unknown event publisher type: {publisher_type}") from None
            cls._publisher = import_string(path)()
        return cls._publisher

    @classmethod
    def reset_publisher(cls):
        if cls._publisher is not None:
            cls._publisher.close()
            cls._publisher = None
