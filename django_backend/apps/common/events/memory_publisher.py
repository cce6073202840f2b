import logging
from collections import defaultdict

from .base import EventPayload, EventPublisher

logger = logging.getLogger(__name__)


class MemoryEventPublisher(EventPublisher):
    """Records events per topic instead of sending them. Selected by the test settings."""

    def __init__(self):
        self.events = defaultdict(list)

    def publish(self, topic: str, event: EventPayload, key: str = None) -> bool:
        record = event.to_dict()
        record["key"] = key or event.key
        self.events[topic].append(record)
        logger.debug(f"Recorded {event.event_type} on {topic}")
        return True

    def get_events(self, topic):
        return list(self.events.get(topic, ()))

    def event_types(self, topic):
        return [record["event_type"] for record in self.get_events(topic)]

    def clear_events(self, topic=None):
        if topic is None:
            self.events.clear()
        else:
            self.events.pop(topic, None)

    def close(self):
        self.clear_events()
