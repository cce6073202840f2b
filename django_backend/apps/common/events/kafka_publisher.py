import logging

from django.conf import settings
from kafka.errors import KafkaError

from apps.common.kafka.config import KafkaConnection
from .base import EventPayload, EventPublisher

logger = logging.getLogger(__name__)


class KafkaEventPublisher(EventPublisher):
    """Synchronous send: the call returns once the broker acknowledged the event."""

    def __init__(self):
        self.producer = KafkaConnection.get_producer()

    def publish(self, topic: str, event: EventPayload, key: str = None) -> bool:
        if self.producer is None:
            logger.warning(f"No Kafka producer, {event.event_type} not published")
            return False

        key = key or event.key
        try:
            metadata = self.producer.send(topic, value=event.to_dict(), key=key).get(
                timeout=getattr(settings, "KAFKA_SEND_TIMEOUT", 10)
            )
        except KafkaError as e:
            logger.error(f"Publishing {event.event_type} (key={key}) to {topic} failed: {e}")
            return False
        logger.info(f"{event.event_type} (key={key}) -> {topic}[{metadata.partition}]@{metadata.offset}")
        return True

    def close(self):
        KafkaConnection.close_producer()
