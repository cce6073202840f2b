import json
import logging

from django.conf import settings
from kafka import KafkaProducer
from kafka.errors import KafkaError

logger = logging.getLogger(__name__)

TASK_EVENTS_TOPIC = "task-events"


def bootstrap_servers():
    return [s.strip() for s in settings.KAFKA_BOOTSTRAP_SERVERS.split(",") if s.strip()]


def encode_value(value):
    # timestamps and decimals in event data go out as strings
    return json.dumps(value, default=str).encode("utf-8")


def encode_key(key):
    return key.encode("utf-8") if key else None


class KafkaConnection:
    """Lazily created producer shared by the process; stays None while no broker answers."""

    _producer = None

    @classmethod
    def get_producer(cls):
        if cls._producer is None:
            servers = bootstrap_servers()
            try:
                cls._producer = KafkaProducer(
                    bootstrap_servers=servers,
                    client_id=getattr(settings, "KAFKA_CLIENT_ID", "taskflow-api"),
                    value_serializer=encode_value,
                    key_serializer=encode_key,
                    acks="all",
                    retries=3,
                    retry_backoff_ms=300,
                    request_timeout_ms=30000,
                )
            except KafkaError as e:
                logger.error(f"Kafka producer for {servers} unavailable: {e}")
                return None
            logger.info(f"Kafka producer connected to {servers}")
        return cls._producer

    @classmethod
    def close_producer(cls):
        if cls._producer is not None:
            cls._producer.close()
            cls._producer = None
