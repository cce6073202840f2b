from unittest import mock

from django.test import SimpleTestCase, override_settings
from kafka.errors import KafkaError

from apps.common.events import EventPayload, EventPublisherFactory
from apps.common.events.kafka_publisher import KafkaEventPublisher
from apps.common.events.memory_publisher import MemoryEventPublisher
from apps.common.kafka.config import TASK_EVENTS_TOPIC, bootstrap_servers
from apps.tasks.producer import TaskEventType, publish_task_event


class EventPublisherFactoryTest(SimpleTestCase):
    """Test publisher selection from settings"""

    def tearDown(self):
        EventPublisherFactory.reset_publisher()

    def test_memory_publisher_in_tests(self):
        EventPublisherFactory.reset_publisher()

        publisher = EventPublisherFactory.get_publisher()

        self.assertIsInstance(publisher, MemoryEventPublisher)
        self.assertIs(EventPublisherFactory.get_publisher(), publisher)

    @override_settings(EVENT_PUBLISHER_TYPE="carrier-pigeon")
    def test_unknown_type(self):
        EventPublisherFactory.reset_publisher()

        with self.assertRaises(ValueError):
            EventPublisherFactory.get_publisher()


class EventPayloadTest(SimpleTestCase):
    """Test the event envelope"""

    def test_key_follows_task(self):
        self.assertEqual(EventPayload("task_updated", 1, data={"task_id": 12}).key, "12")
        self.assertIsNone(EventPayload("user_seen", 1).key)

    def test_to_dict(self):
        event = EventPayload("task_created", 3, metadata=None).to_dict()

        self.assertEqual(event["schema_version"], 1)
        self.assertEqual((event["data"], event["metadata"]), ({}, {}))
        self.assertTrue(event["timestamp"].endswith("+00:00"))


class MemoryPublisherTest(SimpleTestCase):
    """Test the in-memory publisher used by the test suite"""

    def test_publish_and_clear(self):
        publisher = MemoryEventPublisher()

        publisher.publish("topic", EventPayload("task_created", 1, data={"task_id": 5}), key="5")

        events = publisher.get_events("topic")
        self.assertEqual(events[0]["data"], {"task_id": 5})
        self.assertEqual(events[0]["key"], "5")
        self.assertEqual(publisher.event_types("topic"), ["task_created"])
        publisher.clear_events("topic")
        self.assertEqual(publisher.get_events("topic"), [])


class PublishTaskEventTest(SimpleTestCase):
    """Test that publishing never breaks the caller"""

    def setUp(self):
        EventPublisherFactory.reset_publisher()

    def tearDown(self):
        EventPublisherFactory.reset_publisher()

    def test_keyed_by_task(self):
        self.assertTrue(publish_task_event(TaskEventType.TASK_UPDATED, 3, {"task_id": 42}))

        event = EventPublisherFactory.get_publisher().get_events(TASK_EVENTS_TOPIC)[0]
        self.assertEqual(event["key"], "42")
        self.assertEqual(event["user_id"], 3)

    def test_publisher_failure_returns_false(self):
        with mock.patch.object(EventPublisherFactory, "get_publisher", side_effect=RuntimeError("down")):
            with self.assertLogs("apps.tasks.producer.events", level="ERROR"):
                self.assertFalse(publish_task_event(TaskEventType.TASK_DELETED, 1, {"task_id": 1}))


class KafkaPublisherTest(SimpleTestCase):
    """Test the Kafka publisher against a mocked producer"""

    @mock.patch("apps.common.events.kafka_publisher.KafkaConnection")
    def test_send(self, connection):
        producer = connection.get_producer.return_value
        publisher = KafkaEventPublisher()

        ok = publisher.publish(TASK_EVENTS_TOPIC, EventPayload("task_created", 1), key="7")

        self.assertTrue(ok)
        producer.send.assert_called_once()
        self.assertEqual(producer.send.call_args.kwargs["key"], "7")
        producer.send.return_value.get.assert_called_once_with(timeout=10)

    @mock.patch("apps.common.events.kafka_publisher.KafkaConnection")
    def test_send_failure(self, connection):
        connection.get_producer.return_value.send.side_effect = KafkaError("broker down")

        with self.assertLogs("apps.common.events.kafka_publisher", level="ERROR"):
            ok = KafkaEventPublisher().publish(TASK_EVENTS_TOPIC, EventPayload("task_created", 1))

        self.assertFalse(ok)

    @mock.patch("apps.common.events.kafka_publisher.KafkaConnection")
    def test_no_producer(self, connection):
        connection.get_producer.return_value = None

        self.assertFalse(KafkaEventPublisher().publish(TASK_EVENTS_TOPIC, EventPayload("x", None)))

    @override_settings(KAFKA_BOOTSTRAP_SERVERS="kafka-1:9092, kafka-2:9092,")
    def test_bootstrap_servers(self):
        self.assertEqual(bootstrap_servers(), ["kafka-1:9092", "kafka-2:9092"])
