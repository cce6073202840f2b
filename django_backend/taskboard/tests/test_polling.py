from django.test import SimpleTestCase

from taskboard.api import TaskflowApi
from taskboard.polling import POLL_INTERVAL, NotificationPoller
from taskboard.storage import AuthSession, MemoryStorage

from .fakes import FakeTransport, ManualTimer, user_data

PAYLOAD = {
    "total": 2,
    "unread_count": 1,
    "notifications": [
        {"id": 2, "notification_type": "task_assigned", "message_text": "New task", "task": 4},
        {"id": 1, "notification_type": "general", "message_text": "Hello", "is_read": True},
    ],
}


class NotificationPollerTest(SimpleTestCase):
    """Test periodic notification refresh"""

    def setUp(self):
        ManualTimer.reset()
        self.transport = FakeTransport()
        self.transport.on("GET", "/users/7/notifications", payload=PAYLOAD)
        self.session = AuthSession(MemoryStorage())
        self.session.set_current_user(user_data(7))
        self.updates = []
        self.poller = NotificationPoller(
            TaskflowApi(self.transport, self.session),
            self.session,
            timer_factory=ManualTimer,
            on_update=lambda items, unread: self.updates.append(([n.id for n in items], unread)),
        )

    def test_start_polls_then_schedules(self):
        self.poller.start()

        self.assertEqual(self.updates, [([2, 1], 1)])
        self.assertEqual(self.poller.notifications[0].task_id, 4)
        timer = ManualTimer.created[0]
        self.assertEqual(timer.delay, POLL_INTERVAL)
        self.assertTrue(timer.daemon)

    def test_each_tick_reschedules(self):
        self.poller.start()

        ManualTimer.created[0].fire()
        ManualTimer.created[1].fire()

        self.assertEqual(len(self.updates), 3)
        self.assertEqual(len(ManualTimer.created), 3)

    def test_stop(self):
        self.poller.start()
        self.poller.stop()

        ManualTimer.fire_all()

        self.assertFalse(self.poller.running)
        self.assertEqual(len(self.updates), 1)

    def test_request_params(self):
        self.poller.poll()

        self.assertEqual(self.transport.calls[0][:2], ("GET", "/users/7/notifications"))

    def test_failure_keeps_last_state(self):
        self.poller.poll()
        self.transport.on("GET", "/users/7/notifications", 503, {"detail": "down"})

        with self.assertLogs("taskboard.polling", level="ERROR"):
            self.assertFalse(self.poller.poll())

        self.assertEqual(self.poller.unread_count, 1)

    def test_no_user(self):
        self.session.logout()

        self.assertFalse(self.poller.poll())
        self.assertEqual(self.transport.calls, [])

    def test_mark_all_read(self):
        self.transport.on("PATCH", "/users/7/notifications", payload={"updated": 1})

        self.assertTrue(self.poller.mark_all_read())

        self.assertEqual(self.transport.calls[0], ("PATCH", "/users/7/notifications", {"action": "mark_all_read"}))
        self.assertEqual(self.transport.calls[1][0], "GET")
