import logging
import threading

from .entities import Notification
from .errors import ApiError

logger = logging.getLogger(__name__)

POLL_INTERVAL = 30


class NotificationPoller:
    """Refetch the current user's notifications every ``interval`` seconds while started."""

    def __init__(self, api, session, interval=POLL_INTERVAL, timer_factory=threading.Timer, on_update=None):
        self.api = api
        self.session = session
        self.interval = interval
        self.timer_factory = timer_factory
        self.on_update = on_update
        self.notifications = []
        self.unread_count = 0
        self._timer = None
        self._running = False

    @property
    def running(self):
        return self._running

    def start(self):
        if self._running:
            return
        self._running = True
        self.poll()
        self._schedule()

    def stop(self):
        self._running = False
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _schedule(self):
        if not self._running:
            return
        self._timer = self.timer_factory(self.interval, self._tick)
        self._timer.daemon = True
        self._timer.start()

    def _tick(self):
        self.poll()
        self._schedule()

    def poll(self):
        user_id = self.session.user_id
        if user_id is None:
            return False
        try:
            payload = self.api.notifications(user_id)
        except ApiError as e:
            logger.error(f"Polling notifications for user {user_id} failed: {e}")
            return False
        self.notifications = [Notification.from_dict(n) for n in payload.get("notifications", [])]
        self.unread_count = payload.get("unread_count", 0)
        if self.on_update:
            self.on_update(self.notifications, self.unread_count)
        return True

    def mark_all_read(self):
        user_id = self.session.user_id
        try:
            self.api.update_notifications(user_id, action="mark_all_read")
        except ApiError as e:
            logger.error(f"Marking notifications read for user {user_id} failed: {e}")
            return False
        return self.poll()
