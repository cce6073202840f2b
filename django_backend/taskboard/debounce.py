import logging
import threading

logger = logging.getLogger(__name__)


class Debouncer:
    """
    Coalesce repeated calls per key: only the last call within ``delay``
    seconds runs.

    ``timer_factory(delay, callback)`` must return an object with ``start()``
    and ``cancel()``; ``threading.Timer`` is the default.
    """

    def __init__(self, delay=0.3, timer_factory=threading.Timer):
        self.delay = delay
        self.timer_factory = timer_factory
        self._pending = {}
        self._lock = threading.Lock()

    def call(self, key, fn, *args, **kwargs):
        with self._lock:
            previous = self._pending.pop(key, None)
            if previous is not None:
                previous[0].cancel()
            timer = self.timer_factory(self.delay, lambda: self._fire(key, timer))
            self._pending[key] = (timer, fn, args, kwargs)
        timer.start()

    def _fire(self, key, timer):
        with self._lock:
            entry = self._pending.get(key)
            # a newer call replaced this timer
            if entry is None or entry[0] is not timer:
                return
            del self._pending[key]
        _, fn, args, kwargs = entry
        fn(*args, **kwargs)

    def pending(self, key):
        return key in self._pending

    def flush(self, key=None):
        """Run pending calls now instead of waiting for their timers."""
        with self._lock:
            keys = [key] if key is not None else list(self._pending)
            entries = [self._pending.pop(k) for k in keys if k in self._pending]
        for timer, fn, args, kwargs in entries:
            timer.cancel()
            fn(*args, **kwargs)

    def cancel(self, key=None):
        with self._lock:
            keys = [key] if key is not None else list(self._pending)
            entries = [self._pending.pop(k) for k in keys if k in self._pending]
        for timer, *_ in entries:
            timer.cancel()
