import logging
import os

from .api import RequestsTransport, TaskflowApi
from .dialogs import StatusChangeFlow
from .entities import BusinessProcess, UserDirectory
from .errors import NotAuthenticated
from .filters import TaskFilter
from .grouping import TIME, build_rows, group_tasks, row_height
from .polling import NotificationPoller
from .storage import AuthSession, JsonFileStorage, MemoryStorage
from .store import TaskStore
from .virtual_list import VirtualList

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "http://localhost:8000/api"


class AppContext:
    """
    Everything a client needs, built once and passed to whoever needs it:
    session, API client, task store, user directory and process list.
    """

    def __init__(self, api, session, store, users=None):
        self.api = api
        self.session = session
        self.store = store
        self.users = users or UserDirectory()
        self.processes = []
        self._pollers = []

    @classmethod
    def create(cls, transport, storage=None, debouncer=None):
        session = AuthSession(storage or MemoryStorage())
        api = TaskflowApi(transport, session)
        return cls(api, session, TaskStore(api, session, debouncer=debouncer))

    @classmethod
    def from_env(cls, environ=None):
        environ = os.environ if environ is None else environ
        transport = RequestsTransport(
            environ.get("TASKFLOW_API_URL", DEFAULT_API_URL),
            timeout=float(environ.get("TASKFLOW_API_TIMEOUT", "10")),
        )
        state_file = environ.get("TASKFLOW_STATE_FILE")
        storage = JsonFileStorage(state_file) if state_file else MemoryStorage()
        return cls.create(transport, storage)

    @property
    def current_user(self):
        return self.session.current_user

    def login_as(self, user_id, token=None):
        """Act as ``user_id``; the full profile is fetched from the API."""
        self.session.set_token(token)
        self.session.set_current_user({"id": user_id})
        self.session.set_current_user(self.api.me())
        logger.info(f"Acting as user {user_id}")
        return self.current_user

    def logout(self):
        self.store.flush()
        for poller in self._pollers:
            poller.stop()
        self.session.logout()

    def bootstrap(self, **task_filters):
        """Load the current user, users, processes and tasks. API errors propagate."""
        if not self.session.is_authenticated:
            raise NotAuthenticated("No current user; call login_as first")
        self.session.set_current_user(self.api.me())
        self.users.load(self.api.list_users())
        self.processes = [BusinessProcess.from_dict(p) for p in self.api.list_processes()]
        return self.store.fetch_tasks(**task_filters)

    def task_rows(self, task_filter=None, group_by=TIME, now=None, tz=None):
        """Cached tasks, filtered, grouped and flattened into list rows."""
        task_filter = task_filter or TaskFilter()
        tasks = task_filter.apply(self.store.tasks(), self.current_user, now)
        groups = group_tasks(tasks, group_by, processes=self.processes, now=now, tz=tz)
        return build_rows(groups, trash_view=task_filter.show_trash)

    def task_list(self, task_filter=None, group_by=TIME, now=None, tz=None, **window_options):
        rows = self.task_rows(task_filter, group_by, now, tz)
        return VirtualList(rows, item_height=row_height(rows), **window_options)

    def status_flow(self, task_id):
        return StatusChangeFlow(self.store, task_id)

    def notification_poller(self, **kwargs):
        poller = NotificationPoller(self.api, self.session, **kwargs)
        self._pollers.append(poller)
        return poller
