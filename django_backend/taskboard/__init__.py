"""
Client core for the Taskflow API.

Holds the in-memory task aggregate, applies the same permission and status
rules as the server before any request is made, and turns task collections
into grouped, windowed rows for list views.
"""

from .api import RequestsTransport, TaskflowApi, Transport
from .context import AppContext
from .errors import ActionNotAllowed, ApiError, NotAuthenticated, TaskboardError, ValidationFailed
from .filters import TaskFilter
from .grouping import build_rows, group_tasks, row_height
from .storage import AuthSession, JsonFileStorage, MemoryStorage, Storage
from .store import TaskStore
from .virtual_list import VirtualList

__all__ = [
    "ActionNotAllowed",
    "ApiError",
    "AppContext",
    "AuthSession",
    "JsonFileStorage",
    "MemoryStorage",
    "NotAuthenticated",
    "RequestsTransport",
    "Storage",
    "TaskFilter",
    "TaskStore",
    "TaskboardError",
    "TaskflowApi",
    "Transport",
    "ValidationFailed",
    "VirtualList",
    "build_rows",
    "group_tasks",
    "row_height",
]
