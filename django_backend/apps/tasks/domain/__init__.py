"""
Framework-free task rules shared by the API and the ``taskboard`` client.

Everything here works on plain objects exposing ``status``, ``is_deleted``,
``creator_id``, ``assignee_ids`` and ``observer_ids`` (tasks) and ``id`` /
``role`` (users), so both Django models and client entities can be passed in.
"""

from .errors import (
    TaskRuleError,
    TaskDeletedError,
    TransitionNotAllowed,
    ChecklistBoundaryError,
)
from .permissions import Capabilities, evaluate_permissions
from .transitions import Action, compute_available_actions, check_transition
from .deadlines import DeadlineFlags, deadline_flags

__all__ = [
    "TaskRuleError",
    "TaskDeletedError",
    "TransitionNotAllowed",
    "ChecklistBoundaryError",
    "Capabilities",
    "evaluate_permissions",
    "Action",
    "compute_available_actions",
    "check_transition",
    "DeadlineFlags",
    "deadline_flags",
]
