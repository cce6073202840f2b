"""
Status transition rules.

The lifecycle is NEW -> ACKNOWLEDGED -> IN_PROGRESS <-> PAUSED -> COMPLETED,
with COMPLETED -> IN_PROGRESS as an explicit "return to work" edge.
WAITING_CONTROL and ON_CONTROL are review states with no actions of their own.
"""
from dataclasses import dataclass
from typing import List, Optional

from .constants import Role, Status, STATUS_LABELS
from .errors import TaskDeletedError, TransitionNotAllowed
from .permissions import evaluate_permissions, is_assignee, is_creator

ACKNOWLEDGE_COMMENT = "Ознакомлен и согласен выполнять"
START_COMMENT = "Начал выполнение задачи"


@dataclass(frozen=True)
class Action:
    key: str
    label: str
    target: str
    auto_comment: Optional[str] = None
    requires_completion_dialog: bool = False


ACKNOWLEDGE = Action("acknowledge", "Acknowledge and agree to perform", Status.ACKNOWLEDGED,
                     auto_comment=ACKNOWLEDGE_COMMENT)
START_NOW = Action("start", "Start", Status.IN_PROGRESS, auto_comment=START_COMMENT)
START = Action("start", "Start", Status.IN_PROGRESS)
PAUSE = Action("pause", "Pause", Status.PAUSED)
COMPLETE = Action("complete", "Complete", Status.COMPLETED, requires_completion_dialog=True)
RESUME = Action("resume", "Resume", Status.IN_PROGRESS)
RETURN_TO_WORK = Action("return_to_work", "Return to work", Status.IN_PROGRESS)


def compute_available_actions(task, user) -> List[Action]:
    caps = evaluate_permissions(task, user)
    if not caps.can_change_status:
        return []

    status = task.status
    role = getattr(user, "role", None)

    if status == Status.NEW:
        if not is_assignee(task, user):
            return []
        # a director performing the task skips the acknowledgement step
        return [START_NOW] if role == Role.DIRECTOR else [ACKNOWLEDGE]

    if status == Status.ACKNOWLEDGED:
        return [START]

    if status == Status.IN_PROGRESS:
        actions = [PAUSE]
        if caps.can_complete_task:
            actions.append(COMPLETE)
        return actions

    if status == Status.PAUSED:
        return [RESUME]

    if status == Status.COMPLETED:
        if is_creator(task, user) or role in Role.MANAGERS:
            return [RETURN_TO_WORK]
        return []

    return []


def check_transition(task, user, target) -> Action:
    """Return the action leading to ``target`` or raise if none is offered."""
    if task.is_deleted:
        raise TaskDeletedError()
    for action in compute_available_actions(task, user):
        if action.target == target:
            return action
    raise TransitionNotAllowed(task.status, target)


def describe_status_change(old, new):
    return f"Status changed from '{STATUS_LABELS.get(old, old)}' to '{STATUS_LABELS.get(new, new)}'"
