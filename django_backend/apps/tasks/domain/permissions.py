from dataclasses import dataclass, asdict

from .constants import Role


@dataclass(frozen=True)
class Capabilities:
    can_change_status: bool = False
    can_complete_task: bool = False
    can_comment: bool = False
    can_edit: bool = False
    can_edit_checklist: bool = False

    def as_dict(self):
        return asdict(self)


NO_CAPABILITIES = Capabilities()


def _role(user):
    return getattr(user, "role", None)


def is_creator(task, user):
    return user is not None and task.creator_id == user.id


def is_assignee(task, user):
    return user is not None and user.id in set(task.assignee_ids)


def is_observer(task, user):
    return user is not None and user.id in set(task.observer_ids)


def evaluate_permissions(task, user) -> Capabilities:
    """
    Map (task, user) to the set of things the user may do with the task.

    A task in the trash grants nothing, whatever the user's role.
    """
    if task.is_deleted or user is None:
        return NO_CAPABILITIES

    role = _role(user)
    director = role == Role.DIRECTOR
    manager = role in Role.MANAGERS
    creator = is_creator(task, user)
    assignee = is_assignee(task, user)
    observer = is_observer(task, user)

    return Capabilities(
        can_change_status=assignee or manager or creator,
        can_complete_task=assignee or manager,
        can_comment=manager or assignee or creator or observer,
        can_edit=creator or director,
        can_edit_checklist=assignee or creator or director,
    )


def can_manage_comment(comment, user):
    """Comments are edited or removed by their author or a director."""
    if user is None:
        return False
    return comment.author_id == user.id or _role(user) == Role.DIRECTOR


def can_manage_trash(task, user):
    """Soft delete, restore and permanent delete."""
    if user is None:
        return False
    return is_creator(task, user) or _role(user) in Role.MANAGERS


def can_view_task(task, user):
    if user is None:
        return False
    if _role(user) in Role.SUPERVISORS:
        return True
    return is_creator(task, user) or is_assignee(task, user) or is_observer(task, user)
