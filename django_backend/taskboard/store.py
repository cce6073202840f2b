"""
In-memory task aggregate with optimistic updates.

Every mutation follows one discipline: check permissions and validate
locally (raising before any request), snapshot the task, apply the change,
send the request, and on failure put the snapshot back. On success the
task's cache tag is invalidated, which refetches it from the server.

Debounced edits are sent from the debouncer's timer thread, so listeners
may be called from that thread. Public methods hold the store's lock while
they read or change the cache.
"""
import copy
import functools
import logging
import threading
from datetime import datetime, timezone

from apps.tasks.domain import (
    TaskRuleError,
    check_transition,
    compute_available_actions,
    evaluate_permissions,
)
from apps.tasks.domain.permissions import can_manage_comment, can_manage_trash

from .api import task_payload
from .checklist import ChecklistController
from .debounce import Debouncer
from .entities import Comment, Task, UserRef, normalize_user_ref
from .errors import ActionNotAllowed, ApiError, ValidationFailed

logger = logging.getLogger(__name__)

LIST_TAG = ("Task", "LIST")

EDITABLE_FIELDS = {
    "title",
    "description",
    "due_date",
    "priority",
    "tags",
    "assignees",
    "observers",
    "process_id",
    "estimated_days",
    "estimated_hours",
    "estimated_minutes",
}
DURATION_FIELDS = ("estimated_days", "estimated_hours", "estimated_minutes")
DEBOUNCED_GROUPS = {"duration": DURATION_FIELDS, "tags": ("tags",)}
NESTED_KEYS = ("comments", "checklist", "history")


def task_tag(task_id):
    return ("Task", task_id)


def locked(method):
    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        with self._lock:
            return method(self, *args, **kwargs)

    return wrapper


def utcnow():
    return datetime.now(timezone.utc)


def validate_task_fields(fields, creating=False, now=None):
    """Return a dict of field errors; empty when the values are acceptable."""
    now = now or utcnow()
    errors = {}
    if "title" in fields or creating:
        if not (fields.get("title") or "").strip():
            errors["title"] = "Title is required."
    if "assignees" in fields or creating:
        if not fields.get("assignees"):
            errors["assignees"] = "At least one assignee is required."
    if "due_date" in fields or creating:
        due = fields.get("due_date")
        if due is None:
            errors["due_date"] = "Due date is required."
        elif due < now:
            errors["due_date"] = "Due date cannot be in the past."
    if "priority" in fields and fields["priority"] not in (1, 2, 3, 4, 5):
        errors["priority"] = "Priority must be between 1 and 5."
    return errors


class TaskStore:
    def __init__(self, api, session, debouncer=None, clock=utcnow):
        self.api = api
        self.session = session
        self.debouncer = debouncer or Debouncer(0.3)
        self.clock = clock
        self._tasks = {}
        self._order = []
        self._list_filters = {}
        self._listeners = []
        # (group, task_id) -> task before the first edit of the window
        self._pending_snapshots = {}
        # (group, task_id) -> fields waiting for the timer
        self._pending_fields = {}
        # task_id -> (original, pending) description text
        self._descriptions = {}
        self._temp_ids = -1
        self._lock = threading.RLock()

    # reading

    @locked
    def get(self, task_id):
        task = self._tasks.get(task_id)
        return copy.deepcopy(task) if task is not None else None

    @locked
    def tasks(self):
        return [copy.deepcopy(self._tasks[i]) for i in self._order if i in self._tasks]

    def __contains__(self, task_id):
        return task_id in self._tasks

    @property
    def user(self):
        return self.session.current_user

    @locked
    def capabilities(self, task_id):
        return evaluate_permissions(self._require(task_id), self.user)

    @locked
    def available_actions(self, task_id):
        return compute_available_actions(self._require(task_id), self.user)

    def subscribe(self, listener):
        """``listener(task_id)`` is called after any change; returns an unsubscribe callable."""
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def _emit(self, task_id):
        for listener in list(self._listeners):
            listener(task_id)

    def _require(self, task_id):
        try:
            return self._tasks[task_id]
        except KeyError:
            raise KeyError(f"Task {task_id} is not loaded") from None

    # fetching

    def _merge(self, data):
        task = Task.from_dict(data)
        cached = self._tasks.get(task.id)
        if cached is not None:
            # list payloads carry no nested collections
            for key in NESTED_KEYS:
                if key not in data:
                    setattr(task, key, getattr(cached, key))
        # unsent local edits stay visible over the server copy
        for group in DEBOUNCED_GROUPS:
            fields = self._pending_fields.get((group, task.id))
            if fields:
                self._apply_fields(task, fields)
        if task.id in self._descriptions:
            task.description = self._descriptions[task.id][1]
        self._tasks[task.id] = task
        return task

    @locked
    def fetch_tasks(self, **filters):
        payload = self.api.list_tasks(**filters)
        self._list_filters = filters
        self._order = [self._merge(data).id for data in payload]
        self._emit(None)
        return self.tasks()

    @locked
    def fetch_task(self, task_id):
        task = self._merge(self.api.get_task(task_id))
        if task.id not in self._order:
            self._order.insert(0, task.id)
        self._emit(task.id)
        return self.get(task.id)

    @locked
    def invalidate(self, *tags):
        """Refetch everything registered under ``tags``. Failures are logged."""
        for tag in tags:
            try:
                if tag == LIST_TAG:
                    self.fetch_tasks(**self._list_filters)
                elif tag[0] == "Task" and tag[1] in self._tasks:
                    self.fetch_task(tag[1])
            except ApiError as e:
                logger.error(f"Refetch of {tag} failed: {e}")

    # mutation plumbing

    def _guard(self, task, capability, message):
        caps = evaluate_permissions(task, self.user)
        if not getattr(caps, capability):
            raise ActionNotAllowed(message)

    @locked
    def _optimistic(self, task_id, apply, remote, description, refetch=True):
        task = self._require(task_id)
        snapshot = copy.deepcopy(task)
        apply(task)
        self._emit(task_id)
        try:
            result = remote()
        except ApiError as e:
            self._tasks[task_id] = snapshot
            self._emit(task_id)
            logger.error(f"{description} for task {task_id} failed, local change rolled back: {e}")
            return False
        if refetch:
            self.invalidate(task_tag(task_id))
        return result if result is not None else True

    def _next_temp_id(self):
        self._temp_ids -= 1
        return self._temp_ids

    # tasks

    @locked
    def create_task(self, **fields):
        errors = validate_task_fields(fields, creating=True, now=self.clock())
        if errors:
            raise ValidationFailed(errors)
        try:
            data = self.api.create_task(task_payload(fields))
        except ApiError as e:
            logger.error(f"Creating task failed: {e}")
            return None
        task = self._merge(data)
        self._order.insert(0, task.id)
        if fields.get("tags"):
            self.session.remember_tags(fields["tags"])
        self._emit(task.id)
        return self.get(task.id)

    def _apply_fields(self, task, fields):
        for key, value in fields.items():
            if key in ("assignees", "observers"):
                value = [normalize_user_ref(v) for v in value]
            elif key == "tags":
                value = list(value)
            setattr(task, key, value)

    def _check_edit(self, task_id, fields):
        unknown = set(fields) - EDITABLE_FIELDS
        if unknown:
            raise ValueError(f"Not editable: {', '.join(sorted(unknown))}")
        task = self._require(task_id)
        self._guard(task, "can_edit", "You cannot edit this task")
        errors = validate_task_fields(fields, now=self.clock())
        if "due_date" in fields and fields["due_date"] == task.due_date:
            errors.pop("due_date", None)
        if errors:
            raise ValidationFailed(errors)
        return task

    @locked
    def update_fields(self, task_id, **fields):
        """Apply field edits locally and send them in one request."""
        self._check_edit(task_id, fields)
        if "tags" in fields:
            self.session.remember_tags(fields["tags"])
        return self._optimistic(
            task_id,
            lambda task: self._apply_fields(task, fields),
            lambda: self.api.update_task(task_id, task_payload(fields)),
            "Update",
        )

    def _debounced_update(self, group, task_id, fields):
        self._check_edit(task_id, fields)
        task = self._tasks[task_id]
        key = (group, task_id)
        # roll back to the state before the first edit of the window
        self._pending_snapshots.setdefault(key, copy.deepcopy(task))
        self._pending_fields[key] = fields
        self._apply_fields(task, fields)
        self._emit(task_id)
        self.debouncer.call(key, self._send_debounced, key, task_id, fields)

    def _restore_fields(self, task_id, snapshot, names):
        current = self._tasks.get(task_id)
        if current is not None and snapshot is not None:
            for name in names:
                setattr(current, name, getattr(snapshot, name))

    def _discard_pending_edits(self, task_id):
        """Cancel unsent debounced and buffered edits of a task and undo them locally."""
        for group, names in DEBOUNCED_GROUPS.items():
            key = (group, task_id)
            self.debouncer.cancel(key)
            self._pending_fields.pop(key, None)
            snapshot = self._pending_snapshots.pop(key, None)
            if snapshot is not None:
                self._restore_fields(task_id, snapshot, names)
                logger.warning(f"Unsent {group} edit of task {task_id} discarded")
        buffered = self._descriptions.pop(task_id, None)
        if buffered is not None and task_id in self._tasks:
            self._tasks[task_id].description = buffered[0]

    @locked
    def _send_debounced(self, key, task_id, fields):
        # discarded while the timer was running out
        if key not in self._pending_fields:
            return False
        self._pending_fields.pop(key)
        snapshot = self._pending_snapshots.pop(key, None)
        task = self._tasks.get(task_id)
        if task is None or not evaluate_permissions(task, self.user).can_edit:
            self._restore_fields(task_id, snapshot, fields)
            self._emit(task_id)
            logger.warning(f"Debounced update of {sorted(fields)} for task {task_id} dropped, task is no longer editable")
            return False
        try:
            self.api.update_task(task_id, task_payload(fields))
        except ApiError as e:
            self._restore_fields(task_id, snapshot, fields)
            self._emit(task_id)
            logger.error(f"Debounced update of {sorted(fields)} for task {task_id} failed, rolled back: {e}")
            return False
        self.invalidate(task_tag(task_id))
        return True

    @locked
    def set_duration(self, task_id, days=0, hours=0, minutes=0):
        fields = dict(zip(DURATION_FIELDS, (days, hours, minutes)))
        self._debounced_update("duration", task_id, fields)

    @locked
    def set_tags(self, task_id, tags):
        tags = [t.strip() for t in tags if t.strip()]
        self._debounced_update("tags", task_id, {"tags": tags})
        self.session.remember_tags(tags)

    @locked
    def edit_description(self, task_id, text):
        """Buffer a description edit; it is sent by ``commit_description``."""
        task = self._require(task_id)
        self._guard(task, "can_edit", "You cannot edit this task")
        original = self._descriptions.get(task_id, (task.description, None))[0]
        self._descriptions[task_id] = (original, text)
        task.description = text
        self._emit(task_id)

    @locked
    def commit_description(self, task_id):
        buffered = self._descriptions.pop(task_id, None)
        if buffered is None:
            return True
        original, text = buffered
        task = self._require(task_id)
        # go through the regular path from the original so failure rolls back to it
        task.description = original
        if text == original:
            return True
        return self.update_fields(task_id, description=text)

    def flush(self):
        """Send debounced edits now."""
        self.debouncer.flush()

    # status

    @locked
    def change_status(self, task_id, target, result=None, actual_hours=None):
        task = self._require(task_id)
        try:
            check_transition(task, self.user, target)
        except TaskRuleError as e:
            raise ActionNotAllowed(str(e)) from e

        def apply(t):
            t.status = target
            if result is not None:
                t.result = result
            if actual_hours is not None:
                t.actual_hours = actual_hours
            t.completed_at = self.clock() if target == "completed" else None

        return self._optimistic(
            task_id,
            apply,
            lambda: self.api.change_status(task_id, target, result=result, actual_hours=actual_hours),
            "Status change",
        )

    # comments

    @locked
    def add_comment(self, task_id, text, is_result=False, score=None):
        task = self._require(task_id)
        self._guard(task, "can_comment", "You cannot comment on this task")
        if not text.strip():
            raise ValidationFailed({"text": "Comment text is required."})

        placeholder = Comment(
            id=self._next_temp_id(),
            task_id=task_id,
            author=UserRef(self.user.id, self.user),
            text=text,
            is_result=is_result,
            score=score,
            created_at=self.clock(),
        )
        return self._optimistic(
            task_id,
            lambda t: t.comments.append(placeholder),
            lambda: self.api.add_comment(task_id, text, is_result=is_result, score=score),
            "Adding comment",
        )

    def _comment(self, task, comment_id):
        for comment in task.comments:
            if comment.id == comment_id:
                return comment
        raise KeyError(f"Comment {comment_id} is not loaded")

    def _check_comment(self, task_id, comment_id):
        task = self._require(task_id)
        if task.is_deleted:
            raise ActionNotAllowed("Cannot modify task in trash")
        comment = self._comment(task, comment_id)
        if not can_manage_comment(comment, self.user):
            raise ActionNotAllowed("Only the author or a director can change this comment")
        return comment

    @locked
    def edit_comment(self, task_id, comment_id, text):
        self._check_comment(task_id, comment_id)
        if not text.strip():
            raise ValidationFailed({"text": "Comment text is required."})

        def apply(t):
            comment = self._comment(t, comment_id)
            comment.text = text
            comment.is_edited = True

        return self._optimistic(task_id, apply, lambda: self.api.edit_comment(task_id, comment_id, text), "Editing comment")

    @locked
    def delete_comment(self, task_id, comment_id):
        self._check_comment(task_id, comment_id)

        def apply(t):
            t.comments = [c for c in t.comments if c.id != comment_id]

        return self._optimistic(task_id, apply, lambda: self.api.delete_comment(task_id, comment_id), "Deleting comment")

    # trash

    def _check_trash(self, task_id):
        task = self._require(task_id)
        if not can_manage_trash(task, self.user):
            raise ActionNotAllowed("Only the creator, a director or a department head can do this")
        return task

    @locked
    def soft_delete(self, task_id):
        task = self._check_trash(task_id)
        if task.is_deleted:
            raise ActionNotAllowed("Task is already in trash")
        self._discard_pending_edits(task_id)

        def apply(t):
            t.is_deleted = True
            t.deleted_at = self.clock()
            t.deleted_by = self.user.id

        return self._optimistic(task_id, apply, lambda: self.api.soft_delete(task_id), "Moving to trash")

    @locked
    def restore(self, task_id):
        task = self._check_trash(task_id)
        if not task.is_deleted:
            raise ActionNotAllowed("Task is not in trash")

        def apply(t):
            t.is_deleted = False
            t.deleted_at = None
            t.deleted_by = None

        return self._optimistic(task_id, apply, lambda: self.api.restore(task_id), "Restoring")

    @locked
    def purge(self, task_id):
        task = self._check_trash(task_id)
        if not task.is_deleted:
            raise ActionNotAllowed("Only tasks in trash can be deleted permanently")
        self._discard_pending_edits(task_id)

        snapshot, position = task, self._order.index(task_id) if task_id in self._order else None
        del self._tasks[task_id]
        if position is not None:
            self._order.remove(task_id)
        self._emit(task_id)
        try:
            self.api.purge(task_id)
        except ApiError as e:
            self._tasks[task_id] = snapshot
            if position is not None:
                self._order.insert(position, task_id)
            self._emit(task_id)
            logger.error(f"Permanent delete of task {task_id} failed, restored locally: {e}")
            return False
        return True

    # checklist

    def checklist(self, task_id):
        return ChecklistController(self, task_id)
