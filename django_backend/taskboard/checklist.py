import copy
import logging

from apps.tasks.domain import ChecklistBoundaryError
from apps.tasks.domain import checklist as rules

from .entities import ChecklistItem
from .errors import ApiError, ValidationFailed

logger = logging.getLogger(__name__)


class ChecklistController:
    """
    Checklist operations for one task held in a ``TaskStore``.

    Content changes (add, toggle, edit, delete) are applied locally first and
    rolled back on failure. Structural changes are checked locally, sent to
    the server, and the local list is replaced with the server's ordering.
    """

    def __init__(self, store, task_id):
        self.store = store
        self.task_id = task_id

    @property
    def task(self):
        return self.store._require(self.task_id)

    def items(self):
        return copy.deepcopy(rules.ordered(self.task.checklist))

    def _guard(self):
        self.store._guard(self.task, "can_edit_checklist", "You cannot edit the checklist of this task")

    def _item(self, task, item_id):
        for item in task.checklist:
            if item.id == item_id:
                return item
        raise KeyError(f"Checklist item {item_id} is not loaded")

    def add(self, text, level=0):
        self._guard()
        if not text.strip():
            raise ValidationFailed({"text": "Checklist item text is required."})
        if not rules.MIN_LEVEL <= level <= rules.MAX_LEVEL:
            raise ValidationFailed({"level": f"Level must be between {rules.MIN_LEVEL} and {rules.MAX_LEVEL}."})

        def apply(task):
            task.checklist.append(
                ChecklistItem(
                    id=self.store._next_temp_id(),
                    task_id=self.task_id,
                    text=text,
                    level=level,
                    item_order=rules.next_order(task.checklist),
                )
            )
            rules.relink(rules.ordered(task.checklist))

        return self.store._optimistic(
            self.task_id, apply, lambda: self.store.api.add_checklist_item(self.task_id, text, level), "Adding checklist item"
        )

    def toggle(self, item_id):
        self._guard()
        completed = not self._item(self.task, item_id).completed
        user_id = self.store.user.id
        now = self.store.clock()

        def apply(task):
            item = self._item(task, item_id)
            item.completed = completed
            item.completed_by = user_id if completed else None
            item.completed_at = now if completed else None

        return self.store._optimistic(
            self.task_id,
            apply,
            lambda: self.store.api.update_checklist_item(self.task_id, item_id, completed=completed),
            "Toggling checklist item",
        )

    def edit(self, item_id, text):
        self._guard()
        self._item(self.task, item_id)
        if not text.strip():
            raise ValidationFailed({"text": "Checklist item text is required."})

        def apply(task):
            self._item(task, item_id).text = text

        return self.store._optimistic(
            self.task_id,
            apply,
            lambda: self.store.api.update_checklist_item(self.task_id, item_id, text=text),
            "Editing checklist item",
        )

    def delete(self, item_id):
        self._guard()
        self._item(self.task, item_id)

        def apply(task):
            task.checklist = [i for i in task.checklist if i.id != item_id]
            rules.relink(rules.ordered(task.checklist))

        return self.store._optimistic(
            self.task_id,
            apply,
            lambda: self.store.api.delete_checklist_item(self.task_id, item_id),
            "Deleting checklist item",
        )

    def _restructure(self, item_id, operation, direction=None):
        self._guard()
        # dry run on a copy so a blocked operation never reaches the server
        trial = copy.deepcopy(self.task.checklist)
        if operation == "indent":
            rules.indent(trial, item_id)
        elif operation == "outdent":
            rules.outdent(trial, item_id)
        else:
            rules.move(trial, item_id, direction)

        try:
            payload = self.store.api.restructure_checklist_item(self.task_id, item_id, operation, direction)
        except ApiError as e:
            if e.status == 400 and isinstance(e.payload, dict) and e.payload.get("blocked"):
                raise ChecklistBoundaryError(operation, str(e)) from e
            logger.error(f"Checklist {operation} of item {item_id} on task {self.task_id} failed: {e}")
            return False

        with self.store._lock:
            self.task.checklist = rules.ordered(ChecklistItem.from_dict(data) for data in payload)
            self.store._emit(self.task_id)
        return True

    def indent(self, item_id):
        return self._restructure(item_id, "indent")

    def outdent(self, item_id):
        return self._restructure(item_id, "outdent")

    def move_up(self, item_id):
        return self._restructure(item_id, "move", rules.UP)

    def move_down(self, item_id):
        return self._restructure(item_id, "move", rules.DOWN)

    def can_indent(self, item_id):
        return rules.can_indent(self._item(self.task, item_id))

    def can_outdent(self, item_id):
        return rules.can_outdent(self._item(self.task, item_id))

    def can_move_up(self, item_id):
        return rules.can_move(self.task.checklist, item_id, rules.UP)

    def can_move_down(self, item_id):
        return rules.can_move(self.task.checklist, item_id, rules.DOWN)
