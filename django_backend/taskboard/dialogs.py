"""
Status change dialog flow.

Actions that need a result (completion) wait in ``awaiting_result`` until
``submit_result`` is called. Actions with an automatic comment post that
comment before the status change. The comment and the status change are two
separate requests; a comment that went through before a failed status change
is left in place.
"""
import logging

from .errors import ActionNotAllowed, ValidationFailed

logger = logging.getLogger(__name__)

IDLE = "idle"
AWAITING_RESULT = "awaiting_result"
WRITING_COMMENT = "writing_comment"
WRITING_STATUS = "writing_status"
DONE = "done"
CANCELLED = "cancelled"
FAILED = "failed"

FINAL_STATES = (DONE, CANCELLED, FAILED)


class StatusChangeFlow:
    def __init__(self, store, task_id):
        self.store = store
        self.task_id = task_id
        self.state = IDLE
        self.action = None
        self.trail = [IDLE]

    def _enter(self, state):
        logger.debug(f"Status flow for task {self.task_id}: {self.state} -> {state}")
        self.state = state
        self.trail.append(state)

    @property
    def finished(self):
        return self.state in FINAL_STATES

    def trigger(self, key):
        """Start the action ``key``; returns the resulting state."""
        if self.state != IDLE:
            raise RuntimeError(f"Flow already started (state: {self.state})")
        for action in self.store.available_actions(self.task_id):
            if action.key == key:
                break
        else:
            raise ActionNotAllowed(f"Action '{key}' is not available for this task")

        self.action = action
        if action.requires_completion_dialog:
            self._enter(AWAITING_RESULT)
            return self.state

        if action.auto_comment:
            self._enter(WRITING_COMMENT)
            if not self.store.add_comment(self.task_id, action.auto_comment):
                self._enter(FAILED)
                return self.state
        return self._write_status()

    def submit_result(self, text, score=None, actual_hours=None):
        if self.state != AWAITING_RESULT:
            raise RuntimeError(f"No result is expected in state {self.state}")
        errors = {}
        if not (text or "").strip():
            errors["result"] = "Describe the result of the task."
        if score is not None and not 1 <= score <= 10:
            errors["score"] = "Score must be between 1 and 10."
        if errors:
            raise ValidationFailed(errors)

        self._enter(WRITING_COMMENT)
        if not self.store.add_comment(self.task_id, text, is_result=True, score=score):
            self._enter(FAILED)
            return self.state
        return self._write_status(result=text, actual_hours=actual_hours)

    def _write_status(self, **extra):
        self._enter(WRITING_STATUS)
        try:
            ok = self.store.change_status(self.task_id, self.action.target, **extra)
        except ActionNotAllowed:
            self._enter(FAILED)
            raise
        self._enter(DONE if ok else FAILED)
        return self.state

    def cancel(self):
        if self.state not in (IDLE, AWAITING_RESULT):
            raise RuntimeError(f"Cannot cancel in state {self.state}")
        self._enter(CANCELLED)
        return self.state
