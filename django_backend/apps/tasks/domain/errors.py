class TaskRuleError(Exception):
    """Base class for violations of task lifecycle rules."""


class TaskDeletedError(TaskRuleError):
    def __init__(self, message="Cannot modify task in trash"):
        super().__init__(message)


class TransitionNotAllowed(TaskRuleError):
    def __init__(self, current, target):
        self.current = current
        self.target = target
        super().__init__(f"Transition from '{current}' to '{target}' is not allowed")


class ChecklistBoundaryError(TaskRuleError):
    """Raised when an indent/outdent/move would leave the allowed range."""

    def __init__(self, operation, message):
        self.operation = operation
        super().__init__(message)
