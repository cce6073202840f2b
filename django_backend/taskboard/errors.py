class TaskboardError(Exception):
    pass


class ApiError(TaskboardError):
    """A request failed: the server rejected it (status >= 400) or it never got there (status 0)."""

    def __init__(self, status, payload=None, message=None):
        self.status = status
        self.payload = payload
        if message is None:
            message = self._message_from(payload) or f"Request failed with status {status}"
        super().__init__(message)

    @staticmethod
    def _message_from(payload):
        if isinstance(payload, dict):
            detail = payload.get("detail") or payload.get("error")
            if detail:
                return str(detail)
        return None


class ValidationFailed(TaskboardError):
    """Field-level validation errors found before any request was sent."""

    def __init__(self, errors):
        self.errors = dict(errors)
        super().__init__("; ".join(f"{k}: {v}" for k, v in self.errors.items()))


class ActionNotAllowed(TaskboardError):
    """The current user may not perform the action on this task."""


class NotAuthenticated(TaskboardError):
    pass
