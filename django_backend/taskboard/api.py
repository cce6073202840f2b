import logging
from abc import ABC, abstractmethod

import requests

from .errors import ApiError
from .entities import format_datetime

logger = logging.getLogger(__name__)


class Transport(ABC):
    @abstractmethod
    def request(self, method, path, params=None, json=None, headers=None):
        """Perform a request and return ``(status_code, payload)``."""


class RequestsTransport(Transport):
    def __init__(self, base_url, timeout=10, session=None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def request(self, method, path, params=None, json=None, headers=None):
        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(
                method, url, params=params, json=json, headers=headers, timeout=self.timeout
            )
        except requests.exceptions.RequestException as e:
            raise ApiError(0, None, f"{method} {url} failed: {e}") from e

        if not response.content:
            return response.status_code, None
        try:
            return response.status_code, response.json()
        except ValueError:
            return response.status_code, {"detail": response.text}

    def close(self):
        self.session.close()


def _clean(params):
    return {k: v for k, v in params.items() if v is not None}


class TaskflowApi:
    """One method per API endpoint. Non-2xx responses raise ``ApiError``."""

    def __init__(self, transport: Transport, session):
        self.transport = transport
        self.session = session

    def _headers(self):
        headers = {}
        if self.session.user_id is not None:
            headers["x-user-id"] = str(self.session.user_id)
        if self.session.token:
            headers["Authorization"] = f"Bearer {self.session.token}"
        return headers

    def _call(self, method, path, params=None, json=None):
        status, payload = self.transport.request(
            method, path, params=_clean(params or {}), json=json, headers=self._headers()
        )
        if status >= 400:
            logger.debug(f"{method} {path} -> {status}: {payload}")
            raise ApiError(status, payload)
        return payload

    # tasks

    def list_tasks(self, **filters):
        payload = self._call("GET", "/tasks", params=filters)
        if isinstance(payload, dict) and "results" in payload:
            return payload["results"]
        return payload

    def get_task(self, task_id):
        return self._call("GET", f"/tasks/{task_id}")

    def create_task(self, fields):
        return self._call("POST", "/tasks", json=fields)

    def update_task(self, task_id, fields):
        return self._call("PUT", f"/tasks/{task_id}", json=fields)

    def change_status(self, task_id, status, result=None, actual_hours=None):
        body = {"status": status}
        if result is not None:
            body["result"] = result
        if actual_hours is not None:
            body["actual_hours"] = str(actual_hours)
        return self._call("PUT", f"/tasks/{task_id}/status", json=body)

    def soft_delete(self, task_id):
        return self._call("POST", f"/tasks/{task_id}/delete")

    def restore(self, task_id):
        return self._call("PUT", f"/tasks/{task_id}/delete")

    def purge(self, task_id):
        return self._call("DELETE", f"/tasks/{task_id}/delete")

    def add_comment(self, task_id, text, is_result=False, score=None):
        body = {"text": text, "is_result": is_result}
        if score is not None:
            body["score"] = score
        return self._call("POST", f"/tasks/{task_id}/comments", json=body)

    def edit_comment(self, task_id, comment_id, text):
        return self._call("PUT", f"/tasks/{task_id}/comments/{comment_id}", json={"text": text})

    def delete_comment(self, task_id, comment_id):
        return self._call("DELETE", f"/tasks/{task_id}/comments/{comment_id}")

    def list_checklist(self, task_id):
        return self._call("GET", f"/tasks/{task_id}/checklist")

    def add_checklist_item(self, task_id, text, level=0):
        return self._call("POST", f"/tasks/{task_id}/checklist", json={"text": text, "level": level})

    def update_checklist_item(self, task_id, item_id, text=None, completed=None):
        body = _clean({"text": text, "completed": completed})
        return self._call("PUT", f"/tasks/{task_id}/checklist/{item_id}", json=body)

    def restructure_checklist_item(self, task_id, item_id, action, direction=None):
        body = _clean({"action": action, "direction": direction})
        return self._call("PATCH", f"/tasks/{task_id}/checklist/{item_id}", json=body)

    def delete_checklist_item(self, task_id, item_id):
        return self._call("DELETE", f"/tasks/{task_id}/checklist/{item_id}")

    # supporting collections

    def list_users(self):
        return self._call("GET", "/users")

    def get_user(self, user_id):
        return self._call("GET", f"/users/{user_id}")

    def me(self):
        return self._call("GET", "/users/me")

    def list_processes(self):
        return self._call("GET", "/business-processes")

    def list_tags(self):
        return self._call("GET", "/tags")

    def notifications(self, user_id, unread_only=False, limit=20, offset=0):
        params = {"unread_only": "true" if unread_only else None, "limit": limit, "offset": offset}
        return self._call("GET", f"/users/{user_id}/notifications", params=params)

    def create_notification(self, user_id, message_text, notification_type="general", task_id=None):
        body = {"message_text": message_text, "notification_type": notification_type, "task": task_id}
        return self._call("POST", f"/users/{user_id}/notifications", json=body)

    def update_notifications(self, user_id, action=None, notification_ids=None, is_read=True):
        body = _clean({"action": action, "notification_ids": notification_ids})
        if notification_ids:
            body["is_read"] = is_read
        return self._call("PATCH", f"/users/{user_id}/notifications", json=body)


def task_payload(fields):
    """Convert client-side field values to their wire form."""
    payload = {}
    for key, value in fields.items():
        if key == "due_date":
            payload[key] = format_datetime(value)
        elif key in ("assignees", "observers"):
            payload[key[:-1] + "_ids"] = [getattr(v, "id", v) for v in value]
        elif key == "process_id":
            payload["process"] = value
        else:
            payload[key] = value
    return payload
