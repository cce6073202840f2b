import json
import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path

from .entities import User

logger = logging.getLogger(__name__)

RECENT_TAGS_LIMIT = 10


class Storage(ABC):
    """Small persistent key/value store for session state."""

    @abstractmethod
    def get(self, key, default=None):
        pass

    @abstractmethod
    def set(self, key, value):
        pass

    @abstractmethod
    def clear(self, key=None):
        """Remove ``key``, or everything when no key is given."""


class MemoryStorage(Storage):
    def __init__(self, initial=None):
        self._data = dict(initial or {})

    def get(self, key, default=None):
        return self._data.get(key, default)

    def set(self, key, value):
        self._data[key] = value

    def clear(self, key=None):
        if key is None:
            self._data.clear()
        else:
            self._data.pop(key, None)


class JsonFileStorage(Storage):
    """Keeps values in a single JSON file, rewritten on every change."""

    def __init__(self, path):
        self.path = Path(path)
        self._data = self._load()

    def _load(self):
        if not self.path.exists():
            return {}
        try:
            with self.path.open(encoding="utf-8") as fh:
                data = json.load(fh)
        except (OSError, ValueError) as e:
            logger.warning(f"Ignoring unreadable session file {self.path}: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def _save(self):
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        with tmp.open("w", encoding="utf-8") as fh:
            json.dump(self._data, fh, ensure_ascii=False)
        os.replace(tmp, self.path)

    def get(self, key, default=None):
        return self._data.get(key, default)

    def set(self, key, value):
        self._data[key] = value
        self._save()

    def clear(self, key=None):
        if key is None:
            self._data = {}
        else:
            self._data.pop(key, None)
        self._save()


class AuthSession:
    """Auth token, current user snapshot and recent tags, kept in a ``Storage``."""

    TOKEN_KEY = "auth_token"
    USER_KEY = "current_user"
    RECENT_TAGS_KEY = "recent_tags"

    def __init__(self, storage: Storage):
        self.storage = storage

    @property
    def token(self):
        return self.storage.get(self.TOKEN_KEY)

    def set_token(self, token):
        if token:
            self.storage.set(self.TOKEN_KEY, token)
        else:
            self.storage.clear(self.TOKEN_KEY)

    @property
    def current_user(self):
        data = self.storage.get(self.USER_KEY)
        return User.from_dict(data) if data else None

    def set_current_user(self, user):
        if user is None:
            self.storage.clear(self.USER_KEY)
            return
        if isinstance(user, dict):
            user = User.from_dict(user)
        self.storage.set(self.USER_KEY, user.to_dict())

    @property
    def user_id(self):
        data = self.storage.get(self.USER_KEY)
        return data["id"] if data else None

    @property
    def is_authenticated(self):
        return self.user_id is not None

    def recent_tags(self):
        return list(self.storage.get(self.RECENT_TAGS_KEY, []))

    def remember_tags(self, tags):
        """Move ``tags`` to the front of the recent list, most recent first."""
        recent = self.recent_tags()
        for tag in tags:
            tag = tag.strip()
            if not tag:
                continue
            if tag in recent:
                recent.remove(tag)
            recent.insert(0, tag)
        self.storage.set(self.RECENT_TAGS_KEY, recent[:RECENT_TAGS_LIMIT])

    def logout(self):
        self.storage.clear(self.TOKEN_KEY)
        self.storage.clear(self.USER_KEY)
