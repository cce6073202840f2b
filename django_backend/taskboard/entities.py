"""
Client-side entities built from API payloads.

User-valued fields arrive either as a bare id or as a full user object. They
are normalised here, once, into ``UserRef`` so nothing downstream has to
check which shape it got.
"""
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Dict, Iterable, List, Optional


def parse_datetime(value) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return datetime.fromisoformat(value)


def format_datetime(value) -> Optional[str]:
    return value.isoformat() if value is not None else None


@dataclass
class User:
    id: int
    username: str = ""
    display_name: str = ""
    role: str = "employee"
    position: str = ""
    avatar: str = ""
    email: str = ""
    is_active: bool = True

    @property
    def name(self):
        return self.display_name or self.username or f"User {self.id}"

    @classmethod
    def from_dict(cls, data):
        return cls(
            id=int(data["id"]),
            username=data.get("username", ""),
            display_name=data.get("display_name") or "",
            role=data.get("role") or "employee",
            position=data.get("position") or "",
            avatar=data.get("avatar") or "",
            email=data.get("email") or "",
            is_active=data.get("is_active", True),
        )

    def to_dict(self):
        return {
            "id": self.id,
            "username": self.username,
            "display_name": self.display_name,
            "role": self.role,
            "position": self.position,
            "avatar": self.avatar,
            "email": self.email,
            "is_active": self.is_active,
        }


@dataclass(frozen=True)
class UserRef:
    """A user reference: always an id, sometimes with the full user attached."""

    id: int
    user: Optional[User] = field(default=None, compare=False)

    @property
    def is_resolved(self):
        return self.user is not None


def normalize_user_ref(value) -> UserRef:
    if isinstance(value, UserRef):
        return value
    if isinstance(value, User):
        return UserRef(value.id, value)
    if isinstance(value, dict):
        return UserRef(int(value["id"]), User.from_dict(value))
    return UserRef(int(value))


class UserDirectory:
    """Known users by id; resolves bare ``UserRef`` values to full users."""

    def __init__(self, users: Iterable[User] = ()):
        self._users: Dict[int, User] = {}
        self.load(users)

    def load(self, users):
        for user in users:
            if isinstance(user, dict):
                user = User.from_dict(user)
            self._users[user.id] = user

    def get(self, user_id) -> Optional[User]:
        return self._users.get(user_id)

    def resolve(self, ref) -> Optional[User]:
        ref = normalize_user_ref(ref)
        return ref.user or self._users.get(ref.id)

    def all(self) -> List[User]:
        return sorted(self._users.values(), key=lambda u: u.id)

    def __len__(self):
        return len(self._users)


@dataclass
class Comment:
    id: int
    task_id: int
    author: UserRef
    text: str
    is_result: bool = False
    is_edited: bool = False
    score: Optional[int] = None
    created_at: Optional[datetime] = None
    edited_at: Optional[datetime] = None

    @property
    def author_id(self):
        return self.author.id

    @classmethod
    def from_dict(cls, data):
        return cls(
            id=data["id"],
            task_id=data.get("task"),
            author=normalize_user_ref(data["author"]),
            text=data.get("text", ""),
            is_result=data.get("is_result", False),
            is_edited=data.get("is_edited", False),
            score=data.get("score"),
            created_at=parse_datetime(data.get("created_at")),
            edited_at=parse_datetime(data.get("edited_at")),
        )


@dataclass
class ChecklistItem:
    id: int
    task_id: int
    text: str
    completed: bool = False
    completed_by: Optional[int] = None
    completed_at: Optional[datetime] = None
    level: int = 0
    item_order: int = 0
    parent_id: Optional[int] = None

    @classmethod
    def from_dict(cls, data):
        return cls(
            id=data["id"],
            task_id=data.get("task"),
            text=data.get("text", ""),
            completed=data.get("completed", False),
            completed_by=data.get("completed_by"),
            completed_at=parse_datetime(data.get("completed_at")),
            level=data.get("level", 0),
            item_order=data.get("item_order", 0),
            parent_id=data.get("parent_id"),
        )


@dataclass
class HistoryEntry:
    id: int
    action_type: str
    user: Optional[UserRef]
    old_value: object = None
    new_value: object = None
    description: str = ""
    created_at: Optional[datetime] = None

    @property
    def is_system(self):
        return self.user is None

    @classmethod
    def from_dict(cls, data):
        user = data.get("user")
        return cls(
            id=data["id"],
            action_type=data["action_type"],
            user=normalize_user_ref(user) if user is not None else None,
            old_value=data.get("old_value"),
            new_value=data.get("new_value"),
            description=data.get("description", ""),
            created_at=parse_datetime(data.get("created_at")),
        )


@dataclass
class BusinessProcess:
    id: int
    name: str
    description: str = ""
    is_active: bool = True

    @classmethod
    def from_dict(cls, data):
        return cls(
            id=data["id"],
            name=data["name"],
            description=data.get("description", ""),
            is_active=data.get("is_active", True),
        )


@dataclass
class Notification:
    id: int
    notification_type: str
    message_text: str
    task_id: Optional[int] = None
    is_read: bool = False
    created_at: Optional[datetime] = None

    @classmethod
    def from_dict(cls, data):
        return cls(
            id=data["id"],
            notification_type=data["notification_type"],
            message_text=data["message_text"],
            task_id=data.get("task"),
            is_read=data.get("is_read", False),
            created_at=parse_datetime(data.get("created_at")),
        )


@dataclass
class Task:
    id: int
    title: str
    status: str
    priority: int = 3
    description: str = ""
    tags: List[str] = field(default_factory=list)
    due_date: Optional[datetime] = None
    estimated_days: int = 0
    estimated_hours: int = 0
    estimated_minutes: int = 0
    actual_hours: Optional[Decimal] = None
    result: str = ""
    completed_at: Optional[datetime] = None
    creator: Optional[UserRef] = None
    assignees: List[UserRef] = field(default_factory=list)
    observers: List[UserRef] = field(default_factory=list)
    process_id: Optional[int] = None
    is_deleted: bool = False
    deleted_at: Optional[datetime] = None
    deleted_by: Optional[int] = None
    is_overdue: bool = False
    is_almost_overdue: bool = False
    comments: List[Comment] = field(default_factory=list)
    checklist: List[ChecklistItem] = field(default_factory=list)
    history: List[HistoryEntry] = field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    # the rule functions shared with the server read these
    @property
    def creator_id(self):
        return self.creator.id if self.creator else None

    @property
    def assignee_ids(self):
        return [ref.id for ref in self.assignees]

    @property
    def observer_ids(self):
        return [ref.id for ref in self.observers]

    @classmethod
    def from_dict(cls, data):
        actual_hours = data.get("actual_hours")
        return cls(
            id=data["id"],
            title=data["title"],
            status=data["status"],
            priority=data.get("priority", 3),
            description=data.get("description") or "",
            tags=list(data.get("tags") or []),
            due_date=parse_datetime(data.get("due_date")),
            estimated_days=data.get("estimated_days") or 0,
            estimated_hours=data.get("estimated_hours") or 0,
            estimated_minutes=data.get("estimated_minutes") or 0,
            actual_hours=Decimal(str(actual_hours)) if actual_hours is not None else None,
            result=data.get("result") or "",
            completed_at=parse_datetime(data.get("completed_at")),
            creator=normalize_user_ref(data["creator"]) if data.get("creator") is not None else None,
            assignees=[normalize_user_ref(u) for u in data.get("assignees") or []],
            observers=[normalize_user_ref(u) for u in data.get("observers") or []],
            process_id=data.get("process"),
            is_deleted=data.get("is_deleted", False),
            deleted_at=parse_datetime(data.get("deleted_at")),
            deleted_by=data.get("deleted_by"),
            is_overdue=data.get("is_overdue", False),
            is_almost_overdue=data.get("is_almost_overdue", False),
            comments=[Comment.from_dict(c) for c in data.get("comments") or []],
            checklist=[ChecklistItem.from_dict(i) for i in data.get("checklist") or []],
            history=[HistoryEntry.from_dict(h) for h in data.get("history") or []],
            created_at=parse_datetime(data.get("created_at")),
            updated_at=parse_datetime(data.get("updated_at")),
        )
