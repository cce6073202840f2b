from dataclasses import dataclass, field
from datetime import datetime, time, timedelta, timezone
from typing import List, Optional

from apps.tasks.domain.constants import Role, Status

ALL = "all"

TABS = (
    "all",
    "my",
    "created",
    "team",
    "overdue",
    "almost_overdue",
    "in_progress",
    "completed",
    "new",
    "paused",
    "high_priority",
    "low_priority",
)
# tabs offered in the list header, in display order
HEADER_TABS = ("all", "my", "team", "overdue", "in_progress", "completed")

VIEW_MODES = ("all", "day", "week", "month")
SORT_KEYS = ("due_date", "priority", "status", "created", "title")

STATUS_ORDER = {status: index for index, status in enumerate(Status.ALL)}

FAR_FUTURE = datetime.max.replace(tzinfo=timezone.utc)
FAR_PAST = datetime.min.replace(tzinfo=timezone.utc)


def date_range(view_mode, now):
    """Inclusive ``(start, end)`` for the view window, or None for "all"."""
    day_start = datetime.combine(now.date(), time.min, tzinfo=now.tzinfo)
    if view_mode == "day":
        start = day_start
        end = start + timedelta(days=1)
    elif view_mode == "week":
        start = day_start - timedelta(days=now.weekday())
        end = start + timedelta(days=7)
    elif view_mode == "month":
        start = day_start.replace(day=1)
        end = (start + timedelta(days=32)).replace(day=1)
    else:
        return None
    return start, end - timedelta(microseconds=1)


@dataclass
class TaskFilter:
    """List view filters applied to cached tasks before grouping."""

    show_trash: bool = False
    view_mode: str = ALL
    status: str = ALL
    priority: object = ALL
    assignee: object = ALL
    search: str = ""
    tags: List[str] = field(default_factory=list)
    tag_mode: str = "any"
    tab: str = ALL
    sort_by: str = "due_date"
    team_tab_for_all: bool = False

    def _base(self, tasks, now):
        window = date_range(self.view_mode, now)
        query = self.search.strip().lower()
        result = []
        for task in tasks:
            if bool(task.is_deleted) != self.show_trash:
                continue
            if window and (task.due_date is None or not window[0] <= task.due_date <= window[1]):
                continue
            if self.status != ALL and task.status != self.status:
                continue
            if self.priority != ALL and task.priority != int(self.priority):
                continue
            if self.assignee != ALL and int(self.assignee) not in task.assignee_ids:
                continue
            if query and not self._matches(task, query):
                continue
            if self.tags and not self._has_tags(task):
                continue
            result.append(task)
        return result

    @staticmethod
    def _matches(task, query):
        return (
            query in task.title.lower()
            or query in (task.description or "").lower()
            or any(query in tag.lower() for tag in task.tags)
        )

    def _has_tags(self, task):
        if self.tag_mode == "all":
            return all(tag in task.tags for tag in self.tags)
        return any(tag in task.tags for tag in self.tags)

    def team_tab_visible(self, user):
        return self.team_tab_for_all or (user is not None and user.role != Role.EMPLOYEE)

    def _tab(self, tasks, tab, user):
        user_id = user.id if user is not None else None
        if tab == "my":
            return [t for t in tasks if user_id in t.assignee_ids]
        if tab == "created":
            return [t for t in tasks if t.creator_id == user_id]
        if tab == "team":
            if not self.team_tab_visible(user):
                return []
            return [t for t in tasks if any(i != user_id for i in t.assignee_ids)]
        if tab == "overdue":
            return [t for t in tasks if t.is_overdue]
        if tab == "almost_overdue":
            return [t for t in tasks if t.is_almost_overdue]
        if tab in (Status.COMPLETED, Status.IN_PROGRESS, Status.NEW, Status.PAUSED):
            return [t for t in tasks if t.status == tab]
        if tab == "high_priority":
            return [t for t in tasks if t.priority <= 2]
        if tab == "low_priority":
            return [t for t in tasks if t.priority >= 4]
        return list(tasks)

    def _sort_key(self):
        if self.sort_by == "priority":
            return lambda t: (t.priority, t.id)
        if self.sort_by == "status":
            return lambda t: (STATUS_ORDER.get(t.status, 99), t.id)
        if self.sort_by == "created":
            return lambda t: (-(t.created_at or FAR_PAST).timestamp(), t.id)
        if self.sort_by == "title":
            return lambda t: (t.title.lower(), t.id)
        return lambda t: (t.due_date or FAR_FUTURE, t.id)

    def apply(self, tasks, user, now: Optional[datetime] = None):
        now = now or datetime.now(timezone.utc)
        tasks = self._tab(self._base(tasks, now), self.tab, user)
        return sorted(tasks, key=self._sort_key())

    def tab_counts(self, tasks, user, now=None):
        """Counts for the header tabs; the team tab is left out for employees."""
        now = now or datetime.now(timezone.utc)
        base = self._base(tasks, now)
        counts = {}
        for tab in HEADER_TABS:
            if tab == "team" and not self.team_tab_visible(user):
                continue
            counts[tab] = len(self._tab(base, tab, user))
        return counts

    @staticmethod
    def available_tags(tasks):
        return sorted({tag for task in tasks for tag in task.tags if tag})
