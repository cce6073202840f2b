"""
Grouping of task lists into labelled buckets, flattened into typed rows.

Groups are always expanded. The output only depends on the input tasks, the
grouping key, the process list and ``now``/``tz``, so identical input gives
identical groups and rows.
"""
import calendar
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from apps.tasks.domain.constants import PRIORITY_LABELS

TIME = "time"
PROCESS = "process"
PRIORITY = "priority"
GROUP_BY_CHOICES = (TIME, PROCESS, PRIORITY)

NO_DEADLINE = "none"

TRASH_INFO = "trash-info"
GROUP_HEADER = "group-header"
TASK = "task"
EMPTY = "empty"

TRASH_INFO_HEIGHT = 100
HEADER_HEIGHT = 56
TASK_ROW_HEIGHT = 192
EMPTY_HEIGHT = 200

ROW_HEIGHTS = {
    TRASH_INFO: TRASH_INFO_HEIGHT,
    GROUP_HEADER: HEADER_HEIGHT,
    TASK: TASK_ROW_HEIGHT,
    EMPTY: EMPTY_HEIGHT,
}


@dataclass
class TaskGroup:
    key: object
    label: str
    tasks: list = field(default_factory=list)

    def __len__(self):
        return len(self.tasks)


@dataclass(frozen=True)
class Row:
    kind: str
    key: str
    height: int
    group: Optional[TaskGroup] = None
    task: object = None


def is_trash_view(tasks):
    tasks = list(tasks)
    return bool(tasks) and all(task.is_deleted for task in tasks)


def _bucket(tasks, key_of, label_of):
    groups = {}
    for task in tasks:
        key = key_of(task)
        if key not in groups:
            groups[key] = TaskGroup(key, label_of(key))
        groups[key].tasks.append(task)
    return list(groups.values())


def _local(value, tz):
    return value.astimezone(tz) if tz is not None and value.tzinfo is not None else value


def group_by_time(tasks, tz=None):
    def key_of(task):
        if task.due_date is None:
            return NO_DEADLINE
        return f"{_local(task.due_date, tz).hour}:00"

    def label_of(key):
        return "No deadline" if key == NO_DEADLINE else key

    groups = _bucket(tasks, key_of, label_of)
    return sorted(groups, key=lambda g: (g.key == NO_DEADLINE, int(g.key.split(":")[0]) if g.key != NO_DEADLINE else 0))


def group_by_process(tasks, processes=()):
    names = {p.id: p.name for p in processes}

    def label_of(key):
        if key is None:
            return "No process"
        return names.get(key, "Unknown process")

    groups = _bucket(tasks, lambda task: task.process_id, label_of)
    return sorted(groups, key=lambda g: (g.key is None, g.label.lower(), str(g.key)))


def group_by_priority(tasks):
    def label_of(key):
        return f"{key} - {PRIORITY_LABELS.get(key, 'Unknown')}"

    return sorted(_bucket(tasks, lambda task: task.priority, label_of), key=lambda g: g.key)


def trash_label(day, today):
    if day == today:
        return "Today"
    if day == today - timedelta(days=1):
        return "Yesterday"
    label = f"{day.day} {calendar.month_name[day.month]}"
    if day.year != today.year:
        label += f" {day.year}"
    return label


def group_by_deletion_date(tasks, now, tz=None):
    today = _local(now, tz).date()

    def key_of(task):
        deleted_at = task.deleted_at or now
        return _local(deleted_at, tz).date().isoformat()

    def label_of(key):
        return trash_label(datetime.strptime(key, "%Y-%m-%d").date(), today)

    return sorted(_bucket(tasks, key_of, label_of), key=lambda g: g.key, reverse=True)


def group_tasks(tasks, group_by=TIME, processes=(), now=None, tz=None) -> List[TaskGroup]:
    """
    Bucket ``tasks`` by ``group_by``. A list made only of deleted tasks is
    grouped by deletion date whatever ``group_by`` says.
    """
    tasks = list(tasks)
    now = now or datetime.now(timezone.utc)
    if is_trash_view(tasks):
        return group_by_deletion_date(tasks, now, tz)
    if group_by == PROCESS:
        return group_by_process(tasks, processes)
    if group_by == PRIORITY:
        return group_by_priority(tasks)
    return group_by_time(tasks, tz)


def build_rows(groups, trash_view=False) -> List[Row]:
    if not groups:
        return [Row(EMPTY, EMPTY, EMPTY_HEIGHT)]
    rows = []
    if trash_view:
        rows.append(Row(TRASH_INFO, TRASH_INFO, TRASH_INFO_HEIGHT))
    for group in groups:
        rows.append(Row(GROUP_HEADER, f"group:{group.key}", HEADER_HEIGHT, group=group))
        for task in group.tasks:
            rows.append(Row(TASK, f"task:{task.id}", TASK_ROW_HEIGHT, group=group, task=task))
    return rows


def row_height(rows):
    """Index -> height function for ``VirtualList``."""
    return lambda index: rows[index].height if 0 <= index < len(rows) else TASK_ROW_HEIGHT
