import csv
import io

from django.utils import timezone

EXPORT_COLUMNS = [
    "id",
    "title",
    "status",
    "priority",
    "creator",
    "assignees",
    "observers",
    "process",
    "tags",
    "due_date",
    "created_at",
    "completed_at",
    "estimated",
    "actual_hours",
    "result",
    "is_overdue",
    "is_almost_overdue",
    "is_deleted",
    "comments_count",
    "results_count",
    "last_comment",
]


def _person(user):
    return f"{user.name} ({user.position or user.role})"


def _when(value):
    return value.isoformat() if value else ""


def task_row(task, now):
    comments = sorted(task.comments.all(), key=lambda c: (c.created_at, c.id))
    last = comments[-1] if comments else None
    flags = task.deadline_flags(now)
    return [
        task.id,
        task.title,
        task.get_status_display(),
        task.priority,
        _person(task.creator),
        "; ".join(_person(u) for u in task.assignees.all()),
        "; ".join(_person(u) for u in task.observers.all()),
        task.process.name if task.process else "",
        ", ".join(sorted(t.name for t in task.tags.all())),
        _when(task.due_date),
        _when(task.created_at),
        _when(task.completed_at),
        f"{task.estimated_days}d {task.estimated_hours}h {task.estimated_minutes}m",
        task.actual_hours if task.actual_hours is not None else "",
        task.result,
        flags.is_overdue,
        flags.is_almost_overdue,
        task.is_deleted,
        len(comments),
        sum(1 for c in comments if c.is_result),
        f"{last.author.name}: {last.text}" if last else "",
    ]


def export_tasks_csv(tasks, now=None):
    """Render tasks as CSV text with a header row."""
    now = now or timezone.now()
    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow(EXPORT_COLUMNS)
    for task in tasks:
        writer.writerow(task_row(task, now))
    return output.getvalue()
