from .events import (
    TaskEventType,
    publish_task_event,
    publish_task_created,
    publish_task_updated,
    publish_task_status_changed,
    publish_task_deleted,
    publish_task_restored,
    publish_task_purged,
    publish_comment_event,
    publish_checklist_updated,
)

__all__ = [
    "TaskEventType",
    "publish_task_event",
    "publish_task_created",
    "publish_task_updated",
    "publish_task_status_changed",
    "publish_task_deleted",
    "publish_task_restored",
    "publish_task_purged",
    "publish_comment_event",
    "publish_checklist_updated",
]
