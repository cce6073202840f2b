import logging
from enum import Enum
from typing import Any, Dict, Optional

from apps.common.events import EventPayload, EventPublisherFactory
from apps.common.kafka.config import TASK_EVENTS_TOPIC

logger = logging.getLogger(__name__)


class TaskEventType(Enum):
    TASK_CREATED = "task_created"
    TASK_UPDATED = "task_updated"
    TASK_STATUS_CHANGED = "task_status_changed"
    TASK_DELETED = "task_deleted"
    TASK_RESTORED = "task_restored"
    TASK_PURGED = "task_purged"
    TASK_COMMENT_ADDED = "task_comment_added"
    TASK_COMMENT_UPDATED = "task_comment_updated"
    TASK_COMMENT_DELETED = "task_comment_deleted"
    TASK_CHECKLIST_UPDATED = "task_checklist_updated"


def publish_task_event(
    event_type: TaskEventType,
    user_id: Optional[int],
    data: Dict[str, Any],
    metadata: Optional[Dict[str, Any]] = None,
) -> bool:
    """
    Publish a task event through the configured publisher.

    Publishing never breaks the request that caused it: failures are logged
    and reported through the return value.
    """
    try:
        payload = EventPayload(
            event_type=event_type.value,
            user_id=user_id,
            data=data,
            metadata=metadata,
        )
        publisher = EventPublisherFactory.get_publisher()
        # partition by task so a consumer sees one task's events in order
        message_key = str(data.get("task_id", user_id))
        success = publisher.publish(topic=TASK_EVENTS_TOPIC, event=payload, key=message_key)
    except Exception as e:
        logger.error(f"Error publishing task event {event_type.value}: {e}")
        return False

    if success:
        logger.info(f"Task event published: {event_type.value}")
    else:
        logger.error(f"Failed to publish task event: {event_type.value}")
    return success


def publish_task_created(user_id, task):
    return publish_task_event(TaskEventType.TASK_CREATED, user_id, {
        "task_id": task.id,
        "title": task.title,
        "priority": task.priority,
        "assignee_ids": task.assignee_ids,
        "due_date": task.due_date.isoformat() if task.due_date else None,
    })


def publish_task_updated(user_id, task, changes: Dict[str, Any]):
    return publish_task_event(TaskEventType.TASK_UPDATED, user_id, {
        "task_id": task.id,
        "title": task.title,
        "changes": changes,
    })


def publish_task_status_changed(user_id, task, old_status, new_status):
    return publish_task_event(TaskEventType.TASK_STATUS_CHANGED, user_id, {
        "task_id": task.id,
        "title": task.title,
        "old_status": old_status,
        "new_status": new_status,
    })


def publish_task_deleted(user_id, task):
    return publish_task_event(TaskEventType.TASK_DELETED, user_id, {"task_id": task.id, "title": task.title})


def publish_task_restored(user_id, task):
    return publish_task_event(TaskEventType.TASK_RESTORED, user_id, {"task_id": task.id, "title": task.title})


def publish_task_purged(user_id, task_id, title):
    return publish_task_event(TaskEventType.TASK_PURGED, user_id, {"task_id": task_id, "title": title})


def publish_comment_event(event_type, user_id, comment):
    return publish_task_event(event_type, user_id, {
        "task_id": comment.task_id,
        "comment_id": comment.id,
        "is_result": comment.is_result,
    })


def publish_checklist_updated(user_id, task, operation, item_id):
    return publish_task_event(TaskEventType.TASK_CHECKLIST_UPDATED, user_id, {
        "task_id": task.id,
        "operation": operation,
        "item_id": item_id,
    })
