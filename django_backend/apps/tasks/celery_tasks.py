import logging

from celery import shared_task
from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.mail import send_mail
from django.utils import timezone

from apps.tasks.models import Notification, NotificationType, Task

logger = logging.getLogger(__name__)

User = get_user_model()


MESSAGES = {
    NotificationType.TASK_ASSIGNED: "You have been assigned to the task '{title}'.",
    NotificationType.TASK_COMPLETED: "The task '{title}' has been completed.",
    NotificationType.STATUS_CHANGED: "The status of '{title}' is now: {status}.",
    NotificationType.COMMENT_ADDED: "A comment was added to the task '{title}'.",
    NotificationType.TASK_OVERDUE: "The task '{title}' is overdue (due: {due_date}).",
    NotificationType.DEADLINE_APPROACHING: "The task '{title}' is due within 24 hours ({due_date}).",
    NotificationType.TASK_REMINDER: "Reminder about the task '{title}'.",
}


def _recipients(task, notification_type):
    if notification_type == NotificationType.TASK_ASSIGNED:
        users = list(task.assignees.all())
    elif notification_type == NotificationType.TASK_COMPLETED:
        users = [task.creator, *task.observers.all()]
    else:
        users = [task.creator, *task.assignees.all(), *task.observers.all()]

    unique = {}
    for user in users:
        if user is not None and user.is_active:
            unique[user.pk] = user
    return list(unique.values())


def _email(notification):
    user = notification.recipient
    if not (notification.send_to_email and user.wants_email()):
        return False
    subject = f"[{notification.get_notification_type_display()}] {notification.task.title if notification.task else ''}".strip()
    sent = send_mail(subject, notification.message_text, settings.DEFAULT_FROM_EMAIL, [user.email], fail_silently=True)
    if sent:
        notification.is_sent = True
        notification.sent_at = timezone.now()
        notification.save(update_fields=["is_sent", "sent_at"])
    return bool(sent)


def notify(task, notification_type, exclude_user_id=None):
    """Create notifications for everyone involved in ``task`` and email them."""
    template = MESSAGES.get(notification_type, "The task '{title}' has been updated.")
    message = template.format(
        title=task.title,
        status=task.get_status_display(),
        due_date=task.due_date.strftime("%Y-%m-%d %H:%M") if task.due_date else "-",
    )

    created = []
    for user in _recipients(task, notification_type):
        if user.pk == exclude_user_id:
            continue
        notification = Notification.objects.create(
            recipient=user,
            task=task,
            notification_type=notification_type,
            message_text=message,
            send_to_email=bool(user.email),
        )
        _email(notification)
        created.append(notification)
    return created


@shared_task
def send_task_notification(task_id, notification_type, actor_id=None):
    """
    Fan a task event out to the people involved in it.

    notification_type: one of NotificationType values.
    Returns the number of notifications created.
    """
    try:
        task = (
            Task.objects.select_related("creator")
            .prefetch_related("assignees", "observers")
            .get(pk=task_id)
        )
    except Task.DoesNotExist:
        logger.warning(f"Notification {notification_type} skipped, task {task_id} no longer exists")
        return 0

    created = notify(task, notification_type, exclude_user_id=actor_id)
    logger.info(f"Task {task_id}: {len(created)} '{notification_type}' notifications created")
    return len(created)


def _already_notified(task, notification_type):
    return Notification.objects.filter(task=task, notification_type=notification_type).exists()


@shared_task
def check_overdue_tasks():
    """
    Notify participants of tasks that became overdue or are due within 24 hours.

    Each task gets at most one notification of each kind. Returns a dict with
    the number of tasks notified per kind.
    """
    now = timezone.now()
    base = Task.objects.alive().select_related("creator").prefetch_related("assignees", "observers")
    counts = {NotificationType.TASK_OVERDUE.value: 0, NotificationType.DEADLINE_APPROACHING.value: 0}

    for kind, qs in (
        (NotificationType.TASK_OVERDUE, base.overdue(now)),
        (NotificationType.DEADLINE_APPROACHING, base.almost_overdue(now)),
    ):
        for task in qs:
            if _already_notified(task, kind):
                continue
            notify(task, kind)
            counts[kind.value] += 1

    logger.info(f"Deadline check at {now.isoformat()}: {counts}")
    return counts
