from datetime import timedelta

from django.core import mail
from django.test import TestCase

from apps.tasks.celery_tasks import check_overdue_tasks, send_task_notification
from apps.tasks.models import Notification, NotificationType, TaskStatus
from apps.users.models import UserRole

from .factories import make_task, make_user


class SendTaskNotificationTest(TestCase):
    """Test the notification fan-out task"""

    def setUp(self):
        self.head = make_user("head", UserRole.DEPARTMENT_HEAD)
        self.alice = make_user("alice")
        self.bob = make_user("bob")
        self.task = make_task(self.head, [self.alice], [self.bob])

    def test_assignment_notifies_assignees(self):
        count = send_task_notification.delay(self.task.id, NotificationType.TASK_ASSIGNED, self.head.id).get()

        self.assertEqual(count, 1)
        notification = Notification.objects.get()
        self.assertEqual(notification.recipient, self.alice)
        self.assertIn(self.task.title, notification.message_text)
        self.assertTrue(notification.is_sent)
        self.assertEqual(len(mail.outbox), 1)

    def test_actor_is_excluded(self):
        count = send_task_notification(self.task.id, NotificationType.COMMENT_ADDED, self.alice.id)

        self.assertEqual(count, 2)
        self.assertEqual(
            set(Notification.objects.values_list("recipient_id", flat=True)), {self.head.id, self.bob.id}
        )

    def test_completion_notifies_creator_and_observers(self):
        send_task_notification(self.task.id, NotificationType.TASK_COMPLETED, self.alice.id)

        self.assertEqual(
            set(Notification.objects.values_list("recipient_id", flat=True)), {self.head.id, self.bob.id}
        )

    def test_email_opt_out(self):
        self.alice.notification_settings = {"email": False}
        self.alice.save()

        send_task_notification(self.task.id, NotificationType.TASK_ASSIGNED)

        self.assertFalse(Notification.objects.get().is_sent)
        self.assertEqual(len(mail.outbox), 0)

    def test_missing_task(self):
        self.assertEqual(send_task_notification(999999, NotificationType.TASK_ASSIGNED), 0)


class CheckOverdueTasksTest(TestCase):
    """Test the hourly deadline check"""

    def setUp(self):
        self.head = make_user("head", UserRole.DEPARTMENT_HEAD)
        self.alice = make_user("alice")

    def test_notifies_once_per_task(self):
        overdue = make_task(self.head, [self.alice], due_in=-timedelta(hours=1), status=TaskStatus.IN_PROGRESS)
        soon = make_task(self.head, [self.alice], due_in=timedelta(hours=3))
        make_task(self.head, [self.alice], due_in=timedelta(days=4))
        make_task(self.head, [self.alice], due_in=-timedelta(hours=1), status=TaskStatus.COMPLETED)
        make_task(self.head, [self.alice], due_in=-timedelta(hours=1), is_deleted=True)

        first = check_overdue_tasks()
        second = check_overdue_tasks()

        self.assertEqual(first, {"task_overdue": 1, "deadline_approaching": 1})
        self.assertEqual(second, {"task_overdue": 0, "deadline_approaching": 0})
        self.assertEqual(
            set(Notification.objects.filter(task=overdue).values_list("notification_type", flat=True)),
            {NotificationType.TASK_OVERDUE},
        )
        self.assertEqual(Notification.objects.filter(task=soon).count(), 2)
