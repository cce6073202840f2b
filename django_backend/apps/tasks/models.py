from datetime import timedelta

from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.utils import timezone

from apps.tasks.domain import deadline_flags
from apps.tasks.domain.checklist import MAX_LEVEL, MIN_LEVEL
from apps.tasks.domain.constants import Status


class TaskStatus(models.TextChoices):
    NEW = Status.NEW, "New"
    ACKNOWLEDGED = Status.ACKNOWLEDGED, "Acknowledged"
    IN_PROGRESS = Status.IN_PROGRESS, "In progress"
    PAUSED = Status.PAUSED, "Paused"
    WAITING_CONTROL = Status.WAITING_CONTROL, "Waiting for control"
    ON_CONTROL = Status.ON_CONTROL, "On control"
    COMPLETED = Status.COMPLETED, "Completed"


class TaskPriority(models.IntegerChoices):
    CRITICAL = 1, "Critical"
    HIGH = 2, "High"
    MEDIUM = 3, "Medium"
    LOW = 4, "Low"
    VERY_LOW = 5, "Very low"


class HistoryActionType(models.TextChoices):
    CREATED = "created", "Created"
    STATUS_CHANGED = "status_changed", "Status changed"
    ASSIGNED = "assigned", "Assigned"
    UNASSIGNED = "unassigned", "Unassigned"
    ASSIGNEE_CHANGED = "assignee_changed", "Assignees changed"
    DEADLINE_CHANGED = "deadline_changed", "Deadline changed"
    PRIORITY_CHANGED = "priority_changed", "Priority changed"
    TITLE_CHANGED = "title_changed", "Title changed"
    DESCRIPTION_CHANGED = "description_changed", "Description changed"
    PROCESS_CHANGED = "process_changed", "Process changed"
    COMMENT_ADDED = "comment_added", "Comment added"
    COMMENT_EDITED = "comment_edited", "Comment edited"
    COMMENT_DELETED = "comment_deleted", "Comment deleted"
    CHECKLIST_UPDATED = "checklist_updated", "Checklist updated"
    OBSERVER_ADDED = "observer_added", "Observer added"
    OBSERVER_REMOVED = "observer_removed", "Observer removed"
    REMINDER_SENT = "reminder_sent", "Reminder sent"
    SOFT_DELETED = "soft_deleted", "Moved to trash"
    RESTORED = "restored", "Restored"
    PERMANENTLY_DELETED = "permanently_deleted", "Permanently deleted"


class NotificationType(models.TextChoices):
    GENERAL = "general", "General"
    TASK_ASSIGNED = "task_assigned", "Task assigned"
    TASK_COMPLETED = "task_completed", "Task completed"
    TASK_OVERDUE = "task_overdue", "Task overdue"
    TASK_REMINDER = "task_reminder", "Task reminder"
    DEADLINE_APPROACHING = "deadline_approaching", "Deadline approaching"
    COMMENT_ADDED = "comment_added", "Comment added"
    STATUS_CHANGED = "status_changed", "Status changed"
    SYSTEM = "system", "System"


class Tag(models.Model):
    name = models.CharField(max_length=50, unique=True)

    class Meta:
        ordering = ["name"]

    def __str__(self) -> str:
        return self.name


class BusinessProcess(models.Model):
    name = models.CharField(max_length=200)
    description = models.TextField(blank=True, default="")
    creator = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="processes_created",
    )
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["name"]
        verbose_name_plural = "business processes"

    def __str__(self) -> str:
        return self.name


class TaskQuerySet(models.QuerySet):
    def alive(self):
        return self.filter(is_deleted=False)

    def in_trash(self):
        return self.filter(is_deleted=True)

    def overdue(self, now=None):
        now = now or timezone.now()
        return self.filter(due_date__lt=now).exclude(status=TaskStatus.COMPLETED)

    def almost_overdue(self, now=None):
        now = now or timezone.now()
        return self.filter(
            due_date__gte=now,
            due_date__lte=now + timedelta(hours=24),
        ).exclude(status=TaskStatus.COMPLETED)


class Task(models.Model):
    title = models.CharField(max_length=200)
    description = models.TextField(blank=True, default="")

    status = models.CharField(max_length=32, choices=TaskStatus.choices, default=TaskStatus.NEW)
    priority = models.PositiveSmallIntegerField(
        choices=TaskPriority.choices,
        default=TaskPriority.MEDIUM,
        validators=[MinValueValidator(1), MaxValueValidator(5)],
    )

    due_date = models.DateTimeField(null=True, blank=True)
    estimated_days = models.PositiveIntegerField(default=0)
    estimated_hours = models.PositiveIntegerField(default=0)
    estimated_minutes = models.PositiveIntegerField(default=0)
    actual_hours = models.DecimalField(
        max_digits=6,
        decimal_places=2,
        null=True,
        blank=True,
        validators=[MinValueValidator(0)],
    )
    result = models.TextField(blank=True, default="")
    completed_at = models.DateTimeField(null=True, blank=True)

    creator = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="tasks_created",
    )
    assignees = models.ManyToManyField(
        settings.AUTH_USER_MODEL,
        related_name="tasks_assigned",
        blank=True,
    )
    observers = models.ManyToManyField(
        settings.AUTH_USER_MODEL,
        related_name="tasks_observed",
        blank=True,
    )
    process = models.ForeignKey(
        BusinessProcess,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="tasks",
    )
    tags = models.ManyToManyField(Tag, blank=True, related_name="tasks")

    is_deleted = models.BooleanField(default=False)
    deleted_at = models.DateTimeField(null=True, blank=True)
    deleted_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="tasks_deleted",
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = TaskQuerySet.as_manager()

    class Meta:
        indexes = [
            models.Index(fields=["status"], name="tasks_task_status_4a0a95_idx"),
            models.Index(fields=["priority"], name="tasks_task_priorit_a900d4_idx"),
            models.Index(fields=["is_deleted"], name="tasks_task_is_dele_2f5c4e_idx"),
            models.Index(fields=["due_date"], name="tasks_task_due_dat_bce847_idx"),
            models.Index(fields=["created_at"], name="tasks_task_created_be1ba2_idx"),
        ]
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return self.title

    # The rule functions in apps.tasks.domain read these id lists.
    @property
    def assignee_ids(self):
        return [user.pk for user in self.assignees.all()]

    @property
    def observer_ids(self):
        return [user.pk for user in self.observers.all()]

    @property
    def tag_names(self):
        return [tag.name for tag in self.tags.all()]

    def deadline_flags(self, now=None):
        return deadline_flags(self.due_date, self.status, now or timezone.now())

    @property
    def is_overdue(self):
        return self.deadline_flags().is_overdue

    @property
    def is_almost_overdue(self):
        return self.deadline_flags().is_almost_overdue


class Comment(models.Model):
    task = models.ForeignKey(Task, on_delete=models.CASCADE, related_name="comments")
    author = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="task_comments",
    )
    text = models.TextField()
    is_result = models.BooleanField(default=False)
    is_edited = models.BooleanField(default=False)
    score = models.PositiveSmallIntegerField(
        null=True,
        blank=True,
        validators=[MinValueValidator(1), MaxValueValidator(10)],
    )
    created_at = models.DateTimeField(auto_now_add=True)
    edited_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["created_at", "id"]

    def __str__(self) -> str:
        return f"Comment #{self.pk} on {self.task_id}"


class ChecklistItem(models.Model):
    task = models.ForeignKey(Task, on_delete=models.CASCADE, related_name="checklist")
    text = models.TextField()
    completed = models.BooleanField(default=False)
    completed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="checklist_items_completed",
    )
    completed_at = models.DateTimeField(null=True, blank=True)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="checklist_items_created",
    )
    level = models.PositiveSmallIntegerField(
        default=0,
        validators=[MinValueValidator(MIN_LEVEL), MaxValueValidator(MAX_LEVEL)],
    )
    item_order = models.IntegerField(default=0)
    parent = models.ForeignKey(
        "self",
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="children",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["item_order", "id"]
        indexes = [models.Index(fields=["task", "item_order"], name="tasks_check_task_id_5d1c0b_idx")]

    def __str__(self) -> str:
        return self.text[:50]

    def set_completed(self, completed, user):
        self.completed = completed
        self.completed_by = user if completed else None
        self.completed_at = timezone.now() if completed else None


class HistoryEntry(models.Model):
    """Append-only audit record; user is None for system actions."""

    task = models.ForeignKey(Task, on_delete=models.CASCADE, related_name="history")
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="task_events",
    )
    action_type = models.CharField(max_length=50, choices=HistoryActionType.choices)
    old_value = models.JSONField(null=True, blank=True)
    new_value = models.JSONField(null=True, blank=True)
    description = models.TextField(blank=True, default="")
    additional_data = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        indexes = [models.Index(fields=["task", "created_at"], name="tasks_histo_task_id_8e2f41_idx")]
        verbose_name_plural = "history entries"

    def __str__(self) -> str:
        return f"{self.action_type} on {self.task_id}"

    def save(self, *args, **kwargs):
        if self.pk is not None:
            raise ValueError("History entries are append-only")
        super().save(*args, **kwargs)

    @classmethod
    def record(cls, task, user, action_type, description="", old_value=None, new_value=None, **extra):
        return cls.objects.create(
            task=task,
            user=user,
            action_type=action_type,
            description=description,
            old_value=old_value,
            new_value=new_value,
            additional_data=extra,
        )


class Notification(models.Model):
    recipient = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="notifications",
    )
    task = models.ForeignKey(
        Task,
        null=True,
        blank=True,
        on_delete=models.CASCADE,
        related_name="notifications",
    )
    notification_type = models.CharField(
        max_length=32,
        choices=NotificationType.choices,
        default=NotificationType.GENERAL,
    )
    message_text = models.TextField()
    send_to_email = models.BooleanField(default=True)
    send_to_telegram = models.BooleanField(default=False)
    is_read = models.BooleanField(default=False)
    is_sent = models.BooleanField(default=False)
    sent_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        indexes = [models.Index(fields=["recipient", "is_read"], name="tasks_notif_recipie_3b7c9a_idx")]

    def __str__(self) -> str:
        return f"{self.notification_type} -> {self.recipient_id}"
