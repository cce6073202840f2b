import django.core.validators
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Tag",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=50, unique=True)),
            ],
            options={"ordering": ["name"]},
        ),
        migrations.CreateModel(
            name="BusinessProcess",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=200)),
                ("description", models.TextField(blank=True, default="")),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("creator", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="processes_created", to=settings.AUTH_USER_MODEL)),
            ],
            options={"ordering": ["name"], "verbose_name_plural": "business processes"},
        ),
        migrations.CreateModel(
            name="Task",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("title", models.CharField(max_length=200)),
                ("description", models.TextField(blank=True, default="")),
                ("status", models.CharField(choices=[("new", "New"), ("acknowledged", "Acknowledged"), ("in_progress", "In progress"), ("paused", "Paused"), ("waiting_control", "Waiting for control"), ("on_control", "On control"), ("completed", "Completed")], default="new", max_length=32)),
                ("priority", models.PositiveSmallIntegerField(choices=[(1, "Critical"), (2, "High"), (3, "Medium"), (4, "Low"), (5, "Very low")], default=3, validators=[django.core.validators.MinValueValidator(1), django.core.validators.MaxValueValidator(5)])),
                ("due_date", models.DateTimeField(blank=True, null=True)),
                ("estimated_days", models.PositiveIntegerField(default=0)),
                ("estimated_hours", models.PositiveIntegerField(default=0)),
                ("estimated_minutes", models.PositiveIntegerField(default=0)),
                ("actual_hours", models.DecimalField(blank=True, decimal_places=2, max_digits=6, null=True, validators=[django.core.validators.MinValueValidator(0)])),
                ("result", models.TextField(blank=True, default="")),
                ("completed_at", models.DateTimeField(blank=True, null=True)),
                ("is_deleted", models.BooleanField(default=False)),
                ("deleted_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("assignees", models.ManyToManyField(blank=True, related_name="tasks_assigned", to=settings.AUTH_USER_MODEL)),
                ("creator", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="tasks_created", to=settings.AUTH_USER_MODEL)),
                ("deleted_by", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="tasks_deleted", to=settings.AUTH_USER_MODEL)),
                ("observers", models.ManyToManyField(blank=True, related_name="tasks_observed", to=settings.AUTH_USER_MODEL)),
                ("process", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="tasks", to="tasks.businessprocess")),
                ("tags", models.ManyToManyField(blank=True, related_name="tasks", to="tasks.tag")),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["status"], name="tasks_task_status_4a0a95_idx"),
                    models.Index(fields=["priority"], name="tasks_task_priorit_a900d4_idx"),
                    models.Index(fields=["is_deleted"], name="tasks_task_is_dele_2f5c4e_idx"),
                    models.Index(fields=["due_date"], name="tasks_task_due_dat_bce847_idx"),
                    models.Index(fields=["created_at"], name="tasks_task_created_be1ba2_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Comment",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("text", models.TextField()),
                ("is_result", models.BooleanField(default=False)),
                ("is_edited", models.BooleanField(default=False)),
                ("score", models.PositiveSmallIntegerField(blank=True, null=True, validators=[django.core.validators.MinValueValidator(1), django.core.validators.MaxValueValidator(10)])),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("edited_at", models.DateTimeField(blank=True, null=True)),
                ("author", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="task_comments", to=settings.AUTH_USER_MODEL)),
                ("task", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="comments", to="tasks.task")),
            ],
            options={"ordering": ["created_at", "id"]},
        ),
        migrations.CreateModel(
            name="ChecklistItem",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("text", models.TextField()),
                ("completed", models.BooleanField(default=False)),
                ("completed_at", models.DateTimeField(blank=True, null=True)),
                ("level", models.PositiveSmallIntegerField(default=0, validators=[django.core.validators.MinValueValidator(0), django.core.validators.MaxValueValidator(5)])),
                ("item_order", models.IntegerField(default=0)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("completed_by", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="checklist_items_completed", to=settings.AUTH_USER_MODEL)),
                ("created_by", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="checklist_items_created", to=settings.AUTH_USER_MODEL)),
                ("parent", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="children", to="tasks.checklistitem")),
                ("task", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="checklist", to="tasks.task")),
            ],
            options={
                "ordering": ["item_order", "id"],
                "indexes": [models.Index(fields=["task", "item_order"], name="tasks_check_task_id_5d1c0b_idx")],
            },
        ),
        migrations.CreateModel(
            name="HistoryEntry",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("action_type", models.CharField(choices=[("created", "Created"), ("status_changed", "Status changed"), ("assigned", "Assigned"), ("unassigned", "Unassigned"), ("assignee_changed", "Assignees changed"), ("deadline_changed", "Deadline changed"), ("priority_changed", "Priority changed"), ("title_changed", "Title changed"), ("description_changed", "Description changed"), ("process_changed", "Process changed"), ("comment_added", "Comment added"), ("comment_edited", "Comment edited"), ("comment_deleted", "Comment deleted"), ("checklist_updated", "Checklist updated"), ("observer_added", "Observer added"), ("observer_removed", "Observer removed"), ("reminder_sent", "Reminder sent"), ("soft_deleted", "Moved to trash"), ("restored", "Restored"), ("permanently_deleted", "Permanently deleted")], max_length=50)),
                ("old_value", models.JSONField(blank=True, null=True)),
                ("new_value", models.JSONField(blank=True, null=True)),
                ("description", models.TextField(blank=True, default="")),
                ("additional_data", models.JSONField(blank=True, default=dict)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("task", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="history", to="tasks.task")),
                ("user", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="task_events", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "ordering": ["-created_at", "-id"],
                "verbose_name_plural": "history entries",
                "indexes": [models.Index(fields=["task", "created_at"], name="tasks_histo_task_id_8e2f41_idx")],
            },
        ),
        migrations.CreateModel(
            name="Notification",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("notification_type", models.CharField(choices=[("general", "General"), ("task_assigned", "Task assigned"), ("task_completed", "Task completed"), ("task_overdue", "Task overdue"), ("task_reminder", "Task reminder"), ("deadline_approaching", "Deadline approaching"), ("comment_added", "Comment added"), ("status_changed", "Status changed"), ("system", "System")], default="general", max_length=32)),
                ("message_text", models.TextField()),
                ("send_to_email", models.BooleanField(default=True)),
                ("send_to_telegram", models.BooleanField(default=False)),
                ("is_read", models.BooleanField(default=False)),
                ("is_sent", models.BooleanField(default=False)),
                ("sent_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("recipient", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="notifications", to=settings.AUTH_USER_MODEL)),
                ("task", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.CASCADE, related_name="notifications", to="tasks.task")),
            ],
            options={
                "ordering": ["-created_at", "-id"],
                "indexes": [models.Index(fields=["recipient", "is_read"], name="tasks_notif_recipie_3b7c9a_idx")],
            },
        ),
    ]
