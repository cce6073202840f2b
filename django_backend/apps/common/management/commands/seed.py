import random
from datetime import timedelta

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand
from django.db import transaction
from django.utils import timezone

from apps.tasks.models import (
    BusinessProcess,
    ChecklistItem,
    Comment,
    HistoryActionType,
    HistoryEntry,
    Tag,
    Task,
    TaskStatus,
)
from apps.tasks.domain.checklist import relink
from apps.users.models import UserRole

User = get_user_model()

FIRST_NAMES = ["Alice", "Bob", "Charlie", "Diana", "Eve", "Frank", "Grace", "Henry", "Ivy", "Jack"]
LAST_NAMES = ["Smith", "Johnson", "Brown", "Taylor", "Wilson", "Davies", "Evans", "Thomas"]
PROCESSES = ["Procurement", "Hiring", "Quarterly report", "Client onboarding"]
TAGS = ["urgent", "finance", "legal", "hr", "it", "docs", "meeting"]
TASK_TITLES = [
    "Prepare contract draft",
    "Review budget",
    "Update onboarding guide",
    "Collect signatures",
    "Schedule kickoff meeting",
    "Audit access rights",
    "Reconcile invoices",
    "Draft job description",
]


class Command(BaseCommand):
    help = "Seed the database with demo users, processes and tasks"

    def add_arguments(self, parser):
        parser.add_argument("--users", type=int, default=8, help="Number of employees to create")
        parser.add_argument("--tasks", type=int, default=40, help="Number of tasks to create")

    @transaction.atomic
    def handle(self, *args, **options):
        users = self.create_users(options["users"])
        processes = self.create_processes(users[0])
        tags = [Tag.objects.get_or_create(name=name)[0] for name in TAGS]
        tasks = self.create_tasks(users, processes, tags, options["tasks"])

        self.stdout.write(self.style.SUCCESS(
            f"Seeded {len(users)} users, {len(processes)} processes, {len(tags)} tags, {len(tasks)} tasks.\n"
            f"Director: director / password123"
        ))

    def _user(self, username, role, first_name, last_name):
        user, created = User.objects.get_or_create(
            username=username,
            defaults={
                "first_name": first_name,
                "last_name": last_name,
                "email": f"{username}@taskflow.local",
                "role": role,
                "display_name": f"{first_name} {last_name}",
            },
        )
        if created:
            user.set_password("password123")
            user.save(update_fields=["password"])
        return user

    def create_users(self, count):
        self.stdout.write("Creating users...")
        users = [
            self._user("director", UserRole.DIRECTOR, "Dana", "Director"),
            self._user("head", UserRole.DEPARTMENT_HEAD, "Harry", "Head"),
        ]
        for i in range(count):
            first, last = FIRST_NAMES[i % len(FIRST_NAMES)], LAST_NAMES[i % len(LAST_NAMES)]
            users.append(self._user(f"{first.lower()}{i}", UserRole.EMPLOYEE, first, last))
        return users

    def create_processes(self, creator):
        self.stdout.write("Creating business processes...")
        return [
            BusinessProcess.objects.get_or_create(name=name, defaults={"creator": creator})[0]
            for name in PROCESSES
        ]

    def create_tasks(self, users, processes, tags, count):
        self.stdout.write("Creating tasks...")
        now = timezone.now()
        tasks = []
        for i in range(count):
            creator = random.choice(users[:2])
            task = Task.objects.create(
                title=f"{random.choice(TASK_TITLES)} #{i + 1}",
                description="Generated by the seed command.",
                priority=random.randint(1, 5),
                status=random.choice(TaskStatus.values),
                creator=creator,
                process=random.choice([None, *processes]),
                due_date=now + timedelta(hours=random.randint(-48, 24 * 14)),
                estimated_hours=random.randint(0, 8),
            )
            task.assignees.set(random.sample(users[2:], k=min(2, len(users) - 2)))
            task.observers.set(random.sample(users[:2], k=1))
            task.tags.set(random.sample(tags, k=2))
            if task.status == TaskStatus.COMPLETED:
                task.completed_at = now
                task.save(update_fields=["completed_at"])

            items = [
                ChecklistItem.objects.create(
                    task=task, text=text, item_order=order, level=1 if order else 0, created_by=creator
                )
                for order, text in enumerate(["Gather inputs", "Draft", "Review"])
            ]
            ChecklistItem.objects.bulk_update(relink(items), ["parent"])
            Comment.objects.create(task=task, author=creator, text="<p>Please keep me posted.</p>")
            HistoryEntry.record(task, creator, HistoryActionType.CREATED, description="Task created")
            tasks.append(task)
        return tasks
