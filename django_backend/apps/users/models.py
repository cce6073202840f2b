from django.contrib.auth.models import AbstractUser
from django.db import models

from apps.tasks.domain.constants import Role


class UserRole(models.TextChoices):
    DIRECTOR = Role.DIRECTOR, "Director"
    DEPARTMENT_HEAD = Role.DEPARTMENT_HEAD, "Department head"
    EMPLOYEE = Role.EMPLOYEE, "Employee"
    ADMIN = Role.ADMIN, "Administrator"


def default_notification_settings():
    return {"email": True, "telegram": False}


class User(AbstractUser):
    display_name = models.CharField(max_length=150, blank=True, default="")
    role = models.CharField(max_length=32, choices=UserRole.choices, default=UserRole.EMPLOYEE)
    position = models.CharField(max_length=150, blank=True, default="")
    phone = models.CharField(max_length=32, blank=True, default="")
    avatar = models.URLField(blank=True, default="")
    notification_settings = models.JSONField(default=default_notification_settings, blank=True)

    class Meta:
        ordering = ["id"]

    def __str__(self):
        return self.username

    @property
    def name(self):
        return self.display_name or self.get_full_name() or self.username

    @property
    def is_director(self):
        return self.role == UserRole.DIRECTOR

    @property
    def is_manager(self):
        return self.role in Role.MANAGERS

    def wants_email(self):
        return bool(self.email) and self.notification_settings.get("email", True)
