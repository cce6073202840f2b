from rest_framework.permissions import BasePermission

from apps.tasks.domain.permissions import can_view_task


class CanViewTask(BasePermission):
    """Object-level visibility; what a user may change is decided per action."""

    message = "You are not a participant of this task"

    def has_object_permission(self, request, view, obj):
        return can_view_task(obj, request.user)
