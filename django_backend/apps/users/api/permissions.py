from rest_framework.permissions import BasePermission

from apps.tasks.domain.constants import Role


class IsSelfOrAdmin(BasePermission):
    """Reading or changing a user's private data: the user or an administrator."""

    def has_object_permission(self, request, view, obj):
        user = request.user
        if not user or not user.is_authenticated:
            return False
        return obj.id == user.id or user.is_staff or user.role == Role.ADMIN
