import logging

from django.contrib.auth import get_user_model
from django.shortcuts import get_object_or_404
from rest_framework import permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from .permissions import IsSelfOrAdmin
from .serializers import (
    NotificationQuerySerializer,
    NotificationSerializer,
    NotificationUpdateSerializer,
    UserSerializer,
)

logger = logging.getLogger(__name__)

User = get_user_model()


class UserViewSet(viewsets.ReadOnlyModelViewSet):
    serializer_class = UserSerializer
    permission_classes = [permissions.IsAuthenticated]

    def get_queryset(self):
        qs = User.objects.all().order_by("id")
        params = self.request.query_params
        if params.get("include_inactive") not in ("1", "true", "True"):
            qs = qs.filter(is_active=True)
        if params.get("role"):
            qs = qs.filter(role=params["role"])
        return qs

    @action(detail=False, methods=["get"])
    def me(self, request):
        return Response(UserSerializer(request.user).data)

    def _recipient(self, pk):
        # notifications stay reachable for deactivated users
        return get_object_or_404(User, pk=pk)

    @action(detail=True, methods=["get"])
    def notifications(self, request, pk=None):
        user = self._recipient(pk)
        self.check_object_permissions_for(request, user)

        query = NotificationQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        params = query.validated_data

        qs = user.notifications.select_related("task")
        unread_count = qs.filter(is_read=False).count()
        if params["unread_only"]:
            qs = qs.filter(is_read=False)
        total = qs.count()
        page = qs[params["offset"]:params["offset"] + params["limit"]]

        return Response({
            "notifications": NotificationSerializer(page, many=True).data,
            "total": total,
            "unread_count": unread_count,
        })

    @notifications.mapping.post
    def create_notification(self, request, pk=None):
        user = self._recipient(pk)
        ser = NotificationSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        notification = ser.save(recipient=user)
        logger.info(f"User {request.user.id} sent {notification.notification_type} notification to {user.id}")
        return Response(NotificationSerializer(notification).data, status=status.HTTP_201_CREATED)

    @notifications.mapping.patch
    def update_notifications(self, request, pk=None):
        user = self._recipient(pk)
        self.check_object_permissions_for(request, user)

        ser = NotificationUpdateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data
        qs = user.notifications.all()

        if data.get("action") == NotificationUpdateSerializer.MARK_ALL_READ:
            updated = qs.filter(is_read=False).update(is_read=True)
            return Response({"updated": updated})

        if data.get("action") == NotificationUpdateSerializer.DELETE_READ:
            deleted, _ = qs.filter(is_read=True).delete()
            return Response({"deleted": deleted})

        updated = qs.filter(id__in=data["notification_ids"]).update(is_read=data["is_read"])
        return Response({"updated": updated})

    def check_object_permissions_for(self, request, user):
        if not IsSelfOrAdmin().has_object_permission(request, self, user):
            self.permission_denied(request, message="You can only manage your own notifications")
