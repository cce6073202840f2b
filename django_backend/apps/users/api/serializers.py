from django.contrib.auth import get_user_model
from rest_framework import serializers

from apps.tasks.models import Notification

User = get_user_model()


class UserBriefSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = ["id", "username", "display_name", "role", "position", "avatar"]
        read_only_fields = fields


class UserSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = [
            "id",
            "username",
            "email",
            "first_name",
            "last_name",
            "display_name",
            "role",
            "position",
            "phone",
            "avatar",
            "is_active",
            "notification_settings",
        ]
        read_only_fields = fields


class NotificationSerializer(serializers.ModelSerializer):
    task_title = serializers.CharField(source="task.title", read_only=True, default=None)

    class Meta:
        model = Notification
        fields = [
            "id",
            "recipient",
            "task",
            "task_title",
            "notification_type",
            "message_text",
            "send_to_email",
            "send_to_telegram",
            "is_read",
            "is_sent",
            "sent_at",
            "created_at",
        ]
        read_only_fields = ["id", "recipient", "task_title", "is_read", "is_sent", "sent_at", "created_at"]

    def validate_message_text(self, value):
        if not value.strip():
            raise serializers.ValidationError("Message text is required.")
        return value


class NotificationQuerySerializer(serializers.Serializer):
    unread_only = serializers.BooleanField(required=False, default=False)
    limit = serializers.IntegerField(required=False, default=20, min_value=1, max_value=200)
    offset = serializers.IntegerField(required=False, default=0, min_value=0)


class NotificationUpdateSerializer(serializers.Serializer):
    MARK_ALL_READ = "mark_all_read"
    DELETE_READ = "delete_read"

    action = serializers.ChoiceField(choices=[MARK_ALL_READ, DELETE_READ], required=False)
    notification_ids = serializers.ListField(
        child=serializers.IntegerField(min_value=1), required=False, allow_empty=False
    )
    is_read = serializers.BooleanField(required=False, default=True)

    def validate(self, attrs):
        if not attrs.get("action") and not attrs.get("notification_ids"):
            raise serializers.ValidationError("Either action or notification_ids is required.")
        return attrs
