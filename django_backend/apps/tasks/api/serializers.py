from django.contrib.auth import get_user_model
from django.utils import timezone
from rest_framework import serializers

from apps.tasks.domain import compute_available_actions, evaluate_permissions
from apps.tasks.domain.checklist import MAX_LEVEL, MIN_LEVEL, relink
from apps.tasks.domain.constants import STATUS_LABELS
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
from apps.users.api.serializers import UserBriefSerializer

User = get_user_model()


class TagSerializer(serializers.ModelSerializer):
    class Meta:
        model = Tag
        fields = ["id", "name"]


class BusinessProcessSerializer(serializers.ModelSerializer):
    creator = serializers.PrimaryKeyRelatedField(read_only=True)

    class Meta:
        model = BusinessProcess
        fields = ["id", "name", "description", "creator", "is_active", "created_at"]
        read_only_fields = ["id", "creator", "created_at"]


class CommentSerializer(serializers.ModelSerializer):
    author = UserBriefSerializer(read_only=True)

    class Meta:
        model = Comment
        fields = ["id", "task", "author", "text", "is_result", "is_edited", "score", "created_at", "edited_at"]
        read_only_fields = ["id", "task", "author", "is_edited", "created_at", "edited_at"]

    def validate_text(self, value):
        if not value.strip():
            raise serializers.ValidationError("Comment text is required.")
        return value


class CommentUpdateSerializer(serializers.Serializer):
    text = serializers.CharField()

    def validate_text(self, value):
        if not value.strip():
            raise serializers.ValidationError("Comment text is required.")
        return value


class ChecklistItemSerializer(serializers.ModelSerializer):
    parent_id = serializers.IntegerField(read_only=True)

    class Meta:
        model = ChecklistItem
        fields = [
            "id",
            "task",
            "text",
            "completed",
            "completed_by",
            "completed_at",
            "created_by",
            "level",
            "item_order",
            "parent_id",
            "created_at",
        ]
        read_only_fields = [
            "id",
            "task",
            "completed",
            "completed_by",
            "completed_at",
            "created_by",
            "item_order",
            "parent_id",
            "created_at",
        ]
        extra_kwargs = {"level": {"min_value": MIN_LEVEL, "max_value": MAX_LEVEL}}


class ChecklistItemUpdateSerializer(serializers.Serializer):
    text = serializers.CharField(required=False)
    completed = serializers.BooleanField(required=False)

    def validate(self, attrs):
        if not attrs:
            raise serializers.ValidationError("Nothing to update: pass text and/or completed.")
        if "text" in attrs and not attrs["text"].strip():
            raise serializers.ValidationError({"text": "Item text is required."})
        return attrs


class ChecklistActionSerializer(serializers.Serializer):
    INDENT = "indent"
    OUTDENT = "outdent"
    MOVE = "move"

    action = serializers.ChoiceField(choices=[INDENT, OUTDENT, MOVE])
    direction = serializers.ChoiceField(choices=["up", "down"], required=False)

    def validate(self, attrs):
        if attrs["action"] == self.MOVE and not attrs.get("direction"):
            raise serializers.ValidationError({"direction": "Direction is required for move."})
        return attrs


class HistoryEntrySerializer(serializers.ModelSerializer):
    user = UserBriefSerializer(read_only=True)

    class Meta:
        model = HistoryEntry
        fields = [
            "id",
            "action_type",
            "user",
            "old_value",
            "new_value",
            "description",
            "additional_data",
            "created_at",
        ]
        read_only_fields = fields


class TaskSerializer(serializers.ModelSerializer):
    """Read representation used by list and detail responses."""

    creator = UserBriefSerializer(read_only=True)
    assignees = UserBriefSerializer(many=True, read_only=True)
    observers = UserBriefSerializer(many=True, read_only=True)
    deleted_by = serializers.PrimaryKeyRelatedField(read_only=True)
    tags = serializers.SlugRelatedField(many=True, read_only=True, slug_field="name")
    status_label = serializers.SerializerMethodField()
    is_overdue = serializers.SerializerMethodField()
    is_almost_overdue = serializers.SerializerMethodField()
    permissions = serializers.SerializerMethodField()
    available_actions = serializers.SerializerMethodField()

    class Meta:
        model = Task
        fields = [
            "id",
            "title",
            "description",
            "status",
            "status_label",
            "priority",
            "tags",
            "due_date",
            "estimated_days",
            "estimated_hours",
            "estimated_minutes",
            "actual_hours",
            "result",
            "completed_at",
            "creator",
            "assignees",
            "observers",
            "process",
            "is_deleted",
            "deleted_at",
            "deleted_by",
            "is_overdue",
            "is_almost_overdue",
            "permissions",
            "available_actions",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def _now(self):
        return self.context.setdefault("now", timezone.now())

    def _user(self):
        request = self.context.get("request")
        return request.user if request else None

    def get_status_label(self, obj):
        return STATUS_LABELS.get(obj.status, obj.status)

    def get_is_overdue(self, obj):
        return obj.deadline_flags(self._now()).is_overdue

    def get_is_almost_overdue(self, obj):
        return obj.deadline_flags(self._now()).is_almost_overdue

    def get_permissions(self, obj):
        return evaluate_permissions(obj, self._user()).as_dict()

    def get_available_actions(self, obj):
        return [
            {
                "key": a.key,
                "label": a.label,
                "target": a.target,
                "auto_comment": a.auto_comment,
                "requires_completion_dialog": a.requires_completion_dialog,
            }
            for a in compute_available_actions(obj, self._user())
        ]


class TaskDetailSerializer(TaskSerializer):
    comments = CommentSerializer(many=True, read_only=True)
    checklist = ChecklistItemSerializer(many=True, read_only=True)
    history = HistoryEntrySerializer(many=True, read_only=True)

    class Meta(TaskSerializer.Meta):
        fields = TaskSerializer.Meta.fields + ["comments", "checklist", "history"]
        read_only_fields = fields


class InitialChecklistItemSerializer(serializers.Serializer):
    text = serializers.CharField()
    level = serializers.IntegerField(required=False, default=0, min_value=MIN_LEVEL, max_value=MAX_LEVEL)


class TaskWriteSerializer(serializers.ModelSerializer):
    """
    Create/update payload.

    Every field change is recorded as a history entry; the set of changed
    fields is kept on ``self.changes`` for event publishing.
    """

    assignee_ids = serializers.PrimaryKeyRelatedField(
        many=True, source="assignees", queryset=User.objects.filter(is_active=True), required=False
    )
    observer_ids = serializers.PrimaryKeyRelatedField(
        many=True, source="observers", queryset=User.objects.filter(is_active=True), required=False
    )
    tags = serializers.ListField(
        child=serializers.CharField(max_length=50), required=False
    )
    process = serializers.PrimaryKeyRelatedField(
        queryset=BusinessProcess.objects.all(), required=False, allow_null=True
    )
    checklist = InitialChecklistItemSerializer(many=True, required=False, write_only=True)

    class Meta:
        model = Task
        fields = [
            "title",
            "description",
            "priority",
            "due_date",
            "estimated_days",
            "estimated_hours",
            "estimated_minutes",
            "assignee_ids",
            "observer_ids",
            "tags",
            "process",
            "checklist",
        ]

    def validate_title(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError("Title is required.")
        return value

    def validate_due_date(self, value):
        if value is None:
            if self.instance is None:
                raise serializers.ValidationError("Due date is required.")
            return value
        unchanged = self.instance is not None and self.instance.due_date == value
        if not unchanged and value < timezone.now():
            raise serializers.ValidationError("Due date cannot be in the past.")
        return value

    def validate(self, attrs):
        errors = {}
        if self.instance is None:
            if "title" not in attrs:
                errors["title"] = "Title is required."
            if not attrs.get("due_date"):
                errors["due_date"] = "Due date is required."
            if not attrs.get("assignees"):
                errors["assignee_ids"] = "At least one assignee is required."
        elif "assignees" in attrs and not attrs["assignees"]:
            errors["assignee_ids"] = "At least one assignee is required."
        if "checklist" in attrs and self.instance is not None:
            errors["checklist"] = "Use the checklist endpoints to change an existing checklist."
        if errors:
            raise serializers.ValidationError(errors)
        return attrs

    def _set_tags(self, task, names):
        tags = [Tag.objects.get_or_create(name=name.strip())[0] for name in names if name.strip()]
        task.tags.set(tags)

    def create(self, validated_data):
        user = self.context["request"].user
        assignees = validated_data.pop("assignees", [])
        observers = validated_data.pop("observers", [])
        tag_names = validated_data.pop("tags", [])
        checklist = validated_data.pop("checklist", [])

        task = Task.objects.create(creator=user, status=TaskStatus.NEW, **validated_data)
        task.assignees.set(assignees)
        task.observers.set(observers)
        self._set_tags(task, tag_names)

        items = [
            ChecklistItem(task=task, text=item["text"], level=item["level"], item_order=order, created_by=user)
            for order, item in enumerate(checklist)
        ]
        if items:
            ChecklistItem.objects.bulk_create(items)
            saved = list(task.checklist.all())
            relink(saved)
            ChecklistItem.objects.bulk_update(saved, ["parent"])

        HistoryEntry.record(task, user, HistoryActionType.CREATED, description="Task created",
                            new_value={"title": task.title, "status": task.status})
        self.changes = {"created": True}
        return task

    def update(self, instance, validated_data):
        user = self.context["request"].user
        history = []
        changes = {}

        simple_fields = {
            "title": HistoryActionType.TITLE_CHANGED,
            "description": HistoryActionType.DESCRIPTION_CHANGED,
            "priority": HistoryActionType.PRIORITY_CHANGED,
        }
        for field, action_type in simple_fields.items():
            if field in validated_data and validated_data[field] != getattr(instance, field):
                old, new = getattr(instance, field), validated_data[field]
                history.append((action_type, f"{field.capitalize()} changed", old, new))
                changes[field] = new

        if "due_date" in validated_data and validated_data["due_date"] != instance.due_date:
            old, new = instance.due_date, validated_data["due_date"]
            history.append((
                HistoryActionType.DEADLINE_CHANGED,
                "Deadline changed",
                old.isoformat() if old else None,
                new.isoformat() if new else None,
            ))
            changes["due_date"] = new.isoformat() if new else None

        if "process" in validated_data and validated_data["process"] != instance.process:
            old, new = instance.process_id, getattr(validated_data["process"], "id", None)
            history.append((HistoryActionType.PROCESS_CHANGED, "Process changed", old, new))
            changes["process"] = new

        for field in ("estimated_days", "estimated_hours", "estimated_minutes"):
            if field in validated_data and validated_data[field] != getattr(instance, field):
                changes[field] = validated_data[field]

        assignees = validated_data.pop("assignees", None)
        observers = validated_data.pop("observers", None)
        tag_names = validated_data.pop("tags", None)

        for key, value in validated_data.items():
            setattr(instance, key, value)
        instance.save()

        if assignees is not None:
            old_ids = sorted(instance.assignee_ids)
            new_ids = sorted(u.pk for u in assignees)
            if old_ids != new_ids:
                instance.assignees.set(assignees)
                history.append((HistoryActionType.ASSIGNEE_CHANGED, "Assignees changed", old_ids, new_ids))
                changes["assignee_ids"] = new_ids
                self.added_assignee_ids = sorted(set(new_ids) - set(old_ids))

        if observers is not None:
            old_ids = set(instance.observer_ids)
            new_ids = {u.pk for u in observers}
            if old_ids != new_ids:
                instance.observers.set(observers)
                for uid in sorted(new_ids - old_ids):
                    history.append((HistoryActionType.OBSERVER_ADDED, "Observer added", None, uid))
                for uid in sorted(old_ids - new_ids):
                    history.append((HistoryActionType.OBSERVER_REMOVED, "Observer removed", uid, None))
                changes["observer_ids"] = sorted(new_ids)

        if tag_names is not None:
            old_names = sorted(instance.tag_names)
            self._set_tags(instance, tag_names)
            if sorted(instance.tag_names) != old_names:
                changes["tags"] = sorted(instance.tag_names)

        for action_type, description, old, new in history:
            HistoryEntry.record(instance, user, action_type, description=description, old_value=old, new_value=new)

        self.changes = changes
        return instance


class StatusChangeSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=TaskStatus.choices)
    result = serializers.CharField(required=False, allow_blank=True)
    actual_hours = serializers.DecimalField(max_digits=6, decimal_places=2, min_value=0, required=False, allow_null=True)
