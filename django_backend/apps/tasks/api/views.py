import logging

from django.conf import settings
from django.db import transaction
from django.db.models import Q
from django.http import HttpResponse
from django.shortcuts import get_object_or_404
from django.utils import timezone
from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import PermissionDenied, ValidationError
from rest_framework.filters import OrderingFilter
from rest_framework.pagination import LimitOffsetPagination
from rest_framework.response import Response

from apps.tasks import producer
from apps.tasks.celery_tasks import send_task_notification
from apps.tasks.domain import ChecklistBoundaryError, TransitionNotAllowed, check_transition, evaluate_permissions
from apps.tasks.domain import checklist as checklist_rules
from apps.tasks.domain.constants import Role
from apps.tasks.domain.permissions import can_manage_comment, can_manage_trash
from apps.tasks.domain.transitions import describe_status_change
from apps.tasks.models import (
    BusinessProcess,
    ChecklistItem,
    Comment,
    HistoryActionType,
    HistoryEntry,
    NotificationType,
    Tag,
    Task,
    TaskStatus,
)
from .export import export_tasks_csv
from .filters import TaskFilter
from .permissions import CanViewTask
from .serializers import (
    BusinessProcessSerializer,
    ChecklistActionSerializer,
    ChecklistItemSerializer,
    ChecklistItemUpdateSerializer,
    CommentSerializer,
    CommentUpdateSerializer,
    StatusChangeSerializer,
    TagSerializer,
    TaskDetailSerializer,
    TaskSerializer,
    TaskWriteSerializer,
)

logger = logging.getLogger(__name__)

TRASH_MESSAGE = "Cannot modify task in trash"

RESTRUCTURE_DESCRIPTIONS = {
    "indent": "Checklist item indented",
    "outdent": "Checklist item outdented",
    "move": "Checklist item moved {direction}",
}


def _flag(request, name):
    return request.query_params.get(name) in ("1", "true", "True")


def scoped_tasks(request):
    qs = Task.objects.select_related("creator", "deleted_by", "process") \
                     .prefetch_related("assignees", "observers", "tags")
    if request.user.role in Role.SUPERVISORS or request.user.is_staff:
        return qs
    user = request.user
    return qs.filter(Q(creator=user) | Q(assignees=user) | Q(observers=user)).distinct()


def notify_on_commit(task, notification_type, actor):
    transaction.on_commit(lambda: send_task_notification.delay(task.id, notification_type, actor.id))


class TagViewSet(viewsets.ModelViewSet):
    queryset = Tag.objects.all().order_by("name")
    serializer_class = TagSerializer
    permission_classes = [permissions.IsAuthenticated]
    http_method_names = ["get", "post", "head", "options"]


class BusinessProcessViewSet(viewsets.ModelViewSet):
    serializer_class = BusinessProcessSerializer
    permission_classes = [permissions.IsAuthenticated]
    http_method_names = ["get", "post", "put", "patch", "head", "options"]

    def get_queryset(self):
        qs = BusinessProcess.objects.all().order_by("name")
        if not _flag(self.request, "include_inactive"):
            qs = qs.filter(is_active=True)
        return qs

    def perform_create(self, serializer):
        serializer.save(creator=self.request.user)


class TaskViewSet(viewsets.ModelViewSet):
    permission_classes = [permissions.IsAuthenticated, CanViewTask]
    filter_backends = [DjangoFilterBackend, OrderingFilter]
    filterset_class = TaskFilter
    ordering_fields = ["due_date", "priority", "created_at", "updated_at", "title"]
    ordering = ["-created_at"]
    pagination_class = LimitOffsetPagination
    lookup_value_regex = r"\d+"

    def get_queryset(self):
        qs = scoped_tasks(self.request)
        if self.action in ("list", "export"):
            if _flag(self.request, "trash"):
                qs = qs.in_trash()
            elif not _flag(self.request, "include_deleted"):
                qs = qs.alive()
        elif self.action == "retrieve":
            qs = qs.prefetch_related("comments__author", "checklist", "history__user")
        return qs

    def get_serializer_class(self):
        if self.action in ("create", "update", "partial_update"):
            return TaskWriteSerializer
        if self.action == "retrieve":
            return TaskDetailSerializer
        return TaskSerializer

    def _detail(self, task):
        task = Task.objects.select_related("creator", "deleted_by").prefetch_related(
            "assignees", "observers", "tags", "comments__author", "checklist", "history__user"
        ).get(pk=task.pk)
        return TaskDetailSerializer(task, context=self.get_serializer_context()).data

    @staticmethod
    def _ensure_mutable(task):
        if task.is_deleted:
            raise PermissionDenied(TRASH_MESSAGE)

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        with transaction.atomic():
            task = serializer.save()
            notify_on_commit(task, NotificationType.TASK_ASSIGNED, request.user)
        logger.info(f"Task {task.id} created by user {request.user.id}")
        producer.publish_task_created(request.user.id, task)
        return Response(self._detail(task), status=status.HTTP_201_CREATED)

    def update(self, request, *args, **kwargs):
        # PUT and PATCH both carry just the changed fields
        kwargs.pop("partial", None)
        task = self.get_object()
        self._ensure_mutable(task)
        if not evaluate_permissions(task, request.user).can_edit:
            raise PermissionDenied("Only the creator or a director can edit this task")

        serializer = self.get_serializer(task, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        with transaction.atomic():
            task = serializer.save()
            if getattr(serializer, "added_assignee_ids", None):
                notify_on_commit(task, NotificationType.TASK_ASSIGNED, request.user)

        if serializer.changes:
            producer.publish_task_updated(request.user.id, task, serializer.changes)
        return Response(self._detail(task))

    def destroy(self, request, *args, **kwargs):
        # DELETE /tasks/:id moves the task to the trash, like POST /tasks/:id/delete
        return self.trash(request, *args, **kwargs)

    @action(detail=False, methods=["get"])
    def export(self, request):
        """The list endpoint's filters and ordering, unpaginated, as a CSV download."""
        tasks = self.filter_queryset(self.get_queryset()).prefetch_related("comments__author")
        content = export_tasks_csv(tasks)
        stamp = timezone.now().strftime("%Y%m%d-%H%M")
        logger.info(f"Task export for user {request.user.id}")
        return HttpResponse(
            content,
            content_type="text/csv; charset=utf-8",
            headers={"Content-Disposition": f'attachment; filename="tasks_{stamp}.csv"'},
        )

    @action(detail=True, methods=["get"])
    def link(self, request, pk=None):
        task = self.get_object()
        path = f"/task/{task.id}"
        base = settings.TASK_LINK_BASE_URL
        url = base.rstrip("/") + path if base else request.build_absolute_uri(path)
        return Response({"url": url, "task_id": task.id, "title": task.title, "is_deleted": task.is_deleted})

    @action(detail=True, methods=["put"], url_path="status")
    def change_status(self, request, pk=None):
        task = self.get_object()
        self._ensure_mutable(task)

        ser = StatusChangeSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        target = ser.validated_data["status"]

        caps = evaluate_permissions(task, request.user)
        if not caps.can_change_status:
            raise PermissionDenied("You cannot change the status of this task")
        try:
            check_transition(task, request.user, target)
        except TransitionNotAllowed as e:
            raise ValidationError({"status": str(e)})

        old_status = task.status
        with transaction.atomic():
            task.status = target
            if "result" in ser.validated_data:
                task.result = ser.validated_data["result"]
            if "actual_hours" in ser.validated_data:
                task.actual_hours = ser.validated_data["actual_hours"]
            if target == TaskStatus.COMPLETED:
                task.completed_at = timezone.now()
            elif old_status == TaskStatus.COMPLETED:
                task.completed_at = None
            task.save()

            HistoryEntry.record(
                task,
                request.user,
                HistoryActionType.STATUS_CHANGED,
                description=describe_status_change(old_status, target),
                old_value=old_status,
                new_value=target,
            )
            kind = NotificationType.TASK_COMPLETED if target == TaskStatus.COMPLETED else NotificationType.STATUS_CHANGED
            notify_on_commit(task, kind, request.user)

        logger.info(f"Task {task.id}: {old_status} -> {target} by user {request.user.id}")
        producer.publish_task_status_changed(request.user.id, task, old_status, target)
        return Response(self._detail(task))

    def _check_trash_permission(self, request, task):
        if not can_manage_trash(task, request.user):
            raise PermissionDenied("Only the creator, a director or a department head can do this")

    @action(detail=True, methods=["post"], url_path="delete")
    def trash(self, request, pk=None):
        task = self.get_object()
        self._check_trash_permission(request, task)
        if task.is_deleted:
            raise ValidationError({"detail": "Task is already in trash"})

        with transaction.atomic():
            task.is_deleted = True
            task.deleted_at = timezone.now()
            task.deleted_by = request.user
            task.save(update_fields=["is_deleted", "deleted_at", "deleted_by", "updated_at"])
            HistoryEntry.record(task, request.user, HistoryActionType.SOFT_DELETED, description="Task moved to trash")

        logger.info(f"Task {task.id} moved to trash by user {request.user.id}")
        producer.publish_task_deleted(request.user.id, task)
        return Response(self._detail(task))

    @trash.mapping.put
    def restore(self, request, pk=None):
        task = self.get_object()
        self._check_trash_permission(request, task)
        if not task.is_deleted:
            raise ValidationError({"detail": "Task is not in trash"})

        with transaction.atomic():
            task.is_deleted = False
            task.deleted_at = None
            task.deleted_by = None
            task.save(update_fields=["is_deleted", "deleted_at", "deleted_by", "updated_at"])
            HistoryEntry.record(task, request.user, HistoryActionType.RESTORED, description="Task restored from trash")

        producer.publish_task_restored(request.user.id, task)
        return Response(self._detail(task))

    @trash.mapping.delete
    def purge(self, request, pk=None):
        task = self.get_object()
        self._check_trash_permission(request, task)
        if not task.is_deleted:
            raise ValidationError({"detail": "Only tasks in trash can be deleted permanently"})

        task_id, title = task.id, task.title
        logger.warning(f"Task {task_id} permanently deleted by user {request.user.id}")
        task.delete()
        producer.publish_task_purged(request.user.id, task_id, title)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=["post"])
    def comments(self, request, pk=None):
        task = self.get_object()
        self._ensure_mutable(task)
        if not evaluate_permissions(task, request.user).can_comment:
            raise PermissionDenied("You cannot comment on this task")

        ser = CommentSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        with transaction.atomic():
            comment = ser.save(task=task, author=request.user)
            HistoryEntry.record(
                task,
                request.user,
                HistoryActionType.COMMENT_ADDED,
                description="Completion result added" if comment.is_result else "Comment added",
                comment_id=comment.id,
            )
            notify_on_commit(task, NotificationType.COMMENT_ADDED, request.user)

        producer.publish_comment_event(producer.TaskEventType.TASK_COMMENT_ADDED, request.user.id, comment)
        return Response(CommentSerializer(comment).data, status=status.HTTP_201_CREATED)

    @comments.mapping.get
    def list_comments(self, request, pk=None):
        task = self.get_object()
        qs = task.comments.select_related("author")
        return Response(CommentSerializer(qs, many=True).data)

    def _comment(self, request, task, comment_id):
        comment = get_object_or_404(Comment, pk=comment_id, task=task)
        self._ensure_mutable(task)
        if not can_manage_comment(comment, request.user):
            raise PermissionDenied("Only the author or a director can change this comment")
        return comment

    @action(detail=True, methods=["put"], url_path=r"comments/(?P<comment_id>\d+)")
    def comment_detail(self, request, pk=None, comment_id=None):
        task = self.get_object()
        comment = self._comment(request, task, comment_id)

        ser = CommentUpdateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        with transaction.atomic():
            old_text = comment.text
            comment.text = ser.validated_data["text"]
            comment.is_edited = True
            comment.edited_at = timezone.now()
            comment.save(update_fields=["text", "is_edited", "edited_at"])
            HistoryEntry.record(
                task,
                request.user,
                HistoryActionType.COMMENT_EDITED,
                description="Comment edited",
                old_value=old_text,
                new_value=comment.text,
                comment_id=comment.id,
            )

        producer.publish_comment_event(producer.TaskEventType.TASK_COMMENT_UPDATED, request.user.id, comment)
        return Response(CommentSerializer(comment).data)

    @comment_detail.mapping.delete
    def delete_comment(self, request, pk=None, comment_id=None):
        task = self.get_object()
        comment = self._comment(request, task, comment_id)

        with transaction.atomic():
            HistoryEntry.record(
                task,
                request.user,
                HistoryActionType.COMMENT_DELETED,
                description="Comment deleted",
                old_value=comment.text,
                comment_id=comment.id,
            )
            producer.publish_comment_event(producer.TaskEventType.TASK_COMMENT_DELETED, request.user.id, comment)
            comment.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)

    def _checklist_guard(self, request, task):
        self._ensure_mutable(task)
        if not evaluate_permissions(task, request.user).can_edit_checklist:
            raise PermissionDenied("You cannot edit the checklist of this task")

    def _relink_and_save(self, task):
        items = checklist_rules.ordered(task.checklist.all())
        before = {item.id: item.parent_id for item in items}
        checklist_rules.relink(items)
        changed = [item for item in items if before[item.id] != item.parent_id]
        if changed:
            ChecklistItem.objects.bulk_update(changed, ["parent"])
        return items

    @action(detail=True, methods=["post"])
    def checklist(self, request, pk=None):
        task = self.get_object()
        self._checklist_guard(request, task)

        ser = ChecklistItemSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        with transaction.atomic():
            item = ser.save(
                task=task,
                created_by=request.user,
                item_order=checklist_rules.next_order(list(task.checklist.all())),
            )
            self._relink_and_save(task)
            item.refresh_from_db()
            HistoryEntry.record(
                task,
                request.user,
                HistoryActionType.CHECKLIST_UPDATED,
                description="Checklist item added",
                new_value=item.text,
                item_id=item.id,
            )

        producer.publish_checklist_updated(request.user.id, task, "add", item.id)
        return Response(ChecklistItemSerializer(item).data, status=status.HTTP_201_CREATED)

    @checklist.mapping.get
    def list_checklist(self, request, pk=None):
        task = self.get_object()
        return Response(ChecklistItemSerializer(task.checklist.all(), many=True).data)

    @action(detail=True, methods=["put"], url_path=r"checklist/(?P<item_id>\d+)")
    def checklist_item(self, request, pk=None, item_id=None):
        task = self.get_object()
        item = get_object_or_404(ChecklistItem, pk=item_id, task=task)
        self._checklist_guard(request, task)

        ser = ChecklistItemUpdateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data

        with transaction.atomic():
            if "text" in data:
                item.text = data["text"]
            if "completed" in data and data["completed"] != item.completed:
                item.set_completed(data["completed"], request.user)
                HistoryEntry.record(
                    task,
                    request.user,
                    HistoryActionType.CHECKLIST_UPDATED,
                    description="Checklist item completed" if item.completed else "Checklist item reopened",
                    old_value=not item.completed,
                    new_value=item.completed,
                    item_id=item.id,
                )
            item.save()

        producer.publish_checklist_updated(request.user.id, task, "update", item.id)
        return Response(ChecklistItemSerializer(item).data)

    @checklist_item.mapping.patch
    def restructure_checklist_item(self, request, pk=None, item_id=None):
        task = self.get_object()
        item = get_object_or_404(ChecklistItem, pk=item_id, task=task)
        self._checklist_guard(request, task)

        ser = ChecklistActionSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        operation = ser.validated_data["action"]

        items = list(task.checklist.all())
        try:
            if operation == ChecklistActionSerializer.INDENT:
                changed = checklist_rules.indent(items, item.id)
            elif operation == ChecklistActionSerializer.OUTDENT:
                changed = checklist_rules.outdent(items, item.id)
            else:
                changed = checklist_rules.move(items, item.id, ser.validated_data["direction"])
        except ChecklistBoundaryError as e:
            raise ValidationError({"detail": str(e), "blocked": e.operation})

        if changed:
            direction = ser.validated_data.get("direction")
            with transaction.atomic():
                ChecklistItem.objects.bulk_update(changed, ["level", "item_order", "parent"])
                HistoryEntry.record(
                    task,
                    request.user,
                    HistoryActionType.CHECKLIST_UPDATED,
                    description=RESTRUCTURE_DESCRIPTIONS[operation].format(direction=direction),
                    new_value=item.text,
                    item_id=item.id,
                    moved_ids=[i.id for i in changed],
                )

        producer.publish_checklist_updated(request.user.id, task, operation, item.id)
        ordered = checklist_rules.ordered(items)
        return Response(ChecklistItemSerializer(ordered, many=True).data)

    @checklist_item.mapping.delete
    def delete_checklist_item(self, request, pk=None, item_id=None):
        task = self.get_object()
        item = get_object_or_404(ChecklistItem, pk=item_id, task=task)
        self._checklist_guard(request, task)

        with transaction.atomic():
            HistoryEntry.record(
                task,
                request.user,
                HistoryActionType.CHECKLIST_UPDATED,
                description="Checklist item removed",
                old_value=item.text,
                item_id=item.id,
            )
            item.delete()
            self._relink_and_save(task)

        producer.publish_checklist_updated(request.user.id, task, "delete", int(item_id))
        return Response(status=status.HTTP_204_NO_CONTENT)
