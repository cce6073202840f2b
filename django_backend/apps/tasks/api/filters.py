import django_filters
from django.db.models import Q

from apps.tasks.models import Task, TaskStatus


class TaskFilter(django_filters.FilterSet):
    status = django_filters.MultipleChoiceFilter(choices=TaskStatus.choices)
    priority = django_filters.NumberFilter()
    assignee = django_filters.NumberFilter(field_name="assignees", distinct=True)
    observer = django_filters.NumberFilter(field_name="observers", distinct=True)
    creator = django_filters.NumberFilter(field_name="creator")
    process = django_filters.NumberFilter(field_name="process")
    no_process = django_filters.BooleanFilter(field_name="process", lookup_expr="isnull")
    tag = django_filters.CharFilter(field_name="tags__name", distinct=True)
    due_after = django_filters.IsoDateTimeFilter(field_name="due_date", lookup_expr="gte")
    due_before = django_filters.IsoDateTimeFilter(field_name="due_date", lookup_expr="lt")
    overdue = django_filters.BooleanFilter(method="filter_overdue")
    almost_overdue = django_filters.BooleanFilter(method="filter_almost_overdue")
    search = django_filters.CharFilter(method="filter_search")

    class Meta:
        model = Task
        fields = []

    def filter_overdue(self, queryset, name, value):
        overdue = Task.objects.overdue().values("pk")
        return queryset.filter(pk__in=overdue) if value else queryset.exclude(pk__in=overdue)

    def filter_almost_overdue(self, queryset, name, value):
        soon = Task.objects.almost_overdue().values("pk")
        return queryset.filter(pk__in=soon) if value else queryset.exclude(pk__in=soon)

    def filter_search(self, queryset, name, value):
        value = value.strip()
        if not value:
            return queryset
        return queryset.filter(
            Q(title__icontains=value) | Q(description__icontains=value) | Q(tags__name__icontains=value)
        ).distinct()
