"""
Task filters using django-filter.

Provides filtering capabilities for the task list endpoint:
- status / priority / category (comma separated or repeated)
- assigned_to / created_by (user id)
- tag (exact tag name)
- due_from / due_to (due date range)
- overdue (true/false)
- search (title, description)
"""

import django_filters
from django.db import models
from django.db.models import Case, IntegerField, Q, Value, When
from django.utils import timezone

from apps.reports import analytics

from .models import Task


class CharInFilter(django_filters.BaseInFilter, django_filters.CharFilter):
    """Comma-separated list of values."""


class TaskFilter(django_filters.FilterSet):
    """
    Task filter for list views.

    Usage in views:
        filterset = TaskFilter(request.GET, queryset=queryset, request=request)
        tasks = filterset.qs
    """

    search = django_filters.CharFilter(method='filter_search')
    status = CharInFilter(field_name='status')
    priority = CharInFilter(field_name='priority')
    category = CharInFilter(field_name='category')
    assigned_to = django_filters.NumberFilter(field_name='assigned_to_id')
    created_by = django_filters.NumberFilter(field_name='created_by_id')
    tag = django_filters.CharFilter(method='filter_tag')
    due_from = django_filters.DateFilter(field_name='due_date', lookup_expr='gte')
    due_to = django_filters.DateFilter(field_name='due_date', lookup_expr='lte')
    overdue = django_filters.BooleanFilter(method='filter_overdue')

    class Meta:
        model = Task
        fields = ['status', 'priority', 'category', 'assigned_to', 'created_by']

    def __init__(self, data=None, queryset=None, *, request=None, **kwargs):
        super().__init__(data, queryset, request=request, **kwargs)
        self.request = request

    def filter_search(self, queryset, name, value):
        """
        Search across title and description.
        Case-insensitive partial matching.
        """
        if not value:
            return queryset

        return queryset.filter(
            Q(title__icontains=value) |
            Q(description__icontains=value)
        )

    def filter_tag(self, queryset, name, value):
        """
        Exact tag match.

        Tags live in a JSON list; membership is checked in Python so the
        filter behaves the same on every database backend.
        """
        value = value.strip()
        if not value:
            return queryset

        matching = [
            pk for pk, tags in queryset.values_list('pk', 'tags')
            if value in (tags or [])
        ]
        return queryset.filter(pk__in=matching)

    def filter_overdue(self, queryset, name, value):
        """
        Overdue as decided by ``analytics.is_overdue``; only tasks with a due
        date are candidates.
        """
        if value is None:
            return queryset

        candidates = queryset.filter(due_date__isnull=False).only(
            'pk', 'status', 'due_date', 'end_time',
        )
        overdue = [task.pk for task in analytics.filter_overdue(candidates, timezone.now())]
        if value:
            return queryset.filter(pk__in=overdue)
        return queryset.exclude(pk__in=overdue)


SORTABLE_FIELDS = ['created_at', 'updated_at', 'due_date', 'priority', 'status', 'title']


def apply_sorting(queryset, sort_by, sort_order='desc'):
    """
    Apply sorting to queryset.

    Args:
        queryset: Task queryset
        sort_by: One of SORTABLE_FIELDS; anything else falls back to created_at
        sort_order: 'asc' or 'desc' (default)

    Returns:
        Sorted queryset
    """
    if sort_by not in SORTABLE_FIELDS:
        sort_by = 'created_at'
    descending = sort_order != 'asc'

    # Priority sorts by severity, not alphabetically
    if sort_by == 'priority':
        priority_order = Case(
            When(priority=Task.Priority.LOW, then=Value(1)),
            When(priority=Task.Priority.MEDIUM, then=Value(2)),
            When(priority=Task.Priority.HIGH, then=Value(3)),
            When(priority=Task.Priority.CRITICAL, then=Value(4)),
            default=Value(0),
            output_field=IntegerField()
        )
        queryset = queryset.annotate(priority_order=priority_order)
        if descending:
            return queryset.order_by('-priority_order', '-created_at')
        return queryset.order_by('priority_order', '-created_at')

    # Tasks without a due date go last either way
    if sort_by == 'due_date':
        if descending:
            return queryset.order_by(models.F('due_date').desc(nulls_last=True), '-created_at')
        return queryset.order_by(models.F('due_date').asc(nulls_last=True), '-created_at')

    return queryset.order_by(f"{'-' if descending else ''}{sort_by}", '-id')
