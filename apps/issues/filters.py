"""
Issue filters using django-filter.
"""

import django_filters

from .models import Issue


class IssueFilter(django_filters.FilterSet):
    """
    Usage in views:
        filterset = IssueFilter(request.GET, queryset=queryset)
        issues = filterset.qs
    """

    status = django_filters.ChoiceFilter(choices=Issue.Status.choices)
    priority = django_filters.ChoiceFilter(choices=Issue.Priority.choices)
    reported_by = django_filters.NumberFilter(field_name='reported_by_id')
    assigned_to = django_filters.NumberFilter(field_name='assigned_to_id')
    suggested_assignee = django_filters.NumberFilter(field_name='suggested_assignee_id')

    class Meta:
        model = Issue
        fields = ['status', 'priority', 'reported_by', 'assigned_to', 'suggested_assignee']


SORTABLE_FIELDS = ['created_at', 'updated_at', 'priority', 'status', 'title']


def apply_sorting(queryset, sort_by, sort_order='desc'):
    if sort_by not in SORTABLE_FIELDS:
        sort_by = 'created_at'
    prefix = '' if sort_order == 'asc' else '-'
    return queryset.order_by(f'{prefix}{sort_by}', '-id')
