"""
Activity log filters using django-filter.

- user: id of the user who performed the action
- action / entity_type: exact match
- entity_id: the affected record
- date_from / date_to: created_at date range (inclusive)
- search: free text over action and user name/email
"""

import django_filters
from django.db.models import Q

from .models import ActivityLog


class ActivityLogFilter(django_filters.FilterSet):
    """
    Usage in views:
        filterset = ActivityLogFilter(request.GET, queryset=queryset)
        activities = filterset.qs
    """

    user = django_filters.NumberFilter(field_name='user_id')
    action = django_filters.CharFilter(field_name='action')
    entity_type = django_filters.CharFilter(field_name='entity_type')
    entity_id = django_filters.NumberFilter(field_name='entity_id')
    date_from = django_filters.DateFilter(field_name='created_at', lookup_expr='date__gte')
    date_to = django_filters.DateFilter(field_name='created_at', lookup_expr='date__lte')
    search = django_filters.CharFilter(method='filter_search')

    class Meta:
        model = ActivityLog
        fields = ['user', 'action', 'entity_type', 'entity_id', 'date_from', 'date_to', 'search']

    def filter_search(self, queryset, name, value):
        """Case-insensitive partial match on action and the acting user."""
        if not value:
            return queryset

        return queryset.filter(
            Q(action__icontains=value) |
            Q(user__first_name__icontains=value) |
            Q(user__last_name__icontains=value) |
            Q(user__email__icontains=value)
        )
