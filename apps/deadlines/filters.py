import django_filters

from .models import Deadline


class DeadlineFilter(django_filters.FilterSet):
    from_date = django_filters.DateFilter(field_name='deadline_date', lookup_expr='gte')
    to_date = django_filters.DateFilter(field_name='deadline_date', lookup_expr='lte')
    is_completed = django_filters.BooleanFilter()
    category = django_filters.CharFilter(lookup_expr='iexact')

    class Meta:
        model = Deadline
        fields = ['from_date', 'to_date', 'is_completed', 'category']
