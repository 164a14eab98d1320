"""
Views for activity_log app.
"""

from apps.accounts.services import user_summary
from apps.core.http import admin_required, api_error, api_response, api_view, paginate
from .filters import ActivityLogFilter
from .models import ActivityLog


def serialize_activity(activity):
    return {
        'id': activity.pk,
        'user': user_summary(activity.user),
        'action': activity.action,
        'entity_type': activity.entity_type,
        'entity_id': activity.entity_id,
        'details': activity.details,
        'created_at': activity.created_at,
    }


@api_view(['GET'])
@admin_required
def activity_list_view(request):
    """Activity log (Admin only), newest first."""
    queryset = ActivityLog.objects.select_related('user')
    filterset = ActivityLogFilter(request.GET, queryset=queryset)
    if not filterset.is_valid():
        return api_error('Validation error', 'Invalid filter parameters.', 400,
                         details=filterset.errors.get_json_data())

    activities, page = paginate(request, filterset.qs)
    return api_response([serialize_activity(a) for a in activities], **page)
