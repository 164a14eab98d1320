"""
Views for reports app.

JSON analytics endpoints backed by apps.reports.analytics, plus the task
CSV export. Team-wide reports are admin only.
"""

from django.conf import settings
from django.core.exceptions import BadRequest
from django.http import HttpResponse
from django.utils import timezone

from apps.core.http import admin_required, api_response, api_view
from apps.tasks.serializers import serialize_task
from . import services
from .cache import cached_response


def _trend_days(request):
    raw = request.GET.get('days')
    if raw in (None, ''):
        return settings.DEFAULT_TREND_DAYS
    try:
        days = int(raw)
    except ValueError:
        raise BadRequest('"days" must be an integer.')
    if not 1 <= days <= settings.MAX_TREND_DAYS:
        raise BadRequest(f'"days" must be between 1 and {settings.MAX_TREND_DAYS}.')
    return days


@api_view(['GET'])
@cached_response('ANALYTICS_CACHE_TTL_SECONDS')
def dashboard_view(request):
    return api_response(services.dashboard_metrics(request.user))


@api_view(['GET'])
@cached_response('ANALYTICS_CACHE_TTL_SECONDS')
def completion_trend_view(request):
    days = _trend_days(request)
    return api_response(services.completion_trend(request.user, days))


@api_view(['GET'])
@admin_required
@cached_response('ANALYTICS_SHORT_CACHE_TTL_SECONDS')
def user_workload_view(request):
    return api_response(services.user_workload())


@api_view(['GET'])
def issue_metrics_view(request):
    return api_response(services.issue_metrics(request.user))


@api_view(['GET'])
@admin_required
def employees_summary_view(request):
    return api_response(services.employees_summary())


@api_view(['GET'])
@admin_required
def recommendations_view(request):
    return api_response(services.recommendations())


@api_view(['GET'])
@admin_required
def late_tasks_view(request):
    return api_response([serialize_task(t) for t in services.late_tasks()])


@api_view(['GET'])
@cached_response('ANALYTICS_CACHE_TTL_SECONDS')
def tag_distribution_view(request):
    return api_response(services.tag_distribution(request.user))


@api_view(['GET'])
@cached_response('ANALYTICS_SHORT_CACHE_TTL_SECONDS')
def overview_view(request):
    return api_response(services.overview(request.user))


@api_view(['GET'])
def export_tasks_view(request):
    response = HttpResponse(
        services.export_tasks_csv(request.user),
        content_type='text/csv; charset=utf-8',
    )
    filename = f'tasks-{timezone.localdate():%Y-%m-%d}.csv'
    response['Content-Disposition'] = f'attachment; filename="{filename}"'
    return response
