"""
Views for issues app.

Includes:
- Issue list (role-scoped, filtered, sorted, paginated) and reporting
- Issue detail, admin update and delete
- Admin assignment, which also creates the resolution task
"""

from django.core.exceptions import PermissionDenied
from django.shortcuts import get_object_or_404

from apps.accounts.services import user_summary
from apps.core.http import (
    admin_required, api_error, api_response, api_view, form_error_response, json_body, paginate,
)
from apps.tasks.serializers import serialize_task
from .filters import IssueFilter, apply_sorting
from .forms import IssueAssignForm, IssueEditForm, IssueReportForm
from .models import Issue
from .permissions import can_view_issue, get_visible_issues
from .services import assign_issue, delete_issue, report_issue, update_issue


def serialize_issue(issue):
    return {
        'id': issue.pk,
        'title': issue.title,
        'description': issue.description,
        'priority': issue.priority,
        'status': issue.status,
        'reported_by': user_summary(issue.reported_by),
        'suggested_assignee': user_summary(issue.suggested_assignee),
        'assigned_to': user_summary(issue.assigned_to),
        'assigned_at': issue.assigned_at,
        'resolved_at': issue.resolved_at,
        'resolution_notes': issue.resolution_notes,
        'created_at': issue.created_at,
        'updated_at': issue.updated_at,
    }


def _get_issue(request, pk):
    issue = get_object_or_404(
        Issue.objects.select_related('reported_by', 'suggested_assignee', 'assigned_to'), pk=pk,
    )
    if not can_view_issue(request.user, issue):
        raise PermissionDenied('You do not have access to this issue.')
    return issue


@api_view(['GET', 'POST'])
def issue_collection_view(request):
    if request.method == 'POST':
        form = IssueReportForm(json_body(request))
        if not form.is_valid():
            return form_error_response(form)
        data = form.cleaned_data
        issue = report_issue(
            reported_by=request.user,
            title=data['title'],
            description=data['description'],
            priority=data['priority'],
            suggested_assignee=data['suggested_assignee_id'],
        )
        return api_response(serialize_issue(issue), status=201, message='Issue reported successfully.')

    filterset = IssueFilter(request.GET, queryset=get_visible_issues(request.user))
    if not filterset.is_valid():
        return api_error('Validation error', 'Invalid filter parameters.', 400,
                         details=filterset.errors.get_json_data())

    queryset = apply_sorting(
        filterset.qs,
        request.GET.get('sort_by', 'created_at'),
        request.GET.get('sort_order', 'desc'),
    )
    issues, page = paginate(request, queryset)
    return api_response([serialize_issue(i) for i in issues], **page)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
def issue_detail_view(request, pk):
    issue = _get_issue(request, pk)

    if request.method == 'GET':
        return api_response(serialize_issue(issue))

    if request.method == 'DELETE':
        delete_issue(issue, request.user)
        return api_response(message='Issue deleted successfully.')

    form = IssueEditForm(json_body(request), partial=True)
    if not form.is_valid():
        return form_error_response(form)
    issue = update_issue(issue, request.user, **form.cleaned_data)
    return api_response(serialize_issue(issue), message='Issue updated successfully.')


@api_view(['PUT', 'POST'])
@admin_required
def issue_assign_view(request, pk):
    issue = get_object_or_404(Issue, pk=pk)

    form = IssueAssignForm(json_body(request))
    if not form.is_valid():
        return form_error_response(form)

    edits = form.cleaned_data['edited_issue']
    issue, task = assign_issue(
        issue,
        request.user,
        form.cleaned_data['assignee_id'],
        title=edits.get('title'),
        description=edits.get('description'),
        priority=edits.get('priority'),
    )
    return api_response(
        {'issue': serialize_issue(issue), 'task': serialize_task(task)},
        message='Issue assigned and task created.',
    )
