"""
Service layer for reports app.

Fetches and scopes rows for the analytics endpoints, then hands plain
snapshots to the engine in apps.reports.analytics:
- Admins see every task and issue
- Everyone else sees the tasks assigned to or created by them, and the
  issues they reported, were suggested for, or were assigned
"""

import csv
import logging
from collections import defaultdict
from dataclasses import fields
from io import StringIO

from django.contrib.auth import get_user_model
from django.utils import timezone

from apps.issues.permissions import get_visible_issues
from apps.tasks.models import Task
from apps.tasks.permissions import get_visible_tasks
from . import analytics
from .analytics import IssueSnapshot, TaskSnapshot

logger = logging.getLogger(__name__)

TASK_VALUES = [f.name for f in fields(TaskSnapshot)]
ISSUE_VALUES = [f.name for f in fields(IssueSnapshot)]

TASK_CSV_HEADER = [
    'ID', 'Title', 'Description', 'Category', 'Priority', 'Status', 'Progress (%)',
    'Assignee', 'Created By', 'Due Date', 'Tags', 'Overdue', 'Created At', 'Updated At',
]


def task_snapshots(queryset):
    return [TaskSnapshot.from_obj(row) for row in queryset.values(*TASK_VALUES)]


def issue_snapshots(queryset):
    return [IssueSnapshot.from_obj(row) for row in queryset.values(*ISSUE_VALUES)]


def _active_users():
    User = get_user_model()
    return User.objects.filter(is_active=True).order_by('first_name', 'last_name', 'pk')


def _tasks_by_assignee():
    grouped = defaultdict(list)
    for snapshot in task_snapshots(Task.objects.filter(assigned_to__isnull=False)):
        grouped[snapshot.assigned_to_id].append(snapshot)
    return grouped


# =============================================================================
# Per-user scoped reports
# =============================================================================

def dashboard_metrics(user, now=None):
    """Task and issue histograms for the dashboard cards."""
    now = now or timezone.now()
    tasks = task_snapshots(get_visible_tasks(user))
    issues = issue_snapshots(get_visible_issues(user))

    task_hist = analytics.aggregate_by_priority_and_status(tasks)
    issue_hist = analytics.aggregate_by_priority_and_status(
        issues,
        statuses=analytics.ISSUE_STATUSES,
        done_statuses=analytics.ISSUE_DONE_STATUSES,
    )

    return {
        'tasks': {
            'total': task_hist['total'],
            'completed': task_hist['by_status'][analytics.COMPLETED],
            'in_progress': task_hist['by_status']['in_progress'],
            'overdue': len(analytics.filter_overdue(tasks, now)),
            'completion_rate': task_hist['completion_rate'],
            'by_priority': task_hist['by_priority'],
            'by_status': task_hist['by_status'],
        },
        'issues': {
            'total': issue_hist['total'],
            'pending': issue_hist['by_status']['pending_assignment'],
            'by_priority': issue_hist['by_priority'],
            'by_status': issue_hist['by_status'],
        },
    }


def completion_trend(user, days, now=None):
    now = now or timezone.now()
    return analytics.bucket_trend(task_snapshots(get_visible_tasks(user)), days, now)


def issue_metrics(user):
    return analytics.issue_resolution_metrics(issue_snapshots(get_visible_issues(user)))


def tag_distribution(user, now=None):
    now = now or timezone.now()
    stats = analytics.aggregate_by_tag(task_snapshots(get_visible_tasks(user)), now)
    return analytics.tag_distribution(stats)


def overview(user, now=None):
    now = now or timezone.now()
    return analytics.build_overview(task_snapshots(get_visible_tasks(user)), now)


# =============================================================================
# Team-wide reports (admin)
# =============================================================================

def user_workload():
    """Assigned-task counts for every active user."""
    grouped = _tasks_by_assignee()
    return [
        {
            'user_id': member.pk,
            'name': member.get_full_name(),
            'email': member.email,
            **analytics.workload_entry(grouped.get(member.pk, [])),
        }
        for member in _active_users()
    ]


def employees_summary(now=None):
    """Profile fields plus live counts and score for every active user."""
    now = now or timezone.now()
    grouped = _tasks_by_assignee()
    return [
        {
            'id': member.pk,
            'name': member.get_full_name(),
            'email': member.email,
            'role': member.role,
            'job_description': member.job_description,
            'weekly_hours': float(member.weekly_hours) if member.weekly_hours is not None else None,
            **analytics.employee_summary(grouped.get(member.pk, []), now),
        }
        for member in _active_users()
    ]


def recommendations(now=None):
    return analytics.derive_recommendations(employees_summary(now))


def late_tasks(now=None):
    """Open tasks past their deadline, oldest due date first."""
    now = now or timezone.now()
    today = timezone.localtime(now).date()
    candidates = (
        Task.objects.filter(due_date__lte=today)
        .exclude(status=Task.Status.COMPLETED)
        .select_related('assigned_to', 'created_by')
        .order_by('due_date', 'end_time', 'pk')
    )
    return analytics.filter_overdue(candidates, now)


# =============================================================================
# CSV export
# =============================================================================

def _user_name(member):
    return member.get_full_name() if member else ''


def export_tasks_csv(user, now=None):
    """
    Visible tasks as CSV text, prefixed with a UTF-8 BOM so spreadsheet
    applications pick the right encoding.
    """
    now = now or timezone.now()
    tasks = get_visible_tasks(user).order_by('-created_at', '-pk')

    output = StringIO()
    output.write('\ufeff')
    writer = csv.writer(output)
    writer.writerow(TASK_CSV_HEADER)

    for task in tasks:
        writer.writerow([
            task.pk,
            task.title,
            task.description,
            task.get_category_display(),
            task.get_priority_display(),
            task.get_status_display(),
            task.progress_percentage,
            _user_name(task.assigned_to),
            _user_name(task.created_by),
            task.due_date.isoformat() if task.due_date else '',
            ', '.join(task.tags or []),
            'Yes' if analytics.is_overdue(task, now) else 'No',
            timezone.localtime(task.created_at).strftime('%Y-%m-%d %H:%M'),
            timezone.localtime(task.updated_at).strftime('%Y-%m-%d %H:%M'),
        ])

    logger.info('Task CSV exported by %s', user.email)
    return output.getvalue()
