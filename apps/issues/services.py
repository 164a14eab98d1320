"""
Service layer for issues app.

Services:
- report_issue: Any user reports a problem; admins are notified
- assign_issue: Admin turns a pending issue into an issue_resolution task
- update_issue: Admin edits fields / status, stamping resolved_at once
- delete_issue: Admin-only removal
"""

import logging

from django.core.exceptions import PermissionDenied, ValidationError
from django.db import transaction
from django.utils import timezone

from apps.activity_log.models import log_activity
from apps.notifications.services import notify_issue_assigned, notify_issue_reported
from apps.tasks.models import Task
from apps.tasks.services import create_task
from .models import Issue
from .permissions import can_manage_issue

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ('title', 'description', 'priority', 'status', 'resolution_notes')


def report_issue(reported_by, title, description, priority, suggested_assignee):
    """
    Report a new issue.

    Args:
        reported_by: User reporting the issue
        title / description: Required text
        priority: low/medium/high/critical
        suggested_assignee: Active user the reporter proposes

    Returns:
        Created Issue instance (status pending_assignment)

    Raises:
        ValidationError: If a required field is missing or invalid
    """
    title = (title or '').strip()
    description = (description or '').strip()
    if not title or not description:
        raise ValidationError("Title and description are required.")
    if priority not in Issue.Priority.values:
        raise ValidationError(f"Invalid priority: {priority}")
    if suggested_assignee is None or not suggested_assignee.is_active:
        raise ValidationError("Suggested assignee must be an active user.")

    with transaction.atomic():
        issue = Issue.objects.create(
            title=title,
            description=description,
            priority=priority,
            suggested_assignee=suggested_assignee,
            reported_by=reported_by,
            status=Issue.Status.PENDING_ASSIGNMENT,
        )
        log_activity(
            user=reported_by,
            action='issue_created',
            entity_type='issue',
            entity_id=issue.pk,
            details={
                'title': issue.title,
                'priority': issue.priority,
                'suggested_assignee': suggested_assignee.pk,
            },
        )
        notify_issue_reported(issue)

    logger.info('Issue %s reported by %s', issue.pk, reported_by.email)
    return issue


def assign_issue(issue, user, assignee, title=None, description=None, priority=None):
    """
    Assign a pending issue and create its resolution task atomically.

    Optional title/description/priority overrides are saved on the issue
    first and copied to the task.

    Returns:
        tuple: (issue, task)

    Raises:
        PermissionDenied: For non-admins
        ValidationError: If the issue is no longer pending or the assignee is inactive
    """
    if not can_manage_issue(user, issue):
        raise PermissionDenied("Only admins can assign issues.")
    if not issue.is_pending:
        raise ValidationError("Issue has already been assigned.")
    if assignee is None or not assignee.is_active:
        raise ValidationError("Assignee must be an active user.")
    if priority and priority not in Issue.Priority.values:
        raise ValidationError(f"Invalid priority: {priority}")

    with transaction.atomic():
        # Lock the row so two admins cannot both assign it
        issue = Issue.objects.select_for_update().get(pk=issue.pk)
        if not issue.is_pending:
            raise ValidationError("Issue has already been assigned.")

        if title:
            issue.title = title.strip()
        if description:
            issue.description = description.strip()
        if priority:
            issue.priority = priority

        task = create_task(
            created_by=user,
            title=issue.title,
            category=Task.Category.ISSUE_RESOLUTION,
            priority=issue.priority,
            assigned_to=assignee,
            related_issue=issue,
            notify_assignee=False,
            description=issue.description,
        )

        issue.status = Issue.Status.ASSIGNED
        issue.assigned_to = assignee
        issue.assigned_at = timezone.now()
        issue.save()

        log_activity(
            user=user,
            action='issue_assigned',
            entity_type='issue',
            entity_id=issue.pk,
            details={'assigned_to': assignee.pk, 'task_id': task.pk},
        )
        notify_issue_assigned(issue, task)

    logger.info('Issue %s assigned to %s (task %s)', issue.pk, assignee.email, task.pk)
    return issue, task


def update_issue(issue, user, **fields):
    """
    Update issue fields (Admin only).

    resolved_at is stamped the first time the status becomes resolved
    and kept afterwards.

    Raises:
        PermissionDenied: For non-admins
        ValidationError: On unknown fields or choice values
    """
    if not can_manage_issue(user, issue):
        raise PermissionDenied("Only admins can update issues.")

    unknown = set(fields) - set(EDITABLE_FIELDS)
    if unknown:
        raise ValidationError(f"Unknown issue field(s): {', '.join(sorted(unknown))}")
    if 'status' in fields and fields['status'] not in Issue.Status.values:
        raise ValidationError(f"Invalid status: {fields['status']}")
    if 'priority' in fields and fields['priority'] not in Issue.Priority.values:
        raise ValidationError(f"Invalid priority: {fields['priority']}")

    changes = {}
    for field, value in fields.items():
        old_value = getattr(issue, field)
        if old_value != value:
            changes[field] = [old_value, value]
            setattr(issue, field, value)

    if issue.status == Issue.Status.RESOLVED and issue.resolved_at is None:
        issue.resolved_at = timezone.now()

    if changes:
        with transaction.atomic():
            issue.save()
            log_activity(
                user=user,
                action='issue_updated',
                entity_type='issue',
                entity_id=issue.pk,
                details={'changes': changes},
            )
    return issue


def delete_issue(issue, user):
    if not can_manage_issue(user, issue):
        raise PermissionDenied("Only admins can delete issues.")

    with transaction.atomic():
        log_activity(
            user=user,
            action='issue_deleted',
            entity_type='issue',
            entity_id=issue.pk,
            details={'title': issue.title},
        )
        issue.delete()
