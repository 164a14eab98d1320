"""
Service layer for tasks app.

All business logic for task operations is centralized here.
Views and the issue workflow both go through these functions.

Services:
- create_task: Create new task with assignment permission check
- update_task: Update task fields with activity logging
- change_status: Move a task through its workflow, stamping completion
- delete_task: Admin-only removal
- add_note: Add a note to a task
- add_checklist_item / update_checklist_item / delete_checklist_item
"""

import logging

from django.core.exceptions import PermissionDenied, ValidationError
from django.db import transaction
from django.db.models import Max
from django.utils import timezone

from apps.activity_log.models import log_activity
from apps.notifications.services import notify_task_assigned
from .models import ChecklistItem, Task, TaskNote, normalize_tags
from .permissions import (
    can_assign_to, can_change_task_status, can_delete_task, can_edit_task, can_view_task,
)

logger = logging.getLogger(__name__)

OPTIONAL_FIELDS = (
    'description', 'due_date', 'start_time', 'end_time', 'estimated_hours',
    'actual_hours', 'tags', 'is_recurring', 'recurrence_pattern',
    'recurrence_interval', 'recurrence_end_date',
)

UPDATABLE_FIELDS = OPTIONAL_FIELDS + (
    'title', 'category', 'priority', 'status', 'assigned_to', 'progress_percentage',
)

# Columns that cannot hold NULL; a null/blank value for these is ignored
NON_NULL_FIELDS = {
    'title', 'category', 'priority', 'status', 'progress_percentage',
    'is_recurring', 'recurrence_interval', 'description', 'tags',
}


def _loggable(value):
    if value is None or isinstance(value, (bool, int, float, str, list, dict)):
        return value
    if hasattr(value, 'pk'):
        return value.pk
    return str(value)


def _check_assignee(user, assignee):
    if not can_assign_to(user, assignee):
        raise PermissionDenied("Only admins can assign tasks to other users.")
    if assignee is not None and not assignee.is_active:
        raise ValidationError("Cannot assign task to inactive user.")


def _apply_status(task, new_status, now):
    """
    Set ``status`` and keep the completion fields consistent.

    Returns:
        True if the status changed
    """
    if new_status not in Task.Status.values:
        raise ValidationError(f"Invalid status: {new_status}")

    old_status = task.status
    if new_status == old_status:
        return False

    # Lateness is judged against the status the task had before completing
    if new_status == Task.Status.COMPLETED:
        task.mark_completed(now)
    elif old_status == Task.Status.COMPLETED:
        task.mark_reopened()
    task.status = new_status
    return True


def create_task(created_by, title, category, priority, assigned_to=None,
                related_issue=None, notify_assignee=True, **fields):
    """
    Central task creation function.

    Args:
        created_by: User creating the task (required)
        title: Task title (required)
        category: routine/project/one_time/issue_resolution (required)
        priority: low/medium/high/critical (required)
        assigned_to: User responsible (optional)
        related_issue: Issue this task resolves (optional)
        notify_assignee: Send the "task assigned" notification (default True)
        **fields: Any of OPTIONAL_FIELDS

    Returns:
        Created Task instance

    Raises:
        PermissionDenied: If a non-admin assigns the task to someone else
        ValidationError: If required fields are missing or invalid
    """
    if not title or not title.strip():
        raise ValidationError("Task title is required.")
    if category not in Task.Category.values:
        raise ValidationError(f"Invalid category: {category}")
    if priority not in Task.Priority.values:
        raise ValidationError(f"Invalid priority: {priority}")

    unknown = set(fields) - set(OPTIONAL_FIELDS)
    if unknown:
        raise ValidationError(f"Unknown task field(s): {', '.join(sorted(unknown))}")

    _check_assignee(created_by, assigned_to)

    values = {
        name: value for name, value in fields.items()
        if not (value is None and name in NON_NULL_FIELDS)
    }
    values['tags'] = normalize_tags(values.get('tags'))
    values['description'] = (values.get('description') or '').strip()

    with transaction.atomic():
        task = Task.objects.create(
            title=title.strip(),
            category=category,
            priority=priority,
            status=Task.Status.NOT_STARTED,
            progress_percentage=0,
            assigned_to=assigned_to,
            created_by=created_by,
            related_issue=related_issue,
            **values,
        )

        log_activity(
            user=created_by,
            action='task_created',
            entity_type='task',
            entity_id=task.pk,
            details={
                'title': task.title,
                'assigned_to': task.assigned_to_id,
                'category': task.category,
            },
        )

        if notify_assignee and assigned_to is not None and assigned_to.pk != created_by.pk:
            notify_task_assigned(task, assigned_by=created_by)

    logger.info('Task %s created by %s', task.pk, created_by.email)
    return task


def update_task(task, user, **fields):
    """
    Update task fields with activity logging.
    Admin, assignee or creator can edit.

    Args:
        task: Task instance to update
        user: User performing the update
        **fields: Any of UPDATABLE_FIELDS. None clears nullable fields.

    Returns:
        Updated Task instance

    Raises:
        PermissionDenied: If user cannot edit the task or assign it
        ValidationError: If validation fails
    """
    if not can_edit_task(user, task):
        raise PermissionDenied("You don't have permission to update this task.")

    unknown = set(fields) - set(UPDATABLE_FIELDS)
    if unknown:
        raise ValidationError(f"Unknown task field(s): {', '.join(sorted(unknown))}")

    now = timezone.now()
    changes = {}
    reassigned = False

    with transaction.atomic():
        for field, new_value in fields.items():
            if field in NON_NULL_FIELDS and new_value in (None, ''):
                if field != 'description':
                    continue
                new_value = ''

            if field == 'title':
                new_value = new_value.strip()
            elif field == 'tags':
                new_value = normalize_tags(new_value)
            elif field == 'category' and new_value not in Task.Category.values:
                raise ValidationError(f"Invalid category: {new_value}")
            elif field == 'priority' and new_value not in Task.Priority.values:
                raise ValidationError(f"Invalid priority: {new_value}")
            elif field == 'progress_percentage':
                new_value = max(0, min(100, int(new_value)))
            elif field == 'assigned_to':
                if new_value == task.assigned_to:
                    continue
                _check_assignee(user, new_value)
                reassigned = new_value is not None

            # Status goes last so completion sees the final schedule
            if field == 'status':
                continue

            old_value = getattr(task, field)
            if old_value != new_value:
                changes[field] = [_loggable(old_value), _loggable(new_value)]
                setattr(task, field, new_value)

        if fields.get('status'):
            old_status = task.status
            if _apply_status(task, fields['status'], now):
                changes['status'] = [old_status, task.status]

        if changes:
            task.save()
            log_activity(
                user=user,
                action='task_updated',
                entity_type='task',
                entity_id=task.pk,
                details={'changes': changes},
            )

        if reassigned:
            notify_task_assigned(task, assigned_by=user)

    return task


def change_status(task, user, status, progress=None):
    """
    Change task status (and optionally progress).

    Completion stamps completed_at and late_completion; leaving completed
    clears them.

    Args:
        task: Task instance
        user: User changing the status
        status: Target status
        progress: Optional progress percentage, clamped to 0-100

    Returns:
        Updated Task instance

    Raises:
        PermissionDenied: If user is neither admin nor assignee
        ValidationError: If the status is unknown
    """
    if not can_change_task_status(user, task):
        raise PermissionDenied("You don't have permission to update this task status.")

    old_status = task.status
    with transaction.atomic():
        changed = _apply_status(task, status, timezone.now())
        if progress is not None:
            task.progress_percentage = max(0, min(100, int(progress)))
        task.save()

        if changed:
            log_activity(
                user=user,
                action='task_status_changed',
                entity_type='task',
                entity_id=task.pk,
                details={
                    'old_status': old_status,
                    'new_status': task.status,
                    'late_completion': task.late_completion,
                },
            )

    return task


def delete_task(task, user):
    """
    Delete a task (Admin only).

    Raises:
        PermissionDenied: For non-admins
    """
    if not can_delete_task(user, task):
        raise PermissionDenied("Only admins can delete tasks.")

    with transaction.atomic():
        log_activity(
            user=user,
            action='task_deleted',
            entity_type='task',
            entity_id=task.pk,
            details={'title': task.title},
        )
        task.delete()

    logger.info('Task "%s" deleted by %s', task.title, user.email)


def add_note(task, user, content):
    """
    Add a note to a task.

    Raises:
        PermissionDenied: If user cannot see the task
        ValidationError: If content is empty
    """
    if not can_view_task(user, task):
        raise PermissionDenied("You do not have access to this task.")

    content = (content or '').strip()
    if not content:
        raise ValidationError("Note cannot be empty.")

    return TaskNote.objects.create(task=task, user=user, content=content)


# =============================================================================
# Checklist
# =============================================================================

def add_checklist_item(task, user, title, position=None):
    """Append a checklist item; without a position it goes last."""
    if not can_edit_task(user, task):
        raise PermissionDenied("You don't have permission to edit this task.")

    title = (title or '').strip()
    if not title:
        raise ValidationError("Checklist item title is required.")

    if position is None:
        last = task.checklist_items.aggregate(last=Max('position'))['last']
        position = 0 if last is None else last + 1

    return ChecklistItem.objects.create(task=task, title=title, position=position)


def update_checklist_item(item, user, title=None, is_completed=None, position=None):
    """
    Rename, reorder or tick/untick a checklist item.

    Ticking records who completed it and when; unticking clears both.
    """
    if not can_edit_task(user, item.task):
        raise PermissionDenied("You don't have permission to edit this task.")

    if title is not None:
        title = title.strip()
        if not title:
            raise ValidationError("Checklist item title cannot be empty.")
        item.title = title
    if position is not None:
        item.position = position
    if is_completed is not None and is_completed != item.is_completed:
        item.is_completed = is_completed
        item.completed_at = timezone.now() if is_completed else None
        item.completed_by = user if is_completed else None

    item.save()
    return item


def delete_checklist_item(item, user):
    if not can_edit_task(user, item.task):
        raise PermissionDenied("You don't have permission to edit this task.")
    item.delete()
