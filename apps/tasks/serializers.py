"""
JSON representations of tasks, notes and checklist items.
"""

from apps.accounts.services import user_summary


def _hours(value):
    return float(value) if value is not None else None


def serialize_task(task):
    return {
        'id': task.pk,
        'title': task.title,
        'description': task.description,
        'category': task.category,
        'status': task.status,
        'priority': task.priority,
        'assigned_to': user_summary(task.assigned_to),
        'created_by': user_summary(task.created_by),
        'related_issue_id': task.related_issue_id,
        'due_date': task.due_date,
        'start_time': task.start_time,
        'end_time': task.end_time,
        'estimated_hours': _hours(task.estimated_hours),
        'actual_hours': _hours(task.actual_hours),
        'progress_percentage': task.progress_percentage,
        'tags': task.tags or [],
        'is_recurring': task.is_recurring,
        'recurrence_pattern': task.recurrence_pattern,
        'recurrence_interval': task.recurrence_interval,
        'recurrence_end_date': task.recurrence_end_date,
        'completed_at': task.completed_at,
        'late_completion': task.late_completion,
        'is_overdue': task.is_overdue,
        'created_at': task.created_at,
        'updated_at': task.updated_at,
    }


def serialize_note(note):
    return {
        'id': note.pk,
        'task_id': note.task_id,
        'user': user_summary(note.user),
        'content': note.content,
        'created_at': note.created_at,
    }


def serialize_checklist_item(item):
    return {
        'id': item.pk,
        'task_id': item.task_id,
        'title': item.title,
        'position': item.position,
        'is_completed': item.is_completed,
        'completed_at': item.completed_at,
        'completed_by': user_summary(item.completed_by),
        'created_at': item.created_at,
        'updated_at': item.updated_at,
    }
