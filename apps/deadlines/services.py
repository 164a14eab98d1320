"""
Service layer for deadlines app.

Services:
- get_visible_deadlines: admins see all, others only their own
- create_deadline / update_deadline / delete_deadline
- import_deadlines_csv: all-or-nothing bulk import
- export_deadlines_csv: same columns as the import
"""

import csv
import logging
from io import StringIO

from django.core.exceptions import PermissionDenied, ValidationError
from django.db import transaction
from django.utils import timezone

from apps.activity_log.models import log_activity
from .forms import DeadlineForm
from .models import Deadline

logger = logging.getLogger(__name__)

CSV_COLUMNS = ['deadline_date', 'reminder_date', 'title', 'description', 'priority', 'category']
REQUIRED_COLUMNS = ('deadline_date', 'title')


def get_visible_deadlines(user):
    queryset = Deadline.objects.select_related('created_by')
    if user.is_admin():
        return queryset
    return queryset.filter(created_by=user)


def can_edit_deadline(user, deadline):
    return user.is_admin() or deadline.created_by_id == user.pk


def create_deadline(created_by, **fields):
    is_completed = fields.pop('is_completed', False)
    deadline = Deadline(created_by=created_by, **fields)
    if is_completed:
        deadline.is_completed = True
        deadline.completed_at = timezone.now()

    with transaction.atomic():
        deadline.save()
        log_activity(
            user=created_by,
            action='deadline_created',
            entity_type='deadline',
            entity_id=deadline.pk,
            details={'title': deadline.title, 'deadline_date': deadline.deadline_date.isoformat()},
        )
    return deadline


def update_deadline(deadline, user, **fields):
    """
    Update the submitted fields of a deadline (creator or admin).

    Raises:
        PermissionDenied: If the user may not edit it
        ValidationError: If the reminder would fall after the deadline
    """
    if not can_edit_deadline(user, deadline):
        raise PermissionDenied('You do not have permission to update this deadline.')

    changed = sorted(fields)
    reminder_date = fields.get('reminder_date', deadline.reminder_date)
    deadline_date = fields.get('deadline_date', deadline.deadline_date)
    if reminder_date and deadline_date and reminder_date > deadline_date:
        raise ValidationError('Reminder date cannot be after the deadline.')

    if 'is_completed' in fields:
        done = fields.pop('is_completed')
        if done != deadline.is_completed:
            deadline.is_completed = done
            deadline.completed_at = timezone.now() if done else None

    for field, value in fields.items():
        setattr(deadline, field, value)

    with transaction.atomic():
        deadline.save()
        log_activity(
            user=user,
            action='deadline_updated',
            entity_type='deadline',
            entity_id=deadline.pk,
            details={'fields': changed},
        )
    return deadline


def delete_deadline(deadline, user):
    if not can_edit_deadline(user, deadline):
        raise PermissionDenied('You do not have permission to delete this deadline.')

    with transaction.atomic():
        log_activity(
            user=user,
            action='deadline_deleted',
            entity_type='deadline',
            entity_id=deadline.pk,
            details={'title': deadline.title},
        )
        deadline.delete()


def parse_deadlines_csv(text):
    """
    Validate CSV text row by row.

    The header row is required and must contain at least deadline_date
    and title; unknown columns are ignored.

    Returns:
        tuple: (cleaned_rows, errors) where errors is a list of
        {"line": n, "errors": {...}} using 1-based file line numbers
    """
    reader = csv.DictReader(StringIO(text.lstrip('\ufeff')))
    header = [name.strip() for name in (reader.fieldnames or [])]
    missing = [col for col in REQUIRED_COLUMNS if col not in header]
    if missing:
        raise ValidationError(f"CSV header is missing column(s): {', '.join(missing)}.")
    reader.fieldnames = header

    rows, errors = [], []
    for record in reader:
        line = reader.line_num
        values = {
            col: (record.get(col) or '').strip()
            for col in CSV_COLUMNS
        }
        if not any(values.values()):
            continue
        form = DeadlineForm({k: v for k, v in values.items() if v})
        if form.is_valid():
            data = form.cleaned_data
            data.pop('is_completed', None)
            rows.append(data)
        else:
            errors.append({
                'line': line,
                'errors': {f: [str(e) for e in errs] for f, errs in form.errors.items()},
            })

    if not rows and not errors:
        raise ValidationError('CSV file contains no deadlines.')
    return rows, errors


def import_deadlines_csv(text, user):
    """
    Create every deadline in ``text`` or none of them.

    Returns:
        tuple: (created_deadlines, errors). When errors is non-empty
        nothing was saved.
    """
    rows, errors = parse_deadlines_csv(text)
    if errors:
        logger.info('Deadline import by %s rejected: %d invalid row(s)', user.email, len(errors))
        return [], errors

    with transaction.atomic():
        created = Deadline.objects.bulk_create(
            [Deadline(created_by=user, **row) for row in rows]
        )
        log_activity(
            user=user,
            action='deadlines_imported',
            entity_type='deadline',
            details={'count': len(created)},
        )

    logger.info('%d deadline(s) imported by %s', len(created), user.email)
    return created, []


def export_deadlines_csv(deadlines):
    """Render deadlines as CSV text with the import columns."""
    output = StringIO()
    writer = csv.DictWriter(output, fieldnames=CSV_COLUMNS)
    writer.writeheader()
    for deadline in deadlines:
        writer.writerow({
            'deadline_date': deadline.deadline_date.isoformat(),
            'reminder_date': deadline.reminder_date.isoformat() if deadline.reminder_date else '',
            'title': deadline.title,
            'description': deadline.description,
            'priority': deadline.priority,
            'category': deadline.category,
        })
    return output.getvalue()
