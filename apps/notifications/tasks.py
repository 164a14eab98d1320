"""
Scheduled tasks for notifications app.

Background jobs run by the Django-Q2 cluster (see setup_schedules):
- send_daily_digests: morning summary email (daily at 08:00)
- check_overdue_tasks: one in-app reminder per overdue task per day (09:00)
- check_deadline_reminders: deadlines whose reminder date is today (hourly)

Each job is safe to re-run on the same day; reminders already sent today
are not repeated.
"""

import logging

from django.contrib.auth import get_user_model
from django.utils import timezone

from apps.activity_log.models import ActivityLog, log_activity
from apps.reports import analytics
from .models import Notification
from .services import (
    absolute_url, deadline_link, notify, send_daily_digest, send_notification_email, task_link,
)

logger = logging.getLogger(__name__)


def _reminded_today(action, entity_type, entity_id, today):
    return ActivityLog.objects.filter(
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        created_at__date=today,
    ).exists()


def send_daily_digests(now=None):
    """
    Email the daily digest to every active user who wants email.

    Users with nothing to report are skipped by send_daily_digest.

    Returns:
        dict: counts of sent and skipped digests
    """
    User = get_user_model()
    now = now or timezone.now()
    sent = skipped = 0

    for user in User.objects.filter(is_active=True).order_by('pk'):
        if send_daily_digest(user, now):
            sent += 1
        else:
            skipped += 1

    logger.info('Daily digest: %d sent, %d skipped', sent, skipped)
    return {'sent': sent, 'skipped': skipped}


def check_overdue_tasks(now=None):
    """
    Remind assignees about their overdue tasks.

    At most one reminder per task per day: each reminder is written to
    the activity log and a matching entry from today suppresses the next.

    Returns:
        int: number of reminders created
    """
    from apps.tasks.models import Task

    now = now or timezone.now()
    today = timezone.localtime(now).date()

    candidates = (
        Task.objects.filter(assigned_to__isnull=False, assigned_to__is_active=True, due_date__lte=today)
        .exclude(status=Task.Status.COMPLETED)
        .select_related('assigned_to')
    )

    reminded = 0
    for task in analytics.filter_overdue(candidates, now):
        assignee = task.assigned_to
        link = task_link(task)
        if _reminded_today('overdue_reminder_sent', 'task', task.pk, today):
            continue

        days_late = (today - task.due_date).days
        when = 'today' if days_late == 0 else f'{days_late} day(s) ago'
        notify(
            assignee,
            title='Task overdue',
            message=f'"{task.title}" was due {when}.',
            type=Notification.Type.TASK_OVERDUE,
            link=link,
        )
        send_notification_email(
            assignee,
            f'Overdue: {task.title}',
            f'Hello {assignee.get_short_name()},\n\n'
            f'The task "{task.title}" was due {task.due_date:%d %B %Y} and is not completed yet.\n\n'
            f'{absolute_url(link)}\n',
        )
        log_activity(None, 'overdue_reminder_sent', 'task', task.pk, {'recipient': assignee.pk})
        reminded += 1

    logger.info('Overdue check: %d reminder(s) sent', reminded)
    return reminded


def check_deadline_reminders(now=None):
    """
    Remind deadline owners whose reminder date is today.

    Returns:
        int: number of reminders created
    """
    from apps.deadlines.models import Deadline

    now = now or timezone.now()
    today = timezone.localtime(now).date()

    due = Deadline.objects.filter(
        reminder_date=today,
        is_completed=False,
        created_by__is_active=True,
    ).select_related('created_by')

    reminded = 0
    for deadline in due:
        owner = deadline.created_by
        link = deadline_link(deadline)
        if _reminded_today('deadline_reminder_sent', 'deadline', deadline.pk, today):
            continue

        notify(
            owner,
            title='Deadline reminder',
            message=f'"{deadline.title}" is due on {deadline.deadline_date:%d %B %Y}.',
            type=Notification.Type.DEADLINE_REMINDER,
            link=link,
        )
        send_notification_email(
            owner,
            f'Reminder: {deadline.title}',
            f'Hello {owner.get_short_name()},\n\n'
            f'This is your reminder for "{deadline.title}", due {deadline.deadline_date:%d %B %Y}.\n\n'
            f'{absolute_url(link)}\n',
        )
        log_activity(None, 'deadline_reminder_sent', 'deadline', deadline.pk, {'recipient': owner.pk})
        reminded += 1

    logger.info('Deadline reminders: %d sent', reminded)
    return reminded
