"""
Service layer for notifications app.

In-app notifications and email for tracker events:
- notify / notify_many / broadcast: create in-app notifications
- notify_task_assigned, notify_issue_reported, notify_issue_assigned
- send_notification_email: plain-text email honouring user preferences
- build_daily_digest / send_daily_digest: morning summary email
"""

import logging

from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.mail import send_mail
from django.utils import timezone

from apps.activity_log.models import log_activity
from apps.reports import analytics
from .models import Notification

logger = logging.getLogger(__name__)

DIGEST_LIMIT = 10


def absolute_url(link):
    return f'{settings.SITE_URL}{link}' if link else settings.SITE_URL


def task_link(task):
    return f'/tasks/{task.pk}'


def issue_link(issue):
    return f'/issues/{issue.pk}'


def deadline_link(deadline):
    return f'/deadlines/{deadline.pk}'


# =============================================================================
# In-app notifications
# =============================================================================

def notify(recipient, title, message='', type=Notification.Type.INFO, link=''):
    """
    Create one in-app notification.

    Returns:
        Notification, or None when the recipient switched in-app off
    """
    if not recipient.wants_in_app():
        return None
    return Notification.objects.create(
        recipient=recipient,
        type=type,
        title=title,
        message=message,
        link=link,
    )


def notify_many(recipients, title, message='', type=Notification.Type.INFO, link=''):
    """Bulk fan-out of the same notification. Returns the created rows."""
    rows = [
        Notification(recipient=r, type=type, title=title, message=message, link=link)
        for r in recipients
        if r.wants_in_app()
    ]
    return Notification.objects.bulk_create(rows)


def broadcast(sender, title, message='', type=Notification.Type.BROADCAST, link=''):
    """Send a notification to every active user."""
    User = get_user_model()
    created = notify_many(User.objects.filter(is_active=True), title, message, type, link)
    log_activity(
        user=sender,
        action='notification_broadcast',
        entity_type='notification',
        details={'title': title, 'recipients': len(created)},
    )
    logger.info('Broadcast "%s" sent to %d user(s) by %s', title, len(created), sender.email)
    return created


# =============================================================================
# Email
# =============================================================================

def send_notification_email(user, subject, body):
    """
    Send a plain-text email to ``user``.

    Skipped when the user turned email notifications off. Delivery errors
    are logged, not raised: the triggering change is already saved.

    Returns:
        bool: True if the email was sent
    """
    if not user.email or not user.wants_email():
        return False
    try:
        send_mail(subject, body, settings.DEFAULT_FROM_EMAIL, [user.email])
        return True
    except Exception as e:
        logger.error('Failed to send "%s" to %s: %s', subject, user.email, e)
        return False


# =============================================================================
# Event notifications
# =============================================================================

def notify_task_assigned(task, assigned_by):
    """
    Tell the assignee about a task someone else gave them.
    """
    assignee = task.assigned_to
    if assignee is None or assignee.pk == assigned_by.pk:
        return None

    link = task_link(task)
    notification = notify(
        assignee,
        title='New task assigned',
        message=f'{assigned_by.get_full_name()} assigned you "{task.title}".',
        type=Notification.Type.TASK_ASSIGNED,
        link=link,
    )
    due = task.due_date.isoformat() if task.due_date else 'no due date'
    send_notification_email(
        assignee,
        f'New task: {task.title}',
        f'Hello {assignee.get_short_name()},\n\n'
        f'{assigned_by.get_full_name()} assigned you a task.\n\n'
        f'Title: {task.title}\n'
        f'Priority: {task.get_priority_display()}\n'
        f'Category: {task.get_category_display()}\n'
        f'Due: {due}\n\n'
        f'{absolute_url(link)}\n',
    )
    return notification


def notify_issue_reported(issue):
    """Fan a newly reported issue out to every active admin."""
    User = get_user_model()
    admins = User.objects.filter(role=User.Role.ADMIN, is_active=True).exclude(pk=issue.reported_by_id)
    link = issue_link(issue)
    reporter = issue.reported_by.get_full_name()

    created = notify_many(
        admins,
        title='New issue reported',
        message=f'{reporter} reported "{issue.title}" ({issue.get_priority_display()}).',
        type=Notification.Type.ISSUE_REPORTED,
        link=link,
    )
    for admin in admins:
        send_notification_email(
            admin,
            f'New issue: {issue.title}',
            f'{reporter} reported an issue waiting for assignment.\n\n'
            f'Title: {issue.title}\n'
            f'Priority: {issue.get_priority_display()}\n\n'
            f'{issue.description}\n\n'
            f'{absolute_url(link)}\n',
        )
    return created


def notify_issue_assigned(issue, task):
    """Tell the assignee that an issue (and its resolution task) is theirs."""
    assignee = issue.assigned_to
    link = task_link(task)
    notification = notify(
        assignee,
        title='Issue assigned to you',
        message=f'Resolve "{issue.title}".',
        type=Notification.Type.ISSUE_ASSIGNED,
        link=link,
    )
    send_notification_email(
        assignee,
        f'Issue assigned: {issue.title}',
        f'Hello {assignee.get_short_name()},\n\n'
        f'The issue "{issue.title}" has been assigned to you.\n'
        f'A resolution task was created: {absolute_url(link)}\n',
    )
    return notification


# =============================================================================
# Daily digest
# =============================================================================

def build_daily_digest(user, now=None):
    """
    Collect the morning summary for ``user``.

    - overdue_tasks: assigned, open and past deadline (oldest due first)
    - today_tasks: assigned, not started/in progress, due today (most severe first)
    - pending_issues: admins only, issues awaiting assignment (newest first)

    Each list holds at most DIGEST_LIMIT entries.
    """
    from apps.issues.models import Issue
    from apps.tasks.models import Task

    now = now or timezone.now()
    today = timezone.localtime(now).date() if timezone.is_aware(now) else now.date()

    open_tasks = Task.objects.filter(assigned_to=user).exclude(status=Task.Status.COMPLETED)

    overdue = analytics.filter_overdue(open_tasks.filter(due_date__lte=today), now)
    overdue.sort(key=lambda t: (t.due_date, t.pk))

    severity = {p: i for i, p in enumerate(analytics.PRIORITIES)}
    due_today = list(open_tasks.filter(
        due_date=today,
        status__in=[Task.Status.NOT_STARTED, Task.Status.IN_PROGRESS],
    ))
    due_today = [t for t in due_today if not analytics.is_overdue(t, now)]
    due_today.sort(key=lambda t: (-severity.get(t.priority, 0), t.pk))

    pending_issues = []
    if user.is_admin():
        pending_issues = list(
            Issue.objects.filter(status=Issue.Status.PENDING_ASSIGNMENT)
            .select_related('reported_by')
            .order_by('-created_at')[:DIGEST_LIMIT]
        )

    return {
        'date': today,
        'overdue_tasks': [
            {'id': t.pk, 'title': t.title, 'due_date': t.due_date, 'priority': t.priority}
            for t in overdue[:DIGEST_LIMIT]
        ],
        'today_tasks': [
            {'id': t.pk, 'title': t.title, 'priority': t.priority}
            for t in due_today[:DIGEST_LIMIT]
        ],
        'pending_issues': [
            {
                'id': i.pk,
                'title': i.title,
                'priority': i.priority,
                'reported_by': i.reported_by.get_full_name(),
            }
            for i in pending_issues
        ],
    }


def digest_has_content(digest):
    return bool(digest['overdue_tasks'] or digest['today_tasks'] or digest['pending_issues'])


def render_digest(user, digest):
    lines = [f'Hello {user.get_short_name()},', '', f'Your summary for {digest["date"]:%d %B %Y}.']

    if digest['overdue_tasks']:
        lines += ['', f'Overdue tasks ({len(digest["overdue_tasks"])}):']
        lines += [
            f'  - {t["title"]} (due {t["due_date"]}, {t["priority"]})'
            for t in digest['overdue_tasks']
        ]
    if digest['today_tasks']:
        lines += ['', f'Due today ({len(digest["today_tasks"])}):']
        lines += [f'  - {t["title"]} ({t["priority"]})' for t in digest['today_tasks']]
    if digest['pending_issues']:
        lines += ['', f'Issues awaiting assignment ({len(digest["pending_issues"])}):']
        lines += [
            f'  - {i["title"]} ({i["priority"]}, reported by {i["reported_by"]})'
            for i in digest['pending_issues']
        ]

    lines += ['', absolute_url('/'), '']
    return '\n'.join(lines)


def send_daily_digest(user, now=None):
    """
    Email the daily digest to ``user``.

    Skipped when email is switched off or there is nothing to report.

    Returns:
        bool: True if an email was sent
    """
    if not user.wants_email():
        logger.debug('Digest skipped for %s: email notifications off', user.email)
        return False

    digest = build_daily_digest(user, now)
    if not digest_has_content(digest):
        logger.debug('Digest skipped for %s: nothing to report', user.email)
        return False

    return send_notification_email(
        user,
        f'Daily summary - {digest["date"]:%d %B %Y}',
        render_digest(user, digest),
    )


def update_notification_preferences(user, **switches):
    """Merge boolean switches into the user's stored preferences."""
    prefs = dict(user.notification_preferences or {})
    prefs.update({k: bool(v) for k, v in switches.items()})
    user.notification_preferences = prefs
    user.save(update_fields=['notification_preferences'])
    return prefs
