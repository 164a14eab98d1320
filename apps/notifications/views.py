"""
Views for notifications app.

Includes:
- The current user's notifications with unread count
- Mark read / read-all / delete
- Notification preferences
- Admin: single-user notification, broadcast, digest trigger
- Digest preview by email for the current user
"""

import logging

from django.shortcuts import get_object_or_404
from django.utils import timezone
from django_q.tasks import async_task

from apps.accounts.forms import NotificationPreferencesForm
from apps.core.http import admin_required, api_response, api_view, form_error_response, json_body, paginate
from .forms import BroadcastForm, NotificationCreateForm
from .models import Notification
from .services import broadcast, notify, send_daily_digest, update_notification_preferences

logger = logging.getLogger(__name__)


def serialize_notification(notification):
    return {
        'id': notification.pk,
        'type': notification.type,
        'title': notification.title,
        'message': notification.message,
        'link': notification.link,
        'is_read': notification.is_read,
        'read_at': notification.read_at,
        'created_at': notification.created_at,
    }


@api_view(['GET', 'POST'])
def notification_collection_view(request):
    """
    GET: own notifications, newest first (``?unread_only=true``).
    POST (admin): notify one user.
    """
    if request.method == 'POST':
        return _create_notification(request)

    queryset = Notification.objects.filter(recipient=request.user)
    unread_count = queryset.filter(is_read=False).count()
    if request.GET.get('unread_only') == 'true':
        queryset = queryset.filter(is_read=False)

    notifications, page = paginate(request, queryset)
    return api_response(
        [serialize_notification(n) for n in notifications],
        unread_count=unread_count,
        **page,
    )


@admin_required
def _create_notification(request):
    form = NotificationCreateForm(json_body(request))
    if not form.is_valid():
        return form_error_response(form)

    data = form.cleaned_data
    notification = Notification.objects.create(
        recipient=data['user_id'],
        type=data['type'],
        title=data['title'],
        message=data['message'],
        link=data['link'],
    )
    return api_response(serialize_notification(notification), status=201,
                        message='Notification created successfully.')


@api_view(['PUT', 'PATCH', 'POST'])
def notification_read_view(request, pk):
    notification = get_object_or_404(Notification, pk=pk, recipient=request.user)
    if not notification.is_read:
        notification.is_read = True
        notification.read_at = timezone.now()
        notification.save(update_fields=['is_read', 'read_at'])
    return api_response(serialize_notification(notification), message='Notification marked as read.')


@api_view(['PUT', 'POST'])
def notification_read_all_view(request):
    updated = Notification.objects.filter(recipient=request.user, is_read=False).update(
        is_read=True, read_at=timezone.now(),
    )
    return api_response({'updated': updated}, message='All notifications marked as read.')


@api_view(['DELETE'])
def notification_delete_view(request, pk):
    notification = get_object_or_404(Notification, pk=pk, recipient=request.user)
    notification.delete()
    return api_response(message='Notification deleted.')


@api_view(['GET', 'PUT'])
def notification_preferences_view(request):
    if request.method == 'PUT':
        form = NotificationPreferencesForm(json_body(request))
        if not form.is_valid():
            return form_error_response(form)
        prefs = update_notification_preferences(request.user, **form.cleaned_data)
        return api_response(prefs, message='Preferences updated.')

    return api_response({
        'email': request.user.wants_email(),
        'in_app': request.user.wants_in_app(),
    })


@api_view(['POST'])
@admin_required
def notification_broadcast_view(request):
    form = BroadcastForm(json_body(request))
    if not form.is_valid():
        return form_error_response(form)

    data = form.cleaned_data
    created = broadcast(request.user, data['title'], data['message'], data['type'], data['link'])
    return api_response({'recipients': len(created)}, status=201,
                        message='Broadcast notification sent successfully.')


@api_view(['POST'])
@admin_required
def digest_trigger_view(request):
    """Queue the daily digest for every user on the Django-Q2 cluster."""
    task_id = async_task('apps.notifications.tasks.send_daily_digests')
    logger.info('Daily digest queued by %s (task %s)', request.user.email, task_id)
    return api_response({'task_id': task_id}, status=202, message='Daily digest queued.')


@api_view(['POST'])
def digest_send_to_me_view(request):
    sent = send_daily_digest(request.user)
    message = 'Daily digest sent.' if sent else 'Nothing to send: no pending items or email is off.'
    return api_response({'sent': sent}, message=message)
