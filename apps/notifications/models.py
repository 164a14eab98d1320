"""
In-app notification model.

Every notification belongs to exactly one recipient; broadcasts are
fanned out into one row per active user so read state is per user.
"""

from django.conf import settings
from django.db import models


class Notification(models.Model):

    class Type(models.TextChoices):
        INFO = 'info', 'Info'
        TASK_ASSIGNED = 'task_assigned', 'Task Assigned'
        TASK_OVERDUE = 'task_overdue', 'Task Overdue'
        ISSUE_REPORTED = 'issue_reported', 'Issue Reported'
        ISSUE_ASSIGNED = 'issue_assigned', 'Issue Assigned'
        DEADLINE_REMINDER = 'deadline_reminder', 'Deadline Reminder'
        BROADCAST = 'broadcast', 'Broadcast'

    recipient = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='notifications',
    )
    type = models.CharField(
        max_length=20,
        choices=Type.choices,
        default=Type.INFO,
        db_index=True,
    )
    title = models.CharField(max_length=255)
    message = models.TextField(blank=True)
    link = models.CharField(max_length=255, blank=True)
    is_read = models.BooleanField(default=False, db_index=True)
    read_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        verbose_name = 'notification'
        verbose_name_plural = 'notifications'
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['recipient', 'is_read']),
        ]

    def __str__(self):
        return f"{self.title} → {self.recipient}"
