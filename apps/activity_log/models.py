"""
Activity log model for audit trails.

Records changes across the tracker:
- Task creation, updates, status changes and deletion
- Issue reports, assignments and resolution
- User management actions
- Deadline imports
"""

from django.conf import settings
from django.db import models


class ActivityLog(models.Model):
    """
    Audit log entry.

    ``entity_type``/``entity_id`` point at the affected record without a
    foreign key, so entries survive deletion of what they describe.

    Access: Admin only
    """

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='activities',
        help_text='User who performed the action (empty for scheduled jobs)'
    )
    action = models.CharField(max_length=50, db_index=True)
    entity_type = models.CharField(max_length=30, db_index=True)
    entity_id = models.PositiveBigIntegerField(null=True, blank=True)
    details = models.JSONField(default=dict, blank=True)

    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        verbose_name = 'activity'
        verbose_name_plural = 'activities'
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['entity_type', 'entity_id']),
            models.Index(fields=['user', '-created_at']),
        ]

    def __str__(self):
        return f"{self.action} {self.entity_type}#{self.entity_id} by {self.user or 'system'}"


def log_activity(user, action, entity_type, entity_id=None, details=None):
    """
    Helper function to create activity log entries.

    Args:
        user: User who performed the action, or None for jobs
        action: Short verb such as 'task_created' or 'issue_assigned'
        entity_type: 'task', 'issue', 'user', 'deadline', ...
        entity_id: Primary key of the affected record
        details: JSON-serializable extra data (old/new values etc.)

    Returns:
        Created ActivityLog instance
    """
    return ActivityLog.objects.create(
        user=user,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        details=details or {},
    )
