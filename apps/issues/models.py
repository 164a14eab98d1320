"""
Issue model.

Employees report problems; an admin triages each one and turns it into
an ``issue_resolution`` task for someone.

Status workflow:
- pending_assignment → assigned (by admin, creating the task)
- assigned → in_progress → resolved → closed
"""

from django.conf import settings
from django.db import models


class Issue(models.Model):

    class Status(models.TextChoices):
        PENDING_ASSIGNMENT = 'pending_assignment', 'Pending Assignment'
        ASSIGNED = 'assigned', 'Assigned'
        IN_PROGRESS = 'in_progress', 'In Progress'
        RESOLVED = 'resolved', 'Resolved'
        CLOSED = 'closed', 'Closed'

    class Priority(models.TextChoices):
        LOW = 'low', 'Low'
        MEDIUM = 'medium', 'Medium'
        HIGH = 'high', 'High'
        CRITICAL = 'critical', 'Critical'

    title = models.CharField(max_length=255)
    description = models.TextField()
    priority = models.CharField(
        max_length=10,
        choices=Priority.choices,
        default=Priority.MEDIUM,
        db_index=True,
    )
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.PENDING_ASSIGNMENT,
        db_index=True,
    )

    reported_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='reported_issues',
    )
    suggested_assignee = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='suggested_issues',
        help_text='Who the reporter thinks should handle it'
    )
    assigned_to = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='assigned_issues',
    )
    assigned_at = models.DateTimeField(null=True, blank=True)
    resolved_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text='First time the issue reached resolved'
    )
    resolution_notes = models.TextField(blank=True)

    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = 'issue'
        verbose_name_plural = 'issues'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status', 'priority']),
        ]

    def __str__(self):
        return f"Issue #{self.pk}: {self.title}"

    @property
    def is_pending(self):
        return self.status == self.Status.PENDING_ASSIGNMENT
