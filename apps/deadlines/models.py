"""
Standalone deadlines.

Dates that matter to the team but are not tasks (filings, renewals,
contract ends). ``reminder_date`` drives the hourly reminder job.
"""

from django.conf import settings
from django.db import models


class Deadline(models.Model):

    class Priority(models.TextChoices):
        LOW = 'low', 'Low'
        MEDIUM = 'medium', 'Medium'
        HIGH = 'high', 'High'
        CRITICAL = 'critical', 'Critical'

    title = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    deadline_date = models.DateField(db_index=True)
    reminder_date = models.DateField(null=True, blank=True, db_index=True)
    priority = models.CharField(
        max_length=10,
        choices=Priority.choices,
        default=Priority.MEDIUM,
    )
    category = models.CharField(max_length=100, blank=True)
    is_completed = models.BooleanField(default=False)
    completed_at = models.DateTimeField(null=True, blank=True)

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='deadlines',
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = 'deadline'
        verbose_name_plural = 'deadlines'
        ordering = ['deadline_date', 'id']

    def __str__(self):
        return f"{self.title} ({self.deadline_date})"
