"""
Personal to-do items.

Private checklists for a single user; they never show up in task
analytics.
"""

from django.conf import settings
from django.db import models
from django.utils import timezone


class Todo(models.Model):

    class Priority(models.TextChoices):
        LOW = 'low', 'Low'
        MEDIUM = 'medium', 'Medium'
        HIGH = 'high', 'High'

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='todos',
    )
    title = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    due_date = models.DateField(null=True, blank=True)
    priority = models.CharField(
        max_length=10,
        choices=Priority.choices,
        default=Priority.MEDIUM,
    )
    is_completed = models.BooleanField(default=False, db_index=True)
    completed_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = 'to-do'
        verbose_name_plural = 'to-dos'
        ordering = ['-created_at', '-id']

    def __str__(self):
        return self.title

    def set_completed(self, done):
        self.is_completed = done
        self.completed_at = timezone.now() if done else None
