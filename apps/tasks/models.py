"""
Task management models.

Models:
- Task: Work item with category, status workflow, schedule and tags
- TaskNote: Chronological notes on a task
- ChecklistItem: Ordered sub-steps of a task
"""

from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.utils import timezone

from apps.reports import analytics


def normalize_tags(tags):
    """Strip tags, drop empties and duplicates, keep first-seen order."""
    seen = []
    for tag in tags or []:
        tag = str(tag).strip()
        if tag and tag not in seen:
            seen.append(tag)
    return seen


class Task(models.Model):
    """
    Main Task model.

    Categories: routine, project, one_time and issue_resolution (created
    when an admin assigns a reported issue).

    Status workflow:
    - not_started → in_progress → completed
    - Any open status can become blocked; completed tasks can be reopened
    - completed_at is stamped on completion and cleared on reopen
    """

    class Status(models.TextChoices):
        NOT_STARTED = 'not_started', 'Not Started'
        IN_PROGRESS = 'in_progress', 'In Progress'
        COMPLETED = 'completed', 'Completed'
        BLOCKED = 'blocked', 'Blocked'

    class Priority(models.TextChoices):
        LOW = 'low', 'Low'
        MEDIUM = 'medium', 'Medium'
        HIGH = 'high', 'High'
        CRITICAL = 'critical', 'Critical'

    class Category(models.TextChoices):
        ROUTINE = 'routine', 'Routine'
        PROJECT = 'project', 'Project'
        ONE_TIME = 'one_time', 'One Time'
        ISSUE_RESOLUTION = 'issue_resolution', 'Issue Resolution'

    # Core fields
    title = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    category = models.CharField(
        max_length=20,
        choices=Category.choices,
        default=Category.ONE_TIME,
        db_index=True,
    )
    status = models.CharField(
        max_length=15,
        choices=Status.choices,
        default=Status.NOT_STARTED,
        db_index=True,
    )
    priority = models.CharField(
        max_length=10,
        choices=Priority.choices,
        default=Priority.MEDIUM,
        db_index=True,
    )

    # Relationships
    assigned_to = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='assigned_tasks',
        help_text='User responsible for completing this task'
    )
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='created_tasks',
    )
    related_issue = models.ForeignKey(
        'issues.Issue',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='tasks',
    )

    # Schedule (local wall-clock values)
    due_date = models.DateField(null=True, blank=True, db_index=True)
    start_time = models.TimeField(null=True, blank=True)
    end_time = models.TimeField(
        null=True,
        blank=True,
        help_text='Deadline time on due_date; end of day when empty'
    )

    # Effort
    estimated_hours = models.DecimalField(max_digits=6, decimal_places=2, null=True, blank=True)
    actual_hours = models.DecimalField(max_digits=6, decimal_places=2, null=True, blank=True)
    progress_percentage = models.PositiveSmallIntegerField(
        default=0,
        validators=[MinValueValidator(0), MaxValueValidator(100)],
    )

    tags = models.JSONField(default=list, blank=True)

    # Recurrence
    is_recurring = models.BooleanField(default=False)
    recurrence_pattern = models.JSONField(
        null=True,
        blank=True,
        help_text='{"type": "daily|weekly|monthly", "time": "HH:MM", '
                  '"day_of_week": 0-6, "day_of_month": 1-31}'
    )
    recurrence_interval = models.PositiveSmallIntegerField(default=1)
    recurrence_end_date = models.DateField(null=True, blank=True)

    # Completion tracking
    completed_at = models.DateTimeField(null=True, blank=True)
    late_completion = models.BooleanField(
        default=False,
        help_text='Completed after its deadline had passed'
    )

    # Timestamps
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = 'task'
        verbose_name_plural = 'tasks'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status', 'assigned_to']),
            models.Index(fields=['status', 'created_by']),
            models.Index(fields=['due_date', 'status']),
        ]

    def __str__(self):
        return f"#{self.pk}: {self.title}"

    # ==========================================================================
    # Status Properties
    # ==========================================================================

    @property
    def is_completed(self):
        return self.status == self.Status.COMPLETED

    @property
    def is_overdue(self):
        """Check if task is past its deadline and not completed."""
        return analytics.is_overdue(self, timezone.now())

    def mark_completed(self, now=None):
        """
        Stamp completion fields on a transition into completed.

        late_completion records whether the deadline had already passed.
        """
        now = now or timezone.now()
        self.late_completion = analytics.is_overdue(self, now)
        self.completed_at = now
        self.progress_percentage = 100

    def mark_reopened(self):
        self.completed_at = None
        self.late_completion = False


class TaskNote(models.Model):
    """
    Task note model.

    Notes are displayed chronologically on the task detail.
    """

    task = models.ForeignKey(
        Task,
        on_delete=models.CASCADE,
        related_name='notes',
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='task_notes',
    )
    content = models.TextField()
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = 'note'
        verbose_name_plural = 'notes'
        ordering = ['created_at']

    def __str__(self):
        return f"Note by {self.user} on task #{self.task_id}"


class ChecklistItem(models.Model):
    """
    Ordered checklist entry on a task.

    completed_at/completed_by are set when the item is ticked and cleared
    when it is unticked.
    """

    task = models.ForeignKey(
        Task,
        on_delete=models.CASCADE,
        related_name='checklist_items',
    )
    title = models.CharField(max_length=255)
    position = models.PositiveIntegerField(default=0)
    is_completed = models.BooleanField(default=False)
    completed_at = models.DateTimeField(null=True, blank=True)
    completed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='completed_checklist_items',
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = 'checklist item'
        verbose_name_plural = 'checklist items'
        ordering = ['position', 'id']

    def __str__(self):
        return self.title
