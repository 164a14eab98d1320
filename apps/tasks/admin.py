"""
Admin configuration for tasks app.
"""

from django.contrib import admin
from django.utils.html import format_html
from .models import ChecklistItem, Task, TaskNote


class TaskNoteInline(admin.TabularInline):
    model = TaskNote
    extra = 0
    readonly_fields = ('user', 'content', 'created_at')
    can_delete = False

    def has_add_permission(self, request, obj=None):
        return False


class ChecklistItemInline(admin.TabularInline):
    model = ChecklistItem
    extra = 0
    fields = ('position', 'title', 'is_completed', 'completed_by', 'completed_at')
    readonly_fields = ('completed_by', 'completed_at')


@admin.register(Task)
class TaskAdmin(admin.ModelAdmin):
    """Admin for Task model."""

    list_display = (
        'id', 'title', 'assigned_to', 'created_by', 'category',
        'status_display', 'priority_display', 'due_date',
        'is_overdue_display', 'late_completion', 'created_at'
    )
    list_filter = ('status', 'priority', 'category', 'is_recurring', 'late_completion', 'due_date')
    search_fields = ('title', 'description')
    ordering = ('-created_at',)
    date_hierarchy = 'created_at'

    readonly_fields = ('created_at', 'updated_at', 'completed_at', 'late_completion')

    fieldsets = (
        (None, {
            'fields': ('title', 'description', 'category', 'tags')
        }),
        ('Assignment', {
            'fields': ('assigned_to', 'created_by', 'related_issue')
        }),
        ('Status & Priority', {
            'fields': ('status', 'priority', 'progress_percentage')
        }),
        ('Schedule', {
            'fields': ('due_date', 'start_time', 'end_time', 'estimated_hours', 'actual_hours')
        }),
        ('Recurrence', {
            'fields': ('is_recurring', 'recurrence_pattern', 'recurrence_interval', 'recurrence_end_date'),
            'classes': ('collapse',),
        }),
        ('Timestamps', {
            'fields': ('created_at', 'updated_at', 'completed_at', 'late_completion'),
            'classes': ('collapse',),
        }),
    )

    inlines = [ChecklistItemInline, TaskNoteInline]

    def get_queryset(self, request):
        return super().get_queryset(request).select_related('assigned_to', 'created_by')

    def status_display(self, obj):
        """Display status with color coding."""
        colors = {
            'not_started': '#FFA500',
            'in_progress': '#3498db',
            'completed': '#27ae60',
            'blocked': '#e74c3c',
        }
        color = colors.get(obj.status, '#000')
        return format_html(
            '<span style="color: {}; font-weight: bold;">{}</span>',
            color, obj.get_status_display()
        )
    status_display.short_description = 'Status'
    status_display.admin_order_field = 'status'

    def priority_display(self, obj):
        colors = {
            'low': '#95a5a6',
            'medium': '#3498db',
            'high': '#e67e22',
            'critical': '#e74c3c',
        }
        color = colors.get(obj.priority, '#000')
        return format_html(
            '<span style="color: {}; font-weight: bold;">{}</span>',
            color, obj.get_priority_display()
        )
    priority_display.short_description = 'Priority'
    priority_display.admin_order_field = 'priority'

    def is_overdue_display(self, obj):
        if obj.is_overdue:
            return format_html('<span style="color: red;">{}</span>', 'OVERDUE')
        return ''
    is_overdue_display.short_description = 'Overdue'
