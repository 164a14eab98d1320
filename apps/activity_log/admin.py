"""
Admin configuration for activity_log app.
"""

from django.contrib import admin
from .models import ActivityLog


@admin.register(ActivityLog)
class ActivityLogAdmin(admin.ModelAdmin):
    """Read-only admin for ActivityLog."""

    list_display = ('action', 'entity_type', 'entity_id', 'user', 'created_at')
    list_filter = ('action', 'entity_type', 'created_at')
    search_fields = ('action', 'user__email', 'user__first_name', 'user__last_name')
    ordering = ('-created_at',)
    date_hierarchy = 'created_at'

    readonly_fields = ('user', 'action', 'entity_type', 'entity_id', 'details', 'created_at')

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False

    def get_queryset(self, request):
        return super().get_queryset(request).select_related('user')
