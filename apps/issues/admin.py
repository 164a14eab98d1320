from django.contrib import admin
from .models import Issue


@admin.register(Issue)
class IssueAdmin(admin.ModelAdmin):
    list_display = ('id', 'title', 'priority', 'status', 'reported_by', 'assigned_to', 'created_at')
    list_filter = ('status', 'priority', 'created_at')
    search_fields = ('title', 'description')
    ordering = ('-created_at',)
    readonly_fields = ('assigned_at', 'resolved_at', 'created_at', 'updated_at')

    def get_queryset(self, request):
        return super().get_queryset(request).select_related('reported_by', 'assigned_to')
