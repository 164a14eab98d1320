from django.contrib import admin
from .models import Deadline


@admin.register(Deadline)
class DeadlineAdmin(admin.ModelAdmin):
    list_display = ('title', 'deadline_date', 'reminder_date', 'priority', 'category', 'is_completed', 'created_by')
    list_filter = ('is_completed', 'priority', 'category')
    search_fields = ('title', 'description', 'category')
    date_hierarchy = 'deadline_date'
