"""
URL configuration for task_tracker project.

The JSON API lives under /api/; the Django admin under /admin/.
"""

from django.contrib import admin
from django.urls import path, include
from django.conf import settings

urlpatterns = [
    path('admin/', admin.site.urls),

    # API
    path('api/', include('apps.accounts.urls', namespace='accounts')),
    path('api/tasks/', include('apps.tasks.urls', namespace='tasks')),
    path('api/issues/', include('apps.issues.urls', namespace='issues')),
    path('api/todos/', include('apps.todos.urls', namespace='todos')),
    path('api/deadlines/', include('apps.deadlines.urls', namespace='deadlines')),
    path('api/notifications/', include('apps.notifications.urls', namespace='notifications')),
    path('api/analytics/', include('apps.reports.urls', namespace='reports')),
    path('api/activity/', include('apps.activity_log.urls', namespace='activity_log')),
]

if settings.DEBUG and 'debug_toolbar' in settings.INSTALLED_APPS:
    import debug_toolbar
    urlpatterns = [
        path('__debug__/', include(debug_toolbar.urls)),
    ] + urlpatterns

# Admin site customization
admin.site.site_header = 'Task Tracker Administration'
admin.site.site_title = 'Task Tracker Admin'
admin.site.index_title = 'Welcome to Task Tracker Admin'
