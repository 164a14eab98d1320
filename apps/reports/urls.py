"""
URL configuration for reports app (mounted at /api/analytics/).
"""

from django.urls import path
from . import views

app_name = 'reports'

urlpatterns = [
    path('dashboard/', views.dashboard_view, name='dashboard'),
    path('task-completion-trend/', views.completion_trend_view, name='task_completion_trend'),
    path('user-workload/', views.user_workload_view, name='user_workload'),
    path('issue-resolution-metrics/', views.issue_metrics_view, name='issue_resolution_metrics'),
    path('employees-summary/', views.employees_summary_view, name='employees_summary'),
    path('recommendations/', views.recommendations_view, name='recommendations'),
    path('late-tasks/', views.late_tasks_view, name='late_tasks'),
    path('tag-distribution/', views.tag_distribution_view, name='tag_distribution'),
    path('overview/', views.overview_view, name='overview'),
    path('export/tasks.csv', views.export_tasks_view, name='export_tasks'),
]
