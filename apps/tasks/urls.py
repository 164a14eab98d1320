"""
URL configuration for tasks app.

Includes:
- Task list / create and completed list
- Task detail, update, delete
- Status changes
- Notes and checklist items
"""

from django.urls import path
from . import views

app_name = 'tasks'

urlpatterns = [
    path('', views.task_collection_view, name='task_list'),
    path('completed/', views.task_completed_view, name='task_completed'),

    path('<int:pk>/', views.task_detail_view, name='task_detail'),
    path('<int:pk>/status/', views.task_status_view, name='task_status'),

    path('<int:pk>/notes/', views.task_notes_view, name='task_notes'),
    path('<int:pk>/checklist/', views.task_checklist_view, name='task_checklist'),
    path('<int:pk>/checklist/<int:item_pk>/', views.checklist_item_view, name='checklist_item'),
]
