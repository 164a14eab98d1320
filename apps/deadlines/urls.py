from django.urls import path
from . import views

app_name = 'deadlines'

urlpatterns = [
    path('', views.deadline_collection_view, name='deadline_list'),
    path('import/', views.deadline_import_view, name='deadline_import'),
    path('export/', views.deadline_export_view, name='deadline_export'),
    path('<int:pk>/', views.deadline_detail_view, name='deadline_detail'),
]
