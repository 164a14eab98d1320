from django.urls import path
from . import views

app_name = 'issues'

urlpatterns = [
    path('', views.issue_collection_view, name='issue_list'),
    path('<int:pk>/', views.issue_detail_view, name='issue_detail'),
    path('<int:pk>/assign/', views.issue_assign_view, name='issue_assign'),
]
