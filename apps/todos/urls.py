from django.urls import path
from . import views

app_name = 'todos'

urlpatterns = [
    path('', views.todo_collection_view, name='todo_list'),
    path('<int:pk>/', views.todo_detail_view, name='todo_detail'),
]
