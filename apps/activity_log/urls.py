from django.urls import path
from . import views

app_name = 'activity_log'

urlpatterns = [
    path('', views.activity_list_view, name='activity_list'),
]
