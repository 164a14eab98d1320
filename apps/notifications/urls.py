from django.urls import path
from . import views

app_name = 'notifications'

urlpatterns = [
    path('', views.notification_collection_view, name='notification_list'),
    path('read-all/', views.notification_read_all_view, name='notification_read_all'),
    path('preferences/', views.notification_preferences_view, name='notification_preferences'),
    path('broadcast/', views.notification_broadcast_view, name='notification_broadcast'),
    path('digest/trigger/', views.digest_trigger_view, name='digest_trigger'),
    path('digest/send-to-me/', views.digest_send_to_me_view, name='digest_send_to_me'),
    path('<int:pk>/', views.notification_delete_view, name='notification_delete'),
    path('<int:pk>/read/', views.notification_read_view, name='notification_read'),
]
