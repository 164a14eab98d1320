"""
URL configuration for accounts app.

- /api/auth/: session login, logout and the current user
- /api/users/: user management (admin only)
"""

from django.urls import path
from . import views

app_name = 'accounts'

urlpatterns = [
    # Authentication
    path('auth/csrf/', views.csrf_view, name='csrf'),
    path('auth/login/', views.login_view, name='login'),
    path('auth/logout/', views.logout_view, name='logout'),
    path('auth/me/', views.me_view, name='me'),
    path('auth/change-password/', views.change_password_view, name='change_password'),

    # User Management (Admin only)
    path('users/', views.user_collection_view, name='user_list'),
    path('users/<int:pk>/reset-password/', views.user_reset_password_view, name='user_reset_password'),
    path('users/<int:pk>/deactivate/', views.user_deactivate_view, name='user_deactivate'),
]
