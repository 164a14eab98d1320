"""
Views for accounts app.

Includes:
- Session authentication (login, logout, me, password change)
- User management (admin only)
"""

import logging

from django.contrib.auth import authenticate, get_user_model, login, logout, update_session_auth_hash
from django.core.exceptions import BadRequest
from django.middleware.csrf import get_token
from django.shortcuts import get_object_or_404
from django.views.decorators.csrf import ensure_csrf_cookie
from django.views.decorators.http import require_GET, require_POST

from apps.core.http import (
    admin_required, api_error, api_response, api_view, form_error_response, json_body,
)
from .forms import LoginForm, PasswordChangeForm, UserCreateForm
from .services import (
    change_password, create_user_with_temp_password, deactivate_user, reset_user_password,
    serialize_user,
)

logger = logging.getLogger(__name__)

User = get_user_model()


# =============================================================================
# Authentication Views
# =============================================================================

@require_GET
@ensure_csrf_cookie
def csrf_view(request):
    """Hand out the CSRF token a browser client sends back on writes."""
    return api_response({'csrf_token': get_token(request)})


@require_POST
def login_view(request):
    """Start a session from an email/password pair."""
    try:
        payload = json_body(request)
    except BadRequest as exc:
        return api_error('Bad request', str(exc), 400)

    form = LoginForm(payload)
    if not form.is_valid():
        return form_error_response(form)

    user = authenticate(
        request,
        username=form.cleaned_data['email'],
        password=form.cleaned_data['password'],
    )
    if user is None:
        logger.info('Failed login for %s', form.cleaned_data['email'])
        return api_error('Unauthorized', 'Invalid email or password.', 401)

    login(request, user)
    logger.info('User %s logged in', user.email)
    return api_response(serialize_user(user))


@api_view(['POST'])
def logout_view(request):
    logger.info('User %s logged out', request.user.email)
    logout(request)
    return api_response(message='Logged out.')


@api_view(['GET'])
def me_view(request):
    return api_response(serialize_user(request.user))


@api_view(['POST'])
def change_password_view(request):
    """Change the signed-in user's password and keep the session alive."""
    form = PasswordChangeForm(json_body(request))
    if not form.is_valid():
        return form_error_response(form)

    change_password(request.user, **form.cleaned_data)
    update_session_auth_hash(request, request.user)
    return api_response(serialize_user(request.user), message='Password changed.')


# =============================================================================
# User Management Views (Admin only)
# =============================================================================

@api_view(['GET', 'POST'])
@admin_required
def user_collection_view(request):
    """GET lists every user, POST creates one with a temporary password."""
    if request.method == 'GET':
        users = User.objects.order_by('first_name', 'last_name', 'email')
        if request.GET.get('active') in ('true', '1'):
            users = users.filter(is_active=True)
        return api_response([serialize_user(u) for u in users])

    form = UserCreateForm(json_body(request))
    if not form.is_valid():
        return form_error_response(form)

    user, _, email_sent = create_user_with_temp_password(
        created_by=request.user, **form.cleaned_data,
    )
    return api_response(
        serialize_user(user),
        status=201,
        message='User created.',
        email_sent=email_sent,
    )


@api_view(['POST'])
@admin_required
def user_reset_password_view(request, pk):
    user = get_object_or_404(User, pk=pk)
    _, email_sent = reset_user_password(user, reset_by=request.user)
    return api_response(message='Password reset.', email_sent=email_sent)


@api_view(['POST', 'DELETE'])
@admin_required
def user_deactivate_view(request, pk):
    user = get_object_or_404(User, pk=pk)
    deactivate_user(user, deactivated_by=request.user)
    return api_response(serialize_user(user), message='User deactivated.')
