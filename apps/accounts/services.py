"""
Service layer for accounts app.

Centralized business logic for:
- Temporary password generation
- Welcome / password reset emails
- User creation, password reset, password change and deactivation
- Session invalidation
"""

import logging
import secrets
import string

from django.conf import settings
from django.contrib.auth import get_user_model, password_validation
from django.contrib.sessions.models import Session
from django.core.exceptions import ValidationError
from django.core.mail import send_mail
from django.core.validators import validate_email
from django.db import transaction
from django.utils import timezone

from apps.activity_log.models import log_activity

logger = logging.getLogger(__name__)


def generate_temp_password(length=16):
    """
    Generate a secure temporary password.

    Contains at least one uppercase letter, one lowercase letter,
    one digit and one special character.

    Returns:
        str: A secure temporary password
    """
    uppercase = string.ascii_uppercase
    lowercase = string.ascii_lowercase
    digits = string.digits
    special = '!@#$%^&*()_+-=[]{}|;:,.?'

    password = [
        secrets.choice(uppercase),
        secrets.choice(lowercase),
        secrets.choice(digits),
        secrets.choice(special),
    ]
    all_chars = uppercase + lowercase + digits + special
    password.extend(secrets.choice(all_chars) for _ in range(length - 4))
    secrets.SystemRandom().shuffle(password)
    return ''.join(password)


def _send_credentials_email(user, subject, intro, temp_password):
    login_url = f'{settings.SITE_URL}/login'
    body = (
        f'Hello {user.get_short_name()},\n\n'
        f'{intro}\n\n'
        f'Email: {user.email}\n'
        f'Temporary password: {temp_password}\n\n'
        f'Sign in at {login_url} and change your password.\n'
    )
    try:
        send_mail(subject, body, settings.DEFAULT_FROM_EMAIL, [user.email])
        return True
    except Exception as e:
        # Log the error but don't raise - the account change is already saved
        logger.error('Failed to send "%s" email to %s: %s', subject, user.email, e)
        return False


def send_welcome_email(user, temp_password):
    """
    Send welcome email to newly created user with credentials.

    Returns:
        bool: True if email sent successfully
    """
    return _send_credentials_email(
        user,
        'Welcome to Task Tracker - Your Account Details',
        'An account has been created for you.',
        temp_password,
    )


def send_password_reset_email(user, temp_password):
    return _send_credentials_email(
        user,
        'Task Tracker - Your Password Has Been Reset',
        'An administrator has reset your password.',
        temp_password,
    )


def invalidate_user_sessions(user):
    """
    Invalidate all sessions for a user.
    Called when the password is reset or the user is deactivated.

    Returns:
        int: Number of sessions invalidated
    """
    count = 0
    for session in Session.objects.filter(expire_date__gte=timezone.now()):
        if session.get_decoded().get('_auth_user_id') == str(user.pk):
            session.delete()
            count += 1
    return count


@transaction.atomic
def create_user_with_temp_password(created_by, email, first_name, last_name='',
                                   role=None, job_description='', weekly_hours=None):
    """
    Create a new user with a temporary password and email it to them.

    Args:
        created_by: Admin performing the action
        email: User's email address
        first_name / last_name: User's name
        role: 'admin' or 'employee' (default employee)

    Returns:
        tuple: (user, temp_password, email_sent)

    Raises:
        ValidationError: On a malformed or already registered email, or unknown role
    """
    User = get_user_model()

    email = (email or '').strip().lower()
    validate_email(email)
    if not (first_name or '').strip():
        raise ValidationError('First name is required.')
    if User.objects.filter(email__iexact=email).exists():
        raise ValidationError('A user with that email already exists.')

    role = role or User.Role.EMPLOYEE
    if role not in User.Role.values:
        raise ValidationError(f'Invalid role "{role}".')

    temp_password = generate_temp_password()
    user = User.objects.create_user(
        email=email,
        password=temp_password,
        first_name=first_name.strip(),
        last_name=(last_name or '').strip(),
        role=role,
        job_description=job_description or '',
        weekly_hours=weekly_hours,
        must_change_password=True,
    )
    log_activity(
        user=created_by,
        action='user_created',
        entity_type='user',
        entity_id=user.pk,
        details={'email': user.email, 'role': user.role},
    )
    logger.info('User %s created by %s', user.email, created_by.email)

    email_sent = send_welcome_email(user, temp_password)
    return user, temp_password, email_sent


def reset_user_password(user, reset_by):
    """
    Reset a user's password to a new temporary one and notify them.

    Returns:
        tuple: (temp_password, email_sent)

    Raises:
        ValidationError: When an admin targets their own account
    """
    if user.pk == reset_by.pk:
        raise ValidationError('You cannot reset your own password here.')

    temp_password = generate_temp_password()
    user.set_password(temp_password)
    user.must_change_password = True
    user.save(update_fields=['password', 'must_change_password'])

    invalidate_user_sessions(user)
    log_activity(
        user=reset_by,
        action='password_reset',
        entity_type='user',
        entity_id=user.pk,
    )
    logger.info('Password for %s reset by %s', user.email, reset_by.email)

    email_sent = send_password_reset_email(user, temp_password)
    return temp_password, email_sent


def change_password(user, current_password, new_password):
    """
    Replace the user's own password and clear ``must_change_password``.

    Raises:
        ValidationError: Wrong current password, or the new one fails
            AUTH_PASSWORD_VALIDATORS
    """
    if not user.check_password(current_password):
        raise ValidationError('Current password is incorrect.')
    if new_password == current_password:
        raise ValidationError('New password must differ from the current one.')
    password_validation.validate_password(new_password, user)

    user.set_password(new_password)
    user.must_change_password = False
    user.save(update_fields=['password', 'must_change_password'])
    log_activity(
        user=user,
        action='password_changed',
        entity_type='user',
        entity_id=user.pk,
    )
    logger.info('User %s changed their password', user.email)
    return user


def deactivate_user(user, deactivated_by):
    """
    Deactivate a user account. Their tasks and history are kept.

    Raises:
        ValidationError: When an admin targets their own account
    """
    if user.pk == deactivated_by.pk:
        raise ValidationError('You cannot deactivate your own account.')

    user.is_active = False
    user.save(update_fields=['is_active'])
    invalidate_user_sessions(user)
    log_activity(
        user=deactivated_by,
        action='user_deactivated',
        entity_type='user',
        entity_id=user.pk,
    )
    logger.info('User %s deactivated by %s', user.email, deactivated_by.email)
    return user


def serialize_user(user):
    return {
        'id': user.pk,
        'email': user.email,
        'first_name': user.first_name,
        'last_name': user.last_name,
        'full_name': user.get_full_name(),
        'role': user.role,
        'job_description': user.job_description,
        'weekly_hours': float(user.weekly_hours) if user.weekly_hours is not None else None,
        'is_active': user.is_active,
        'notification_preferences': user.notification_preferences,
        'must_change_password': user.must_change_password,
        'created_at': user.created_at,
    }


def user_summary(user):
    """Compact reference embedded in other payloads."""
    if user is None:
        return None
    return {'id': user.pk, 'full_name': user.get_full_name(), 'email': user.email}
