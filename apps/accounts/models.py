"""
Custom User model for task_tracker.

CRITICAL: AUTH_USER_MODEL points here. Changing the User model after
the first migration is very complex.
"""

from django.contrib.auth.models import AbstractUser, BaseUserManager
from django.db import models


def default_notification_preferences():
    return {'email': True, 'in_app': True}


class UserManager(BaseUserManager):
    """
    Custom user manager where email is the unique identifier
    for authentication instead of username.
    """

    def create_user(self, email, password=None, **extra_fields):
        """Create and save a regular user with the given email and password."""
        if not email:
            raise ValueError('The Email field must be set')

        email = self.normalize_email(email).lower()
        user = self.model(email=email, **extra_fields)
        user.set_password(password)
        user.save(using=self._db)
        return user

    def create_superuser(self, email, password=None, **extra_fields):
        """Create and save a SuperUser with the given email and password."""
        extra_fields.setdefault('is_staff', True)
        extra_fields.setdefault('is_superuser', True)
        extra_fields.setdefault('is_active', True)
        extra_fields.setdefault('role', User.Role.ADMIN)

        if extra_fields.get('is_staff') is not True:
            raise ValueError('Superuser must have is_staff=True.')
        if extra_fields.get('is_superuser') is not True:
            raise ValueError('Superuser must have is_superuser=True.')

        return self.create_user(email, password, **extra_fields)


class User(AbstractUser):
    """
    Custom User model with email authentication and role-based access.

    Roles:
    - Admin: sees and manages everything, assigns issues, reads analytics
    - Employee: works on own tasks, reports issues, keeps personal to-dos
    """

    class Role(models.TextChoices):
        ADMIN = 'admin', 'Admin'
        EMPLOYEE = 'employee', 'Employee'

    username = None
    email = models.EmailField(
        'email address',
        unique=True,
        error_messages={
            'unique': 'A user with that email already exists.',
        },
    )

    role = models.CharField(
        max_length=20,
        choices=Role.choices,
        default=Role.EMPLOYEE,
        db_index=True,
    )
    job_description = models.TextField(blank=True)
    weekly_hours = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        null=True,
        blank=True,
        help_text='Contracted working hours per week.',
    )
    notification_preferences = models.JSONField(
        default=default_notification_preferences,
        blank=True,
        help_text='Channel switches, e.g. {"email": true, "in_app": true}.',
    )
    must_change_password = models.BooleanField(
        default=False,
        help_text='Set when an admin issues a temporary password.',
    )

    # Timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = UserManager()

    USERNAME_FIELD = 'email'
    REQUIRED_FIELDS = ['first_name', 'last_name']

    class Meta:
        verbose_name = 'user'
        verbose_name_plural = 'users'
        ordering = ['first_name', 'last_name']
        indexes = [
            models.Index(fields=['role']),
            models.Index(fields=['is_active']),
        ]

    def __str__(self):
        return f"{self.get_full_name()} ({self.email})"

    def get_full_name(self):
        """Return the first_name plus the last_name, with a space in between."""
        full_name = f"{self.first_name} {self.last_name}".strip()
        return full_name or self.email

    def get_short_name(self):
        return self.first_name or self.email.split('@')[0]

    # ==========================================================================
    # Role Methods
    # ==========================================================================

    def is_admin(self):
        """Check if user is an Admin."""
        return self.role == self.Role.ADMIN

    def is_employee(self):
        return self.role == self.Role.EMPLOYEE

    def wants_email(self):
        """Email notifications are on unless explicitly switched off."""
        prefs = self.notification_preferences or {}
        return prefs.get('email', True) is not False

    def wants_in_app(self):
        prefs = self.notification_preferences or {}
        return prefs.get('in_app', True) is not False
