"""Shared builders for the test modules."""

from itertools import count

from apps.accounts.models import User
from apps.tasks.models import Task

_seq = count(1)


def make_user(role=User.Role.EMPLOYEE, email=None, password='s3cret-Passw0rd', **extra):
    n = next(_seq)
    extra.setdefault('first_name', f'User{n}')
    extra.setdefault('last_name', 'Test')
    return User.objects.create_user(
        email=email or f'user{n}@example.com',
        password=password,
        role=role,
        **extra,
    )


def make_admin(**extra):
    return make_user(role=User.Role.ADMIN, **extra)


def make_task(created_by, **fields):
    fields.setdefault('title', 'A task')
    fields.setdefault('category', Task.Category.ONE_TIME)
    fields.setdefault('priority', Task.Priority.MEDIUM)
    return Task.objects.create(created_by=created_by, **fields)
