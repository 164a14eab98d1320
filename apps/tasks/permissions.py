"""
Permission helpers for tasks app.

Role-based access control for task operations:
- Admin: Full access to all tasks, assigns to anyone, deletes
- Employee: Sees tasks assigned to or created by them, assigns only to self
"""

from django.db.models import Q

from .models import Task


# =============================================================================
# View Permissions
# =============================================================================

def get_visible_tasks(user):
    """
    Get queryset of tasks visible to this user based on their role.
    """
    base_qs = Task.objects.select_related('assigned_to', 'created_by')

    if user.is_admin():
        return base_qs

    return base_qs.filter(Q(assigned_to=user) | Q(created_by=user))


def can_view_task(user, task):
    """
    Check if user can view a specific task.

    Rules:
    - Admin: Can view all tasks
    - Employee: Can view tasks assigned to them or created by them
    """
    if not user.is_authenticated:
        return False
    if user.is_admin():
        return True
    return task.assigned_to_id == user.pk or task.created_by_id == user.pk


# =============================================================================
# Edit Permissions
# =============================================================================

def can_edit_task(user, task):
    """Admin, assignee or creator may edit task fields."""
    return can_view_task(user, task)


def can_change_task_status(user, task):
    """Only the admin or the assignee moves a task through its workflow."""
    if user.is_admin():
        return True
    return task.assigned_to_id == user.pk


def can_delete_task(user, task):
    return user.is_admin()


def can_assign_to(user, assignee):
    """
    Check if user can assign a task to ``assignee``.

    Non-admins may only leave a task unassigned or assign it to themselves.
    """
    if assignee is None or user.is_admin():
        return True
    return assignee.pk == user.pk
