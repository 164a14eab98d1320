"""
Permission helpers for issues app.

- Admin: sees and manages every issue
- Employee: sees issues they reported, were suggested for, or were assigned
"""

from django.db.models import Q

from .models import Issue


def get_visible_issues(user):
    base_qs = Issue.objects.select_related('reported_by', 'suggested_assignee', 'assigned_to')
    if user.is_admin():
        return base_qs
    return base_qs.filter(
        Q(reported_by=user) | Q(suggested_assignee=user) | Q(assigned_to=user)
    )


def can_view_issue(user, issue):
    if user.is_admin():
        return True
    return user.pk in (issue.reported_by_id, issue.suggested_assignee_id, issue.assigned_to_id)


def can_manage_issue(user, issue=None):
    """Assigning, editing and deleting issues is admin-only."""
    return user.is_admin()
