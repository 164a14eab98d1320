"""
Forms for issues app.
"""

from django import forms

from apps.accounts.models import User
from apps.tasks.forms import PartialFormMixin
from .models import Issue


class IssueReportForm(forms.Form):
    title = forms.CharField(max_length=255)
    description = forms.CharField()
    priority = forms.ChoiceField(choices=Issue.Priority.choices)
    suggested_assignee_id = forms.ModelChoiceField(queryset=User.objects.filter(is_active=True))


class IssueEditForm(PartialFormMixin, forms.Form):
    """Admin edits; only submitted fields are validated."""

    title = forms.CharField(max_length=255)
    description = forms.CharField()
    priority = forms.ChoiceField(choices=Issue.Priority.choices)
    status = forms.ChoiceField(choices=Issue.Status.choices)
    resolution_notes = forms.CharField(required=False)


class IssueAssignForm(forms.Form):
    """
    Assignment payload. ``edited_issue`` may carry title/description/priority
    overrides applied before the resolution task is created.
    """

    assignee_id = forms.ModelChoiceField(queryset=User.objects.filter(is_active=True))
    edited_issue = forms.JSONField(required=False)

    def clean_edited_issue(self):
        edits = self.cleaned_data.get('edited_issue') or {}
        if not isinstance(edits, dict):
            raise forms.ValidationError('edited_issue must be an object.')

        form = IssueEditForm(
            {k: v for k, v in edits.items() if k in ('title', 'description', 'priority') and v},
            partial=True,
        )
        if not form.is_valid():
            raise forms.ValidationError(
                [str(e) for errors in form.errors.values() for e in errors]
            )
        return form.cleaned_data
