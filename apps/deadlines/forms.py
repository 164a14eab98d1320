from django import forms

from apps.tasks.forms import PartialFormMixin
from .models import Deadline


class DeadlineForm(PartialFormMixin, forms.Form):
    """
    Create/update payload. Also used to validate each CSV import row,
    where blank priority falls back to medium.
    """

    title = forms.CharField(max_length=255)
    description = forms.CharField(required=False)
    deadline_date = forms.DateField()
    reminder_date = forms.DateField(required=False)
    priority = forms.ChoiceField(choices=Deadline.Priority.choices, required=False)
    category = forms.CharField(max_length=100, required=False)
    is_completed = forms.BooleanField(required=False)

    def clean_title(self):
        title = self.cleaned_data['title'].strip()
        if not title:
            raise forms.ValidationError('Title is required.')
        return title

    def clean_priority(self):
        return self.cleaned_data.get('priority') or Deadline.Priority.MEDIUM

    def clean(self):
        cleaned = super().clean()
        deadline_date = cleaned.get('deadline_date')
        reminder_date = cleaned.get('reminder_date')
        if deadline_date and reminder_date and reminder_date > deadline_date:
            self.add_error('reminder_date', 'Reminder date cannot be after the deadline.')
        return cleaned
