"""
Forms for tasks app.

Validate decoded JSON payloads before they reach the services:
- TaskForm: create (all fields) or partial update (only submitted fields)
- TaskStatusForm: status change with optional progress
- NoteForm / ChecklistItemForm
"""

from datetime import datetime

from django import forms
from django.core.exceptions import ValidationError

from apps.accounts.models import User
from .models import Task, normalize_tags

RECURRENCE_TYPES = ('daily', 'weekly', 'monthly')


class PartialFormMixin:
    """
    With ``partial=True`` only the fields present in the payload are
    validated, so PUT bodies may carry a subset of fields.
    """

    def __init__(self, data, *args, partial=False, **kwargs):
        super().__init__(data, *args, **kwargs)
        self.partial = partial
        if partial:
            for name in list(self.fields):
                if name not in data:
                    del self.fields[name]


class TagListField(forms.Field):
    """Accepts a JSON list of strings or a comma-separated string."""

    def to_python(self, value):
        if value in self.empty_values:
            return []
        if isinstance(value, str):
            value = value.split(',')
        if not isinstance(value, (list, tuple)) or not all(isinstance(t, str) for t in value):
            raise ValidationError('Tags must be a list of strings.')
        return normalize_tags(value)


class RecurrencePatternField(forms.Field):
    """
    {"type": "daily|weekly|monthly", "time": "HH:MM",
     "day_of_week": 0-6, "day_of_month": 1-31}
    """

    def to_python(self, value):
        if value in self.empty_values:
            return None
        if not isinstance(value, dict):
            raise ValidationError('Recurrence pattern must be an object.')

        kind = value.get('type')
        if kind not in RECURRENCE_TYPES:
            raise ValidationError(
                f'Recurrence type must be one of: {", ".join(RECURRENCE_TYPES)}.'
            )
        pattern = {'type': kind}

        if value.get('time'):
            try:
                datetime.strptime(value['time'], '%H:%M')
            except (TypeError, ValueError):
                raise ValidationError('Recurrence time must be HH:MM.')
            pattern['time'] = value['time']

        if kind == 'weekly' and value.get('day_of_week') is not None:
            pattern['day_of_week'] = self._int_in_range(value['day_of_week'], 0, 6, 'day_of_week')
        if kind == 'monthly' and value.get('day_of_month') is not None:
            pattern['day_of_month'] = self._int_in_range(value['day_of_month'], 1, 31, 'day_of_month')
        return pattern

    @staticmethod
    def _int_in_range(value, low, high, label):
        if isinstance(value, bool) or not isinstance(value, int) or not low <= value <= high:
            raise ValidationError(f'{label} must be an integer between {low} and {high}.')
        return value


class TaskForm(PartialFormMixin, forms.Form):
    """
    Form for creating and editing tasks.

    Status and progress are not accepted on creation: new tasks always
    start as not_started at 0%.
    """

    CREATE_EXCLUDED = ('status', 'progress_percentage', 'actual_hours')

    title = forms.CharField(max_length=255)
    description = forms.CharField(required=False)
    category = forms.ChoiceField(choices=Task.Category.choices)
    priority = forms.ChoiceField(choices=Task.Priority.choices)
    status = forms.ChoiceField(choices=Task.Status.choices, required=False)
    assigned_to = forms.ModelChoiceField(queryset=User.objects.filter(is_active=True), required=False)
    due_date = forms.DateField(required=False)
    start_time = forms.TimeField(required=False)
    end_time = forms.TimeField(required=False)
    estimated_hours = forms.DecimalField(max_digits=6, decimal_places=2, min_value=0, required=False)
    actual_hours = forms.DecimalField(max_digits=6, decimal_places=2, min_value=0, required=False)
    progress_percentage = forms.IntegerField(min_value=0, max_value=100, required=False)
    tags = TagListField(required=False)
    is_recurring = forms.BooleanField(required=False)
    recurrence_pattern = RecurrencePatternField(required=False)
    recurrence_interval = forms.IntegerField(min_value=1, max_value=365, required=False)
    recurrence_end_date = forms.DateField(required=False)

    def __init__(self, data, *args, partial=False, **kwargs):
        super().__init__(data, *args, partial=partial, **kwargs)
        if not partial:
            for name in self.CREATE_EXCLUDED:
                del self.fields[name]

    def clean_title(self):
        title = self.cleaned_data['title'].strip()
        if not title:
            raise ValidationError('Task title cannot be empty.')
        return title

    def clean(self):
        cleaned_data = super().clean()

        start, end = cleaned_data.get('start_time'), cleaned_data.get('end_time')
        if start and end and end < start:
            self.add_error('end_time', 'End time cannot be before start time.')

        due, until = cleaned_data.get('due_date'), cleaned_data.get('recurrence_end_date')
        if due and until and until < due:
            self.add_error('recurrence_end_date', 'Recurrence cannot end before the due date.')

        if (cleaned_data.get('is_recurring') and 'recurrence_pattern' in self.fields
                and not cleaned_data.get('recurrence_pattern')
                and 'recurrence_pattern' not in self.errors):
            self.add_error('recurrence_pattern', 'Recurring tasks need a recurrence pattern.')

        return cleaned_data


class TaskStatusForm(forms.Form):
    status = forms.ChoiceField(choices=Task.Status.choices)
    progress_percentage = forms.IntegerField(required=False)


class NoteForm(forms.Form):
    content = forms.CharField()

    def clean_content(self):
        content = self.cleaned_data['content'].strip()
        if not content:
            raise ValidationError('Note cannot be empty.')
        return content


class ChecklistItemForm(PartialFormMixin, forms.Form):
    title = forms.CharField(max_length=255)
    position = forms.IntegerField(min_value=0, required=False)
    is_completed = forms.BooleanField(required=False)
