from django import forms

from apps.tasks.forms import PartialFormMixin
from .models import Todo


class TodoForm(PartialFormMixin, forms.Form):
    title = forms.CharField(max_length=255)
    description = forms.CharField(required=False)
    due_date = forms.DateField(required=False)
    priority = forms.ChoiceField(choices=Todo.Priority.choices, required=False)
    is_completed = forms.BooleanField(required=False)

    def clean_title(self):
        title = self.cleaned_data['title'].strip()
        if not title:
            raise forms.ValidationError('Title is required.')
        return title
