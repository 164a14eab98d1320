from django import forms

from apps.accounts.models import User
from .models import Notification


class BroadcastForm(forms.Form):
    title = forms.CharField(max_length=255)
    message = forms.CharField(required=False)
    type = forms.ChoiceField(choices=Notification.Type.choices, required=False)
    link = forms.CharField(max_length=255, required=False)

    def clean_type(self):
        return self.cleaned_data.get('type') or Notification.Type.BROADCAST


class NotificationCreateForm(BroadcastForm):
    """Admin notification for a single user."""

    user_id = forms.ModelChoiceField(queryset=User.objects.filter(is_active=True))

    def clean_type(self):
        return self.cleaned_data.get('type') or Notification.Type.INFO
