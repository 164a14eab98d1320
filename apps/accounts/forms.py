"""
Forms for accounts app.

Used to validate decoded JSON payloads before they reach the services.
"""

from django import forms

from .models import User


class LoginForm(forms.Form):
    email = forms.EmailField()
    password = forms.CharField(strip=False)

    def clean_email(self):
        return self.cleaned_data['email'].lower().strip()


class UserCreateForm(forms.Form):
    """Admin form for creating a user; the password is generated."""

    email = forms.EmailField()
    first_name = forms.CharField(max_length=150)
    last_name = forms.CharField(max_length=150, required=False)
    role = forms.ChoiceField(choices=User.Role.choices, required=False)
    job_description = forms.CharField(required=False)
    weekly_hours = forms.DecimalField(
        max_digits=5, decimal_places=2, min_value=0, max_value=168, required=False,
    )


class PasswordChangeForm(forms.Form):
    current_password = forms.CharField(strip=False)
    new_password = forms.CharField(strip=False)


class NotificationPreferencesForm(forms.Form):
    email = forms.BooleanField(required=False)
    in_app = forms.BooleanField(required=False)

    def __init__(self, data, *args, **kwargs):
        super().__init__(data, *args, **kwargs)
        # Switches absent from the payload keep their stored value
        for name in list(self.fields):
            if name not in data:
                del self.fields[name]
