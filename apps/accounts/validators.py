"""
Password validators for task_tracker.

Length is checked by Django's MinimumLengthValidator; this module adds
the character-class rule that generated temporary passwords also follow.
"""

import re

from django.core.exceptions import ValidationError


class ComplexityValidator:
    """
    Require at least one uppercase letter, one lowercase letter, one digit
    and one character that is neither a letter nor a digit.
    """

    requirements = [
        (r'[A-Z]', 'Password must contain at least one uppercase letter.'),
        (r'[a-z]', 'Password must contain at least one lowercase letter.'),
        (r'\d', 'Password must contain at least one digit.'),
        (r'[^A-Za-z0-9]', 'Password must contain at least one special character.'),
    ]

    def validate(self, password, user=None):
        errors = [
            ValidationError(message, code='password_complexity')
            for pattern, message in self.requirements
            if not re.search(pattern, password)
        ]
        if errors:
            raise ValidationError(errors)

    def get_help_text(self):
        return (
            'Your password must contain at least one uppercase letter, '
            'one lowercase letter, one digit, and one special character.'
        )
