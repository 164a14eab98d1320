"""
Settings package for task_tracker project.

By default, imports development settings.
For production, set DJANGO_SETTINGS_MODULE=config.settings.production
For tests, pytest-django uses config.settings.test
"""

# Default to development settings when importing from config.settings
from .development import *
