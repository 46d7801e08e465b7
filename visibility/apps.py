"""
Visibility — Application Configuration
"""

from django.apps import AppConfig


class VisibilityConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'visibility'
    verbose_name = 'Content Visibility Engine'
