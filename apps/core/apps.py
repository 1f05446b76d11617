# apps/core/apps.py

from django.apps import AppConfig


class CoreConfig(AppConfig):
    """Core app: users, boards, permissions, API envelope"""

    default_auto_field = 'django.db.models.BigAutoField'
    name = 'apps.core'
    verbose_name = 'Core'

    def ready(self):
        from . import signals  # noqa: F401
