# apps/reports/apps.py

from django.apps import AppConfig


class ReportsConfig(AppConfig):
    """Reports app: time summaries and exports"""

    default_auto_field = 'django.db.models.BigAutoField'
    name = 'apps.reports'
    verbose_name = 'Reports - Time & Exports'
