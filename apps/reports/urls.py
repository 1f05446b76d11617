# apps/reports/urls.py

from django.urls import path
from . import views

app_name = 'reports'

urlpatterns = [
    # Time summary (JSON)
    path('time/', views.time_report, name='time'),

    # XLSX / CSV export of closed time logs
    path('time/export/', views.time_report_export, name='time_export'),
]
