# apps/core/urls.py

from django.urls import path
from . import views

app_name = 'core'

urlpatterns = [
    # === MONITORING ===
    path('health/', views.health_check, name='health'),

    # === NOTIFICATIONS API ===
    path('api/notifications/', views.notification_list, name='notification_list'),
    path('api/notifications/read-all/', views.notification_mark_all_read, name='notification_mark_all_read'),
    path(
        'api/notifications/<int:notification_id>/read/',
        views.notification_mark_read,
        name='notification_mark_read',
    ),
]
