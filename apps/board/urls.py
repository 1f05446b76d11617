# apps/board/urls.py

from django.urls import path
from . import views

app_name = 'board'

urlpatterns = [
    # Board state
    path('<int:board_id>/', views.board_detail, name='detail'),

    # Drag-and-drop
    path('<int:board_id>/cards/reorder/', views.reorder_cards, name='reorder_cards'),

    # Time logs
    path('<int:board_id>/cards/<int:card_id>/time-logs/', views.card_time_logs, name='card_time_logs'),
    path(
        '<int:board_id>/cards/<int:card_id>/time-logs/<int:log_id>/',
        views.time_log_detail,
        name='time_log_detail',
    ),
]
