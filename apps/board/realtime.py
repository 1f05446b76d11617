# apps/board/realtime.py

import logging

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.utils import timezone

logger = logging.getLogger(__name__)


def board_group_name(board_id):
    return f'board_{board_id}'


def user_group_name(user_id):
    return f'user_{user_id}'


def _group_send(group, event_type, message):
    channel_layer = get_channel_layer()
    if channel_layer is None:
        logger.debug("No channel layer configured; %s not sent to %s", event_type, group)
        return

    message = dict(message, timestamp=timezone.now().isoformat())
    async_to_sync(channel_layer.group_send)(group, {'type': event_type, 'message': message})


def broadcast_board_event(board_id, event_type, message):
    """
    Sends an event to every WebSocket connected to the board

    `event_type` must match a handler method on BoardConsumer.
    """
    _group_send(board_group_name(board_id), event_type, message)


def push_user_notification(user_id, message):
    """Pushes a notification to the user's open NotificationConsumer sockets"""
    _group_send(user_group_name(user_id), 'notification_message', message)
