# apps/board/consumers.py

import json
import logging

from channels.db import database_sync_to_async
from channels.generic.websocket import AsyncWebsocketConsumer
from django.utils import timezone

from apps.core.models import Board, Notification
from apps.core.permissions import FalloPermissions

from .realtime import board_group_name, user_group_name

logger = logging.getLogger(__name__)


class BoardConsumer(AsyncWebsocketConsumer):
    """
    Realtime updates of a kanban board

    Clients receive card_moved after every committed reorder, plus
    presence events. Members only.
    """

    async def connect(self):
        self.board_id = int(self.scope['url_route']['kwargs']['board_id'])
        self.user = self.scope['user']

        if not self.user.is_authenticated:
            logger.warning("WebSocket rejected: anonymous user on board %s", self.board_id)
            await self.close()
            return

        if not await self.check_board_access():
            logger.warning("WebSocket rejected: %s has no access to board %s", self.user.username, self.board_id)
            await self.close()
            return

        self.board_group_name = board_group_name(self.board_id)
        await self.channel_layer.group_add(self.board_group_name, self.channel_name)
        await self.accept()

        await self.channel_layer.group_send(
            self.board_group_name,
            {
                'type': 'user_joined',
                'message': {
                    'user': self.user.display_name,
                    'user_id': self.user.id,
                    'timestamp': self.get_timestamp(),
                },
            },
        )
        logger.info("WebSocket connected: %s on board %s", self.user.username, self.board_id)

    async def disconnect(self, close_code):
        if hasattr(self, 'board_group_name'):
            await self.channel_layer.group_send(
                self.board_group_name,
                {
                    'type': 'user_left',
                    'message': {
                        'user': self.user.display_name,
                        'user_id': self.user.id,
                        'timestamp': self.get_timestamp(),
                    },
                },
            )
            await self.channel_layer.group_discard(self.board_group_name, self.channel_name)

    async def receive(self, text_data):
        try:
            data = json.loads(text_data)
        except json.JSONDecodeError:
            logger.warning("Invalid JSON over WebSocket from %s", self.user.username)
            return

        message_type = data.get('type')

        if message_type == 'ping':
            await self.send(text_data=json.dumps({
                'type': 'pong',
                'timestamp': self.get_timestamp(),
            }))

        elif message_type == 'sync_board':
            await self.send(text_data=json.dumps({
                'type': 'board_sync',
                'board_data': await self.get_board_state(),
                'timestamp': self.get_timestamp(),
            }))

    # === Group event handlers ===

    async def card_moved(self, event):
        await self.send(text_data=json.dumps({
            'type': 'card_moved',
            'message': event['message'],
        }))

    async def user_joined(self, event):
        message = event['message']
        if message['user_id'] != self.user.id:
            await self.send(text_data=json.dumps({'type': 'user_joined', 'message': message}))

    async def user_left(self, event):
        message = event['message']
        if message['user_id'] != self.user.id:
            await self.send(text_data=json.dumps({'type': 'user_left', 'message': message}))

    # === Helpers ===

    @database_sync_to_async
    def check_board_access(self):
        board = Board.objects.filter(id=self.board_id).first()
        return board is not None and FalloPermissions.is_board_member(self.user, board)

    @database_sync_to_async
    def get_board_state(self):
        """Card ids per list, in position order"""
        board = Board.objects.filter(id=self.board_id).first()
        if board is None:
            return {}

        lists = []
        for board_list in board.lists.order_by('position', 'id'):
            card_ids = list(
                board_list.cards.filter(archived_at__isnull=True)
                .order_by('position', 'id')
                .values_list('id', flat=True)
            )
            lists.append({'id': board_list.id, 'name': board_list.name, 'card_ids': card_ids})

        return {'board_id': board.id, 'name': board.name, 'lists': lists}

    def get_timestamp(self):
        return timezone.now().isoformat()


class NotificationConsumer(AsyncWebsocketConsumer):
    """Personal notification stream of the connected user"""

    async def connect(self):
        self.user = self.scope['user']

        if not self.user.is_authenticated:
            await self.close()
            return

        self.user_group_name = user_group_name(self.user.id)
        await self.channel_layer.group_add(self.user_group_name, self.channel_name)
        await self.accept()

    async def disconnect(self, close_code):
        if hasattr(self, 'user_group_name'):
            await self.channel_layer.group_discard(self.user_group_name, self.channel_name)

    async def receive(self, text_data):
        try:
            data = json.loads(text_data)
        except json.JSONDecodeError:
            logger.warning("Invalid JSON on notification socket from %s", self.user.username)
            return

        if data.get('type') == 'mark_read':
            await self.mark_notification_read(data.get('notification_id'))

    async def notification_message(self, event):
        await self.send(text_data=json.dumps({
            'type': 'notification',
            'message': event['message'],
        }))

    @database_sync_to_async
    def mark_notification_read(self, notification_id):
        Notification.objects.filter(id=notification_id, user=self.user).update(is_read=True)
