"""Tests for the WebSocket consumers."""

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from channels.routing import URLRouter
from channels.testing import WebsocketCommunicator
from django.contrib.auth.models import AnonymousUser

from apps.board.realtime import board_group_name, user_group_name
from apps.board.routing import websocket_urlpatterns
from apps.core.models import User

application = URLRouter(websocket_urlpatterns)


def _communicator(path, user):
    communicator = WebsocketCommunicator(application, path)
    communicator.scope['user'] = user
    return communicator


def test_board_socket_rejects_anonymous_users():
    async def scenario():
        communicator = _communicator('/ws/board/1/', AnonymousUser())
        connected, _ = await communicator.connect()
        return connected

    assert async_to_sync(scenario)() is False


def test_notification_socket_rejects_anonymous_users():
    async def scenario():
        communicator = _communicator('/ws/notifications/', AnonymousUser())
        connected, _ = await communicator.connect()
        return connected

    assert async_to_sync(scenario)() is False


def test_notification_socket_receives_pushed_notifications():
    user = User(id=4242, username='po')

    async def scenario():
        communicator = _communicator('/ws/notifications/', user)
        connected, _ = await communicator.connect()
        assert connected

        await get_channel_layer().group_send(user_group_name(user.id), {
            'type': 'notification_message',
            'message': {'id': 1, 'title': 'Card ready for review'},
        })
        received = await communicator.receive_json_from()
        await communicator.disconnect()
        return received

    assert async_to_sync(scenario)() == {
        'type': 'notification',
        'message': {'id': 1, 'title': 'Card ready for review'},
    }


def test_board_group_names():
    assert board_group_name(7) == 'board_7'
    assert user_group_name(7) == 'user_7'
