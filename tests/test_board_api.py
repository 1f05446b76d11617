"""Tests for the board JSON API: board state, reorder and time logs."""

from datetime import timedelta

import pytest
from django.urls import reverse
from django.utils import timezone

from apps.board import views as board_views
from apps.core.models import PermissionLevel, TimeLog

from .conftest import _get_list, _layout, _make_board, _make_card, _make_cards, _make_user, _post_json

pytestmark = pytest.mark.django_db


def _reorder_url(board):
    return reverse('board:reorder_cards', args=[board.id])


def _payload(card, source, destination, position):
    return {
        'cardId': card.id,
        'sourceListId': source.id,
        'destinationListId': destination.id,
        'newPosition': position,
    }


# === Board state ===

def test_board_detail_lists_cards_in_order(owner_client, board):
    todo = _get_list(board, 'To Do')
    _make_cards(todo, 'A', 'B')

    response = owner_client.get(reverse('board:detail', args=[board.id]))

    assert response.status_code == 200
    data = response.json()['data']
    assert data['permission'] == PermissionLevel.ADMIN
    assert [lst['name'] for lst in data['lists']] == ['Backlog', 'To Do', 'In Progress', 'Review', 'Done']
    assert [card['title'] for card in data['lists'][1]['cards']] == ['A', 'B']


def test_board_detail_hides_archived_cards(owner_client, board):
    todo = _get_list(board, 'To Do')
    card = _make_card(todo, 'Old')
    card.archived_at = timezone.now()
    card.save()

    response = owner_client.get(reverse('board:detail', args=[board.id]))

    assert response.json()['data']['lists'][1]['cards'] == []


# === Reorder ===

def test_reorder_requires_login(client, board):
    response = _post_json(client, _reorder_url(board), {})

    assert response.status_code == 401
    assert response.json()['error']['code'] == 'UNAUTHORIZED'


def test_reorder_unknown_board(owner_client):
    response = _post_json(owner_client, reverse('board:reorder_cards', args=[999_999]), {})

    assert response.status_code == 404


def test_reorder_rejects_non_members(client, board):
    stranger = _make_user('stranger')
    client.force_login(stranger)
    todo = _get_list(board, 'To Do')
    card = _make_card(todo, 'A')

    response = _post_json(client, _reorder_url(board), _payload(card, todo, todo, 0))

    assert response.status_code == 403


def test_reorder_rejects_viewers(client, owner):
    viewer = _make_user('viewer')
    board = _make_board(owner, members={viewer: PermissionLevel.VIEWER})
    client.force_login(viewer)
    todo = _get_list(board, 'To Do')
    a, _b = _make_cards(todo, 'A', 'B')

    response = _post_json(client, _reorder_url(board), _payload(a, todo, todo, 1))

    assert response.status_code == 403
    assert response.json()['error']['message'] == 'Viewers cannot move cards'
    assert _layout(todo) == [('A', 0), ('B', 1)]


def test_super_admin_can_reorder_without_membership(client, board):
    admin = _make_user('root', permission=PermissionLevel.SUPER_ADMIN)
    client.force_login(admin)
    todo = _get_list(board, 'To Do')
    a, _b = _make_cards(todo, 'A', 'B')

    response = _post_json(client, _reorder_url(board), _payload(a, todo, todo, 1))

    assert response.status_code == 200
    assert _layout(todo) == [('B', 0), ('A', 1)]


def test_reorder_success(owner_client, board):
    source = _get_list(board, 'Backlog')
    destination = _get_list(board, 'To Do')
    p, _q = _make_cards(source, 'P', 'Q')
    _make_cards(destination, 'R', 'S', 'T')

    response = _post_json(owner_client, _reorder_url(board), _payload(p, source, destination, 1))

    assert response.status_code == 200
    assert response.json() == {'success': True, 'data': None}
    assert _layout(destination) == [('R', 0), ('P', 1), ('S', 2), ('T', 3)]
    assert _layout(source) == [('Q', 0)]


def test_reorder_rejects_negative_position(owner_client, board):
    todo = _get_list(board, 'To Do')
    card = _make_card(todo, 'A')

    response = _post_json(owner_client, _reorder_url(board), _payload(card, todo, todo, -1))

    assert response.status_code == 400
    assert response.json()['error']['code'] == 'VALIDATION_ERROR'


def test_reorder_rejects_missing_fields(owner_client, board):
    response = _post_json(owner_client, _reorder_url(board), {'cardId': 1})

    assert response.status_code == 400


def test_reorder_rejects_invalid_json(owner_client, board):
    response = owner_client.post(_reorder_url(board), data='{nope', content_type='application/json')

    assert response.status_code == 400
    assert response.json()['error']['message'] == 'Request body must be valid JSON'


def test_reorder_unknown_card(owner_client, board):
    todo = _get_list(board, 'To Do')
    payload = {'cardId': 999_999, 'sourceListId': todo.id, 'destinationListId': todo.id, 'newPosition': 0}

    response = _post_json(owner_client, _reorder_url(board), payload)

    assert response.status_code == 404
    assert response.json()['error']['message'] == 'Card not found'


def test_reorder_lists_of_other_board(owner_client, board, owner):
    other = _make_board(owner, name='Other')
    todo = _get_list(board, 'To Do')
    card = _make_card(todo, 'A')

    response = _post_json(owner_client, _reorder_url(board), _payload(card, todo, _get_list(other, 'To Do'), 0))

    assert response.status_code == 404
    assert response.json()['error']['message'] == 'Lists not found'


def test_htmx_failure_asks_client_to_refresh(owner_client, board):
    todo = _get_list(board, 'To Do')
    payload = {'cardId': 999_999, 'sourceListId': todo.id, 'destinationListId': todo.id, 'newPosition': 0}

    response = _post_json(owner_client, _reorder_url(board), payload, HTTP_HX_REQUEST='true')

    assert response.status_code == 404
    assert 'fallo:board-refresh' in response['HX-Trigger']


def test_reorder_is_post_only(owner_client, board):
    response = owner_client.get(_reorder_url(board))

    assert response.status_code == 405


# === Time logs ===

def _time_logs_url(board, card):
    return reverse('board:card_time_logs', args=[board.id, card.id])


def _login_admin(client, board):
    """Logs in a global ADMIN who is also a member of the board"""
    admin = _make_user('boss', permission=PermissionLevel.ADMIN)
    board.memberships.create(user=admin, permission=PermissionLevel.MEMBER)
    client.force_login(admin)
    return admin


def test_card_time_logs_total(owner_client, board, owner):
    doing = _get_list(board, 'In Progress')
    card = _make_card(doing, 'Boss fight')
    start = timezone.now() - timedelta(hours=3)
    TimeLog.objects.create(card=card, user=owner, list=doing, start_time=start, end_time=start + timedelta(hours=1))
    TimeLog.objects.create(card=card, user=owner, list=doing, start_time=start + timedelta(hours=2))

    response = owner_client.get(_time_logs_url(board, card))

    data = response.json()['data']
    assert len(data['logs']) == 2
    assert data['totalMs'] == 3_600_000
    assert data['totalFormatted'] == '1h 0m'


def test_manual_time_log_requires_global_admin(owner_client, board, owner):
    card = _make_card(_get_list(board, 'In Progress'), 'Boss fight')

    response = _post_json(owner_client, _time_logs_url(board, card), {'userId': owner.id, 'listId': card.list_id})

    assert response.status_code == 403


def test_admin_creates_manual_time_log(client, board, owner):
    _login_admin(client, board)
    card = _make_card(_get_list(board, 'In Progress'), 'Boss fight')
    payload = {
        'userId': owner.id,
        'listId': card.list_id,
        'startTime': '2026-03-02T09:00:00Z',
        'endTime': '2026-03-02T10:30:00Z',
        'notes': '  pairing  ',
    }

    response = _post_json(client, _time_logs_url(board, card), payload)

    assert response.status_code == 201
    data = response.json()['data']
    assert data['durationMs'] == 90 * 60 * 1000
    assert data['isManual'] is True
    assert data['notes'] == 'pairing'


def test_manual_time_log_rejects_end_before_start(client, board, owner):
    _login_admin(client, board)
    card = _make_card(_get_list(board, 'In Progress'), 'Boss fight')
    payload = {
        'userId': owner.id,
        'listId': card.list_id,
        'startTime': '2026-03-02T10:00:00Z',
        'endTime': '2026-03-02T09:00:00Z',
    }

    response = _post_json(client, _time_logs_url(board, card), payload)

    assert response.status_code == 400


def test_admin_updates_and_deletes_time_log(client, board, owner):
    _login_admin(client, board)
    doing = _get_list(board, 'In Progress')
    card = _make_card(doing, 'Boss fight')
    start = timezone.now() - timedelta(hours=2)
    log = TimeLog.objects.create(card=card, user=owner, list=doing, start_time=start)
    url = reverse('board:time_log_detail', args=[board.id, card.id, log.id])

    response = client.patch(
        url,
        data={'endTime': (start + timedelta(minutes=30)).isoformat(), 'notes': 'closed by hand'},
        content_type='application/json',
    )

    assert response.status_code == 200
    log.refresh_from_db()
    assert log.end_time == start + timedelta(minutes=30)
    assert log.notes == 'closed by hand'

    response = client.delete(url)

    assert response.status_code == 200
    assert not TimeLog.objects.filter(id=log.id).exists()


def test_time_log_detail_unknown_log(client, board):
    _login_admin(client, board)
    card = _make_card(_get_list(board, 'In Progress'), 'Boss fight')

    response = client.delete(reverse('board:time_log_detail', args=[board.id, card.id, 999_999]))

    assert response.status_code == 404


def test_unexpected_reorder_error_uses_json_envelope(owner_client, board, monkeypatch):
    todo = _get_list(board, 'To Do')
    card = _make_card(todo, 'A')

    class BrokenService:
        def reorder(self, *args):
            raise RuntimeError('database went away')

    monkeypatch.setattr(board_views, 'ReorderService', BrokenService)

    response = _post_json(owner_client, _reorder_url(board), _payload(card, todo, todo, 0), HTTP_HX_REQUEST='true')

    assert response.status_code == 500
    assert response.json() == {
        'success': False,
        'error': {'code': 'INTERNAL_ERROR', 'message': 'Failed to reorder cards'},
    }
    assert 'fallo:board-refresh' in response['HX-Trigger']


def test_time_log_detail_requires_global_admin(owner_client, board, owner):
    doing = _get_list(board, 'In Progress')
    card = _make_card(doing, 'Boss fight')
    log = TimeLog.objects.create(card=card, user=owner, list=doing, start_time=timezone.now())

    response = owner_client.delete(reverse('board:time_log_detail', args=[board.id, card.id, log.id]))

    assert response.status_code == 403
    assert TimeLog.objects.filter(id=log.id).exists()
