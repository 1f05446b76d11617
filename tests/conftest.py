"""Shared builders and fixtures for the Fallo test suite."""

import json

import pytest

from apps.core.models import (
    Board, BoardMember, Card, CardAssignee, List, PermissionLevel, User,
)


def _make_user(username, permission=PermissionLevel.MEMBER, **extra):
    return User.objects.create_user(
        username=username,
        password='secret',
        permission=permission,
        **extra,
    )


def _make_board(owner, name='Game board', settings=None, members=None):
    """
    Board with the default lists (Backlog, To Do, In Progress, Review, Done)

    `members` maps users to their board permission; the owner is always an
    ADMIN member.
    """
    board = Board.objects.create(name=name, created_by=owner, settings=settings or {})
    BoardMember.objects.create(board=board, user=owner, permission=PermissionLevel.ADMIN)
    for user, permission in (members or {}).items():
        BoardMember.objects.create(board=board, user=user, permission=permission)
    return board


def _get_list(board, name):
    return board.lists.get(name=name)


def _make_list(board, name, **extra):
    return List.objects.create(board=board, name=name, position=board.lists.count(), **extra)


def _make_card(board_list, title, position=None, assignees=()):
    if position is None:
        position = Card.objects.filter(list=board_list).count()
    card = Card.objects.create(list=board_list, title=title, position=position)
    for user in assignees:
        CardAssignee.objects.create(card=card, user=user)
    return card


def _make_cards(board_list, *titles):
    return [_make_card(board_list, title, position=idx) for idx, title in enumerate(titles)]


def _layout(board_list):
    """Titles of the list's cards in position order, with their positions"""
    return list(
        Card.objects.filter(list=board_list)
        .order_by('position', 'id')
        .values_list('title', 'position')
    )


def _post_json(client, url, payload, **extra):
    return client.post(url, data=json.dumps(payload), content_type='application/json', **extra)


@pytest.fixture
def owner(db):
    return _make_user('owner')


@pytest.fixture
def board(owner):
    return _make_board(owner)


@pytest.fixture
def owner_client(client, owner):
    client.force_login(owner)
    return client
