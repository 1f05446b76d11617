"""Tests for dense card positions within and across lists."""

import pytest

from apps.board import positions
from apps.core.exceptions import NotFoundError
from apps.core.models import Card

from .conftest import _get_list, _layout, _make_card, _make_cards

pytestmark = pytest.mark.django_db


def test_move_down_within_list(board):
    todo = _get_list(board, 'To Do')
    x, _y, _z = _make_cards(todo, 'X', 'Y', 'Z')

    positions.move_within_list(todo.id, x.id, 0, 2)

    assert _layout(todo) == [('Y', 0), ('Z', 1), ('X', 2)]


def test_move_up_within_list(board):
    todo = _get_list(board, 'To Do')
    _a, _b, _c, d = _make_cards(todo, 'A', 'B', 'C', 'D')

    shifted = positions.move_within_list(todo.id, d.id, 3, 1)

    assert shifted == 2
    assert _layout(todo) == [('A', 0), ('D', 1), ('B', 2), ('C', 3)]


def test_move_to_same_position_is_a_no_op(board):
    todo = _get_list(board, 'To Do')
    _a, b, _c = _make_cards(todo, 'A', 'B', 'C')

    assert positions.move_within_list(todo.id, b.id, 1, 1) == 0
    assert _layout(todo) == [('A', 0), ('B', 1), ('C', 2)]


def test_move_and_move_back_restores_order(board):
    todo = _get_list(board, 'To Do')
    a, _b, _c = _make_cards(todo, 'A', 'B', 'C')

    positions.move_within_list(todo.id, a.id, 0, 2)
    positions.move_within_list(todo.id, a.id, 2, 0)

    assert _layout(todo) == [('A', 0), ('B', 1), ('C', 2)]


def test_move_across_lists_into_middle(board):
    source = _get_list(board, 'Backlog')
    destination = _get_list(board, 'To Do')
    p, _q = _make_cards(source, 'P', 'Q')
    _make_cards(destination, 'R', 'S', 'T')

    positions.move_across_lists(source.id, destination.id, p.id, 1)

    assert _layout(destination) == [('R', 0), ('P', 1), ('S', 2), ('T', 3)]
    assert _layout(source) == [('Q', 0)]


def test_move_across_lists_into_empty_list(board):
    source = _get_list(board, 'Backlog')
    destination = _get_list(board, 'Done')
    _a, b, _c = _make_cards(source, 'A', 'B', 'C')

    positions.move_across_lists(source.id, destination.id, b.id, 0)

    assert _layout(destination) == [('B', 0)]
    assert _layout(source) == [('A', 0), ('C', 1)]


def test_move_across_lists_requires_card_in_source(board):
    source = _get_list(board, 'Backlog')
    destination = _get_list(board, 'To Do')
    card = _make_card(destination, 'Elsewhere')

    with pytest.raises(NotFoundError):
        positions.move_across_lists(source.id, destination.id, card.id, 0)


def test_resolve_target_position_clamps_to_append():
    assert positions.resolve_target_position(0, 3) == 0
    assert positions.resolve_target_position(3, 3) == 3
    assert positions.resolve_target_position(42, 3) == 3


def test_resolve_target_position_rejects_negative():
    with pytest.raises(ValueError):
        positions.resolve_target_position(-1, 3)


def test_list_length_can_exclude_a_card(board):
    todo = _get_list(board, 'To Do')
    a, _b = _make_cards(todo, 'A', 'B')

    assert positions.list_length(todo.id) == 2
    assert positions.list_length(todo.id, exclude_card_id=a.id) == 1


def test_get_card_in_list_checks_the_list(board):
    todo = _get_list(board, 'To Do')
    card = _make_card(todo, 'A')

    assert positions.get_card_in_list(card.id, todo.id) == card
    with pytest.raises(NotFoundError):
        positions.get_card_in_list(card.id, _get_list(board, 'Done').id)


def test_compact_list_closes_gaps(board):
    todo = _get_list(board, 'To Do')
    _make_card(todo, 'A', position=0)
    _make_card(todo, 'B', position=4)
    _make_card(todo, 'C', position=9)

    assert not positions.positions_are_dense(todo.id)
    assert positions.compact_list(todo.id) == 2
    assert positions.positions_are_dense(todo.id)
    assert _layout(todo) == [('A', 0), ('B', 1), ('C', 2)]


def test_empty_list_is_dense(board):
    assert positions.positions_are_dense(_get_list(board, 'Done').id)
    assert Card.objects.count() == 0
