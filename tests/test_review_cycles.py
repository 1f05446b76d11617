"""Tests for review cycles driven by list transitions."""

from datetime import timedelta

import pytest
from django.utils import timezone

from apps.board.review_cycles import (
    ListSnapshot,
    extract_review_list_ids,
    handle_card_list_transition,
    is_done_list,
    is_review_list,
)
from apps.core.models import Evaluation, List, ReviewCycle

from .conftest import _get_list, _make_card, _make_list

pytestmark = pytest.mark.django_db


def _snapshot(board, name):
    return ListSnapshot.from_list(_get_list(board, name))


def _move(card, board, source, destination, now, board_settings=None):
    return handle_card_list_transition(
        card.id,
        _snapshot(board, source),
        _snapshot(board, destination),
        board_settings=board_settings,
        now=now,
    )


def test_entering_review_opens_cycle(board):
    card = _make_card(_get_list(board, 'In Progress'), 'Boss fight')
    now = timezone.now()

    result = _move(card, board, 'In Progress', 'Review', now)

    assert result.entered_review
    assert result.cycle_opened
    cycle = ReviewCycle.objects.get(card=card)
    assert cycle.cycle_number == 1
    assert cycle.is_open


def test_leaving_review_closes_cycle(board):
    card = _make_card(_get_list(board, 'In Progress'), 'Boss fight')
    now = timezone.now()
    _move(card, board, 'In Progress', 'Review', now)

    result = _move(card, board, 'Review', 'In Progress', now + timedelta(hours=1))

    assert result.cycle_closed
    assert not result.cycle_deleted_as_transient
    assert ReviewCycle.objects.get(card=card).closed_at == now + timedelta(hours=1)


def test_quick_pass_through_review_leaves_no_cycle(board):
    card = _make_card(_get_list(board, 'In Progress'), 'Boss fight')
    now = timezone.now()
    _move(card, board, 'In Progress', 'Review', now)

    result = _move(card, board, 'Review', 'In Progress', now + timedelta(seconds=1))

    assert result.cycle_deleted_as_transient
    assert not ReviewCycle.objects.filter(card=card).exists()


def test_quick_exit_keeps_cycle_with_evaluations(board, owner):
    card = _make_card(_get_list(board, 'In Progress'), 'Boss fight')
    now = timezone.now()
    _move(card, board, 'In Progress', 'Review', now)
    cycle = ReviewCycle.objects.get(card=card)
    Evaluation.objects.create(review_cycle=cycle, reviewer=owner, role=Evaluation.EvaluatorRole.LEAD)

    result = _move(card, board, 'Review', 'In Progress', now + timedelta(seconds=1))

    assert result.cycle_closed
    assert ReviewCycle.objects.filter(card=card).count() == 1


def test_second_review_gets_next_cycle_number(board):
    card = _make_card(_get_list(board, 'In Progress'), 'Boss fight')
    now = timezone.now()
    _move(card, board, 'In Progress', 'Review', now)
    _move(card, board, 'Review', 'In Progress', now + timedelta(hours=1))

    _move(card, board, 'In Progress', 'Review', now + timedelta(hours=2))

    numbers = list(ReviewCycle.objects.filter(card=card).values_list('cycle_number', flat=True))
    assert numbers == [1, 2]


def test_done_locks_and_reopen_unlocks(board):
    card = _make_card(_get_list(board, 'In Progress'), 'Boss fight')
    now = timezone.now()
    _move(card, board, 'In Progress', 'Review', now)

    result = _move(card, board, 'Review', 'Done', now + timedelta(hours=1))

    assert result.moved_to_done
    assert result.card_locked
    cycle = ReviewCycle.objects.get(card=card)
    assert cycle.is_final
    assert cycle.locked_at == now + timedelta(hours=1)
    assert result.final_cycle_id == cycle.id

    result = _move(card, board, 'Done', 'To Do', now + timedelta(hours=2))

    assert result.card_unlocked
    cycle.refresh_from_db()
    assert not cycle.is_final
    assert cycle.locked_at is None


def test_explicit_review_list_ids_override_names(board):
    qa = _make_list(board, 'QA')
    card = _make_card(_get_list(board, 'In Progress'), 'Boss fight')
    board_settings = {'reviewListIds': [str(qa.id), 'junk']}

    result = _move(card, board, 'In Progress', 'QA', timezone.now(), board_settings)
    assert result.entered_review

    result = _move(card, board, 'QA', 'Review', timezone.now() + timedelta(hours=1), board_settings)
    assert result.left_review
    assert not result.entered_review


def test_extract_review_list_ids_ignores_garbage():
    assert extract_review_list_ids(None) == set()
    assert extract_review_list_ids({'reviewListIds': 'nope'}) == set()
    assert extract_review_list_ids({'reviewListIds': [1, '2', None, 'x']}) == {1, 2}


def test_planning_lists_never_count_as_review_or_done():
    review = ListSnapshot(id=1, name='Review', view_type=List.ViewType.PLANNING)
    done = ListSnapshot(id=2, name='Done', phase=List.Phase.DONE, view_type=List.ViewType.PLANNING)

    assert not is_review_list(review)
    assert not is_done_list(done)


def test_done_detected_by_phase_or_name():
    assert is_done_list(ListSnapshot(id=1, name='Shipped', phase=List.Phase.DONE))
    assert is_done_list(ListSnapshot(id=2, name='Completed'))
    assert not is_done_list(ListSnapshot(id=3, name='Backlog'))
