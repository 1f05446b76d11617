"""Tests for the time log ledger."""

from datetime import timedelta

import pytest
from django.utils import timezone

from apps.board import time_tracking
from apps.board.time_tracking import TrackingPolicy
from apps.core.models import TimeLog

from .conftest import _get_list, _make_card, _make_user

pytestmark = pytest.mark.django_db


def test_enter_opens_entry_for_assignee(board, owner):
    doing = _get_list(board, 'In Progress')
    card = _make_card(doing, 'Sprite sheet', assignees=[owner])

    entry = time_tracking.on_enter_in_progress(card.id, owner.id, doing.id)

    assert entry is not None
    assert entry.is_open
    assert entry.list_id == doing.id
    assert not entry.is_manual


def test_enter_skips_non_assignee(board, owner):
    assignee = _make_user('artist')
    doing = _get_list(board, 'In Progress')
    card = _make_card(doing, 'Sprite sheet', assignees=[assignee])

    assert time_tracking.on_enter_in_progress(card.id, owner.id, doing.id) is None
    assert not TimeLog.objects.exists()


def test_enter_tracks_mover_of_unassigned_card(board, owner):
    doing = _get_list(board, 'In Progress')
    card = _make_card(doing, 'Sprite sheet')

    entry = time_tracking.on_enter_in_progress(card.id, owner.id, doing.id)

    assert entry.user_id == owner.id


def test_unassigned_mover_policy_can_be_disabled(board, owner):
    doing = _get_list(board, 'In Progress')
    card = _make_card(doing, 'Sprite sheet')
    policy = TrackingPolicy(track_unassigned_mover=False)

    assert time_tracking.on_enter_in_progress(card.id, owner.id, doing.id, policy=policy) is None


def test_policy_reads_settings(settings):
    settings.FALLO_TRACK_UNASSIGNED_MOVER = False
    assert TrackingPolicy.from_settings() == TrackingPolicy(track_unassigned_mover=False)


def test_leave_closes_entry_with_duration(board, owner):
    doing = _get_list(board, 'In Progress')
    card = _make_card(doing, 'Sprite sheet', assignees=[owner])
    start = timezone.now() - timedelta(minutes=90)
    time_tracking.on_enter_in_progress(card.id, owner.id, doing.id, now=start)

    closed = time_tracking.on_leave_in_progress(card.id, owner.id, now=start + timedelta(minutes=90))

    closed.refresh_from_db()
    assert closed.end_time == start + timedelta(minutes=90)
    assert closed.duration_ms == 90 * 60 * 1000


def test_leave_without_open_entry_returns_none(board, owner):
    card = _make_card(_get_list(board, 'In Progress'), 'Sprite sheet')

    assert time_tracking.on_leave_in_progress(card.id, owner.id) is None


def test_enter_closes_stray_open_entry_first(board, owner):
    doing = _get_list(board, 'In Progress')
    card = _make_card(doing, 'Sprite sheet', assignees=[owner])
    earlier = timezone.now() - timedelta(hours=1)
    stray = TimeLog.objects.create(card=card, user=owner, list=doing, start_time=earlier)

    entry = time_tracking.on_enter_in_progress(card.id, owner.id, doing.id)

    stray.refresh_from_db()
    assert stray.end_time == entry.start_time
    assert stray.duration_ms is None
    open_entries = TimeLog.objects.filter(card=card, user=owner, end_time__isnull=True)
    assert list(open_entries) == [entry]


def test_total_duration_counts_open_entries_as_zero():
    logs = [TimeLog(duration_ms=1000), TimeLog(duration_ms=None), TimeLog(duration_ms=500)]
    assert time_tracking.total_duration_ms(logs) == 1500


def test_saving_closed_entry_fills_duration(board, owner):
    card = _make_card(_get_list(board, 'In Progress'), 'Sprite sheet')
    start = timezone.now() - timedelta(minutes=10)

    entry = TimeLog.objects.create(card=card, user=owner, start_time=start, end_time=start + timedelta(minutes=10))

    assert entry.duration_ms == 600_000
    assert entry.duration_hours == 0.17
