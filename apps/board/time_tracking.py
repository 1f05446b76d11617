# apps/board/time_tracking.py

"""
Time log ledger

Active-work timers open when a card enters an in-progress list and close
when it leaves one. The ledger keeps at most one open entry per
(card, user) by always closing before opening; no database constraint
backs this, so callers must keep the call order.
"""

import logging
from dataclasses import dataclass

from django.conf import settings
from django.db import DatabaseError
from django.utils import timezone

from apps.core.exceptions import InternalError
from apps.core.models import CardAssignee, TimeLog

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TrackingPolicy:
    """
    Who gets a timer when a card enters an in-progress list

    Assignees always do. `track_unassigned_mover` decides whether the
    person moving an unassigned card starts tracking it.
    """

    track_unassigned_mover: bool = True

    @classmethod
    def from_settings(cls):
        return cls(
            track_unassigned_mover=getattr(settings, 'FALLO_TRACK_UNASSIGNED_MOVER', True),
        )


def _open_entries(card_id, user_id):
    return TimeLog.objects.filter(card_id=card_id, user_id=user_id, end_time__isnull=True)


def should_track(card_id, user_id, policy=None):
    """
    Applies the tracking gate for `user_id` on `card_id`

    A missing card has no assignees, so it falls through to the
    unassigned-mover rule.
    """
    policy = policy or TrackingPolicy.from_settings()
    assignee_ids = set(CardAssignee.objects.filter(card_id=card_id).values_list('user_id', flat=True))
    if assignee_ids:
        return user_id in assignee_ids
    return policy.track_unassigned_mover


def on_leave_in_progress(card_id, user_id, now=None):
    """
    Closes the user's open entry on the card

    Returns the closed entry, or None when the user was not tracking.
    """
    now = now or timezone.now()
    try:
        entry = _open_entries(card_id, user_id).order_by('-start_time').first()
        if entry is None:
            return None
        entry.close(now)
        entry.save(update_fields=['end_time', 'duration_ms'])
    except DatabaseError as exc:
        raise InternalError(f'Failed to close time log: {exc}') from exc

    logger.info(
        "Time log %s closed for card %s / user %s (%s ms)",
        entry.id, card_id, user_id, entry.duration_ms,
    )
    return entry


def on_enter_in_progress(card_id, user_id, destination_list_id, now=None, policy=None):
    """
    Starts a timer for the user on the card, if the tracking gate allows

    Any stray open entry for the same (card, user) is closed first with
    only its end time set. Returns the new entry, or None when gated out.
    """
    now = now or timezone.now()
    try:
        if not should_track(card_id, user_id, policy):
            logger.debug("Time tracking skipped for card %s / user %s (not an assignee)", card_id, user_id)
            return None

        stray = _open_entries(card_id, user_id).update(end_time=now)
        if stray:
            logger.warning(
                "Closed %s stray open time log(s) for card %s / user %s",
                stray, card_id, user_id,
            )

        entry = TimeLog.objects.create(
            card_id=card_id,
            user_id=user_id,
            list_id=destination_list_id,
            start_time=now,
        )
    except DatabaseError as exc:
        raise InternalError(f'Failed to open time log: {exc}') from exc

    logger.info("Time log %s opened for card %s / user %s", entry.id, card_id, user_id)
    return entry


def total_duration_ms(time_logs):
    """Sum of recorded durations; open entries count as zero"""
    return sum(log.duration_ms or 0 for log in time_logs)
