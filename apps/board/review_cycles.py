# apps/board/review_cycles.py

"""
Quality-review cycles driven by list transitions

A card entering a review list opens a cycle; leaving it closes the cycle.
Reaching a done list marks the latest cycle final and locks them all;
coming back out of done unlocks them. Runs on whatever transaction the
caller has open, so a rolled back move takes its cycle changes with it.
"""

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from django.utils import timezone

from apps.core.models import Evaluation, List, ReviewCycle

from .classifiers import is_review_list_name

logger = logging.getLogger(__name__)

DONE_NAME_HINTS = ('done', 'complete', 'completed', 'finished')

# A cycle closed this soon after opening, with no evaluations, was a drag
# through the review list rather than a real review.
REVIEW_TRANSIENT_WINDOW = timedelta(seconds=2)


@dataclass(frozen=True)
class ListSnapshot:
    """The list fields the transition rules look at"""

    id: int
    name: str
    phase: Optional[str] = None
    view_type: str = List.ViewType.TASKS

    @classmethod
    def from_list(cls, board_list):
        return cls(
            id=board_list.id,
            name=board_list.name,
            phase=board_list.phase,
            view_type=board_list.view_type,
        )


@dataclass
class TransitionResult:
    entered_review: bool = False
    left_review: bool = False
    moved_to_done: bool = False
    reopened_from_done: bool = False
    cycle_opened: bool = False
    cycle_closed: bool = False
    cycle_deleted_as_transient: bool = False
    card_locked: bool = False
    card_unlocked: bool = False
    final_cycle_id: Optional[int] = None


def extract_review_list_ids(board_settings):
    """Explicit review list ids from board settings, as a set of ints"""
    if not isinstance(board_settings, dict):
        return set()
    values = board_settings.get('reviewListIds')
    if not isinstance(values, list):
        return set()

    ids = set()
    for value in values:
        try:
            ids.add(int(value))
        except (TypeError, ValueError):
            continue
    return ids


def _is_tasks_list(snapshot):
    return snapshot.view_type == List.ViewType.TASKS


def is_review_list(snapshot, review_list_ids=None):
    """Explicit review list ids win over the name heuristic"""
    if not _is_tasks_list(snapshot):
        return False
    if review_list_ids:
        return snapshot.id in review_list_ids
    return is_review_list_name(snapshot.name)


def is_done_list(snapshot):
    if not _is_tasks_list(snapshot):
        return False
    if snapshot.phase == List.Phase.DONE:
        return True
    name = snapshot.name.strip().lower()
    return any(hint in name for hint in DONE_NAME_HINTS)


def open_review_cycle(card_id, now):
    """Opens the next cycle unless one is already open; returns its id or None"""
    if ReviewCycle.objects.filter(card_id=card_id, closed_at__isnull=True).exists():
        return None

    latest = ReviewCycle.objects.filter(card_id=card_id).order_by('-cycle_number').first()
    cycle_number = (latest.cycle_number if latest else 0) + 1

    cycle = ReviewCycle.objects.create(card_id=card_id, cycle_number=cycle_number, opened_at=now)
    return cycle.id


def close_review_cycle(card_id, now):
    """
    Closes the open cycle

    Returns (closed_cycle_id, deleted_as_transient).
    """
    cycle = ReviewCycle.objects.filter(
        card_id=card_id,
        closed_at__isnull=True,
    ).order_by('-cycle_number').first()

    if cycle is None:
        return None, False

    if now - cycle.opened_at < REVIEW_TRANSIENT_WINDOW:
        if not Evaluation.objects.filter(review_cycle=cycle).exists():
            cycle.delete()
            return None, True

    cycle.closed_at = now
    cycle.save(update_fields=['closed_at'])
    return cycle.id, False


def mark_final_and_lock(card_id, now):
    """Marks the latest cycle final and locks every cycle of the card"""
    cycles = ReviewCycle.objects.filter(card_id=card_id)
    cycles.update(is_final=False)

    latest = cycles.order_by('-cycle_number').first()
    if latest:
        ReviewCycle.objects.filter(id=latest.id).update(is_final=True)

    ReviewCycle.objects.filter(card_id=card_id, locked_at__isnull=True).update(locked_at=now)
    return latest.id if latest else None


def clear_final_and_unlock(card_id):
    ReviewCycle.objects.filter(card_id=card_id).update(is_final=False, locked_at=None)


def handle_card_list_transition(card_id, from_list, to_list, board_settings=None, now=None):
    """
    Applies the review-cycle rules for a card moving between lists

    `from_list` and `to_list` are ListSnapshot values. Must run inside the
    same transaction as the position change.
    """
    now = now or timezone.now()
    review_list_ids = extract_review_list_ids(board_settings)

    from_review = is_review_list(from_list, review_list_ids)
    to_review = is_review_list(to_list, review_list_ids)
    from_done = is_done_list(from_list)
    to_done = is_done_list(to_list)

    result = TransitionResult(
        entered_review=to_review and not from_review,
        left_review=from_review and not to_review,
        moved_to_done=to_done and not from_done,
        reopened_from_done=from_done and not to_done,
    )

    if result.entered_review:
        result.cycle_opened = open_review_cycle(card_id, now) is not None

    if result.left_review:
        closed_id, deleted = close_review_cycle(card_id, now)
        result.cycle_closed = closed_id is not None
        result.cycle_deleted_as_transient = deleted

    if result.moved_to_done:
        result.final_cycle_id = mark_final_and_lock(card_id, now)
        result.card_locked = True

    if result.reopened_from_done:
        clear_final_and_unlock(card_id)
        result.card_unlocked = True

    logger.debug("Review transition for card %s: %s", card_id, result)
    return result
