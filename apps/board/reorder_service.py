# apps/board/reorder_service.py

"""
Card reorder orchestration

A reorder runs in two phases:

1. commit_positions - renumbers positions and, for cross-list moves,
   applies the review-cycle transition, all in one transaction.
2. apply_side_effects - time tracking, reviewer notification and the
   realtime broadcast. Best effort: failures are logged and never undo
   the committed move.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from django.conf import settings
from django.db import connection, transaction

from apps.core.exceptions import InternalError, NotFoundError
from apps.core.models import List

from . import positions, time_tracking
from .classifiers import is_in_progress_list, is_review_list_name
from .notifications import dispatch_background, notify_reviewers
from .realtime import broadcast_board_event
from .review_cycles import ListSnapshot, TransitionResult, handle_card_list_transition

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReorderRequest:
    card_id: int
    source_list_id: int
    destination_list_id: int
    new_position: int

    @property
    def changes_list(self):
        return self.source_list_id != self.destination_list_id


@dataclass
class ReorderDelta:
    """What the transactional phase committed"""

    board_id: int
    card_id: int
    source: ListSnapshot
    destination: ListSnapshot
    old_position: int
    new_position: int
    review_transition: Optional[TransitionResult] = None

    @property
    def list_changed(self):
        return self.source.id != self.destination.id


class ReorderService:
    """
    Moves cards within and across lists of one board

    Caller identity and board are passed in explicitly; authentication and
    membership checks happen before the service is called.
    """

    def __init__(self, tracking_policy=None, transaction_timeout_ms=None):
        self._tracking_policy = tracking_policy or time_tracking.TrackingPolicy.from_settings()
        if transaction_timeout_ms is None:
            transaction_timeout_ms = getattr(settings, 'FALLO_REORDER_TRANSACTION_TIMEOUT_MS', 15000)
        self._transaction_timeout_ms = transaction_timeout_ms

    def reorder(self, board, actor, request: ReorderRequest) -> ReorderDelta:
        """Validates, commits and post-processes one move"""
        source, destination = self.resolve_lists(board, request)
        delta = self.commit_positions(board, request, source, destination)
        self.apply_side_effects(delta, actor)
        return delta

    # === Validation ===

    def resolve_lists(self, board, request: ReorderRequest):
        """Both lists must belong to the board; one lookup when they are the same"""
        list_ids = {request.source_list_id, request.destination_list_id}
        lists = List.objects.in_bulk(list_ids)
        lists = {pk: obj for pk, obj in lists.items() if obj.board_id == board.id}

        if len(lists) != len(list_ids):
            raise NotFoundError('Lists not found')

        return lists[request.source_list_id], lists[request.destination_list_id]

    # === Transactional phase ===

    def commit_positions(self, board, request: ReorderRequest, source, destination) -> ReorderDelta:
        """
        Applies the position change atomically

        Card-not-found rolls back and propagates as NotFoundError; any other
        failure rolls back and becomes InternalError.
        """
        try:
            with transaction.atomic():
                self._apply_statement_timeout()

                card = positions.get_card_in_list(request.card_id, source.id, lock=True)
                old_position = card.position
                source_snapshot = ListSnapshot.from_list(source)
                destination_snapshot = ListSnapshot.from_list(destination)

                if request.changes_list:
                    length = positions.list_length(destination.id)
                    new_position = positions.resolve_target_position(request.new_position, length)
                    positions.move_across_lists(source.id, destination.id, card.id, new_position)
                    review_transition = handle_card_list_transition(
                        card.id,
                        source_snapshot,
                        destination_snapshot,
                        board_settings=board.get_settings(),
                    )
                else:
                    length = positions.list_length(source.id, exclude_card_id=card.id)
                    new_position = positions.resolve_target_position(request.new_position, length)
                    positions.move_within_list(source.id, card.id, old_position, new_position)
                    review_transition = None

        except NotFoundError:
            raise
        except Exception as exc:
            logger.exception(
                "Reorder of card %s on board %s rolled back",
                request.card_id, board.id,
            )
            raise InternalError('Failed to reorder cards') from exc

        logger.info(
            "Card %s moved on board %s: list %s@%s -> list %s@%s",
            card.id, board.id, source.id, old_position, destination.id, new_position,
        )

        return ReorderDelta(
            board_id=board.id,
            card_id=card.id,
            source=source_snapshot,
            destination=destination_snapshot,
            old_position=old_position,
            new_position=new_position,
            review_transition=review_transition,
        )

    def _apply_statement_timeout(self):
        # SET LOCAL lasts until the end of the enclosing transaction
        if connection.vendor == 'postgresql' and self._transaction_timeout_ms:
            with connection.cursor() as cursor:
                cursor.execute('SET LOCAL statement_timeout = %s', [int(self._transaction_timeout_ms)])

    # === Best-effort phase ===

    def apply_side_effects(self, delta: ReorderDelta, actor):
        """Time tracking, reviewer notification and broadcast; never raises"""
        if delta.list_changed:
            try:
                self.track_time(delta, actor)
            except Exception:
                logger.exception("Time tracking failed after moving card %s", delta.card_id)

            if self.should_notify_reviewers(delta):
                try:
                    dispatch_background(
                        notify_reviewers,
                        delta.board_id,
                        delta.card_id,
                        actor.id,
                        delta.destination.id,
                    )
                except Exception:
                    logger.exception("Reviewer notification dispatch failed for card %s", delta.card_id)

        try:
            broadcast_board_event(delta.board_id, 'card_moved', {
                'card_id': delta.card_id,
                'source_list_id': delta.source.id,
                'destination_list_id': delta.destination.id,
                'new_position': delta.new_position,
                'user': actor.display_name,
                'user_id': actor.id,
            })
        except Exception:
            logger.exception("Broadcast failed after moving card %s", delta.card_id)

    def track_time(self, delta: ReorderDelta, actor):
        """
        Drives the time log ledger for a cross-list move

        Leaving an in-progress list closes the actor's timer; entering one
        opens it. Moving between two in-progress lists does both, so each
        entry stays attached to a single list.
        """
        if is_in_progress_list(delta.source.name):
            time_tracking.on_leave_in_progress(delta.card_id, actor.id)

        if is_in_progress_list(delta.destination.name):
            time_tracking.on_enter_in_progress(
                delta.card_id,
                actor.id,
                delta.destination.id,
                policy=self._tracking_policy,
            )

    @staticmethod
    def should_notify_reviewers(delta: ReorderDelta):
        return is_review_list_name(delta.destination.name) and not is_review_list_name(delta.source.name)
