# apps/board/views.py

import logging

from django.db.models import Prefetch
from django.views.decorators.http import require_GET, require_http_methods, require_POST
from django_htmx.http import trigger_client_event

from apps.core.api import (
    ApiErrors,
    api_success,
    error_response,
    form_error_message,
    parse_json_body,
)
from apps.core.exceptions import FalloError, ValidationError
from apps.core.models import Card, List, TimeLog, User
from apps.core.permissions import FalloPermissions, requires_admin, requires_board_member
from apps.core.utils import format_duration, serialize_user

from .forms import ReorderForm, TimeLogCreateForm, TimeLogUpdateForm
from .reorder_service import ReorderService
from .time_tracking import total_duration_ms

logger = logging.getLogger(__name__)

# Client event the board page listens to for a full refetch
BOARD_REFRESH_EVENT = 'fallo:board-refresh'


# === Serialization ===

def serialize_card(card):
    return {
        'id': card.id,
        'listId': card.list_id,
        'type': card.type,
        'title': card.title,
        'position': card.position,
        'color': card.color or None,
        'storyPoints': card.story_points,
        'assignees': [serialize_user(a.user) for a in card.card_assignees.all()],
    }


def serialize_list(board_list):
    return {
        'id': board_list.id,
        'name': board_list.name,
        'position': board_list.position,
        'phase': board_list.phase,
        'viewType': board_list.view_type,
        'color': board_list.color or None,
        'cards': [serialize_card(card) for card in board_list.cards.all()],
    }


def serialize_time_log(time_log):
    return {
        'id': time_log.id,
        'cardId': time_log.card_id,
        'user': serialize_user(time_log.user),
        'list': {'id': time_log.list.id, 'name': time_log.list.name} if time_log.list else None,
        'startTime': time_log.start_time.isoformat(),
        'endTime': time_log.end_time.isoformat() if time_log.end_time else None,
        'durationMs': time_log.duration_ms,
        'isManual': time_log.is_manual,
        'notes': time_log.notes,
    }


# === Board ===

@require_GET
@requires_board_member
def board_detail(request, board_id):
    """
    Authoritative board state: lists and cards ordered by position
    The client refetches this after a failed reorder
    """
    board = request.board

    cards = Card.objects.filter(archived_at__isnull=True).prefetch_related('card_assignees__user')
    lists = board.lists.prefetch_related(Prefetch('cards', queryset=cards)).order_by('position', 'id')

    return api_success({
        'id': board.id,
        'name': board.name,
        'description': board.description,
        'permission': request.board_permission,
        'lists': [serialize_list(board_list) for board_list in lists],
    })


@require_POST
@requires_board_member
def reorder_cards(request, board_id):
    """
    Moves a card within its list or into another list of the board
    Body: {cardId, sourceListId, destinationListId, newPosition}
    """
    board = request.board

    if not FalloPermissions.can_edit_board(request.user, board):
        return ApiErrors.forbidden('Viewers cannot move cards')

    try:
        form = ReorderForm(parse_json_body(request))
        if not form.is_valid():
            raise ValidationError(form_error_message(form))

        ReorderService().reorder(board, request.user, form.to_request())

    except FalloError as exc:
        logger.warning(
            "Reorder rejected on board %s by user %s: %s",
            board.id, request.user.id, exc.message,
        )
        return _reorder_failed(request, board, error_response(exc))

    except Exception:
        logger.exception("Reorder failed on board %s by user %s", board.id, request.user.id)
        return _reorder_failed(request, board, ApiErrors.internal('Failed to reorder cards'))

    return api_success(None)


def _reorder_failed(request, board, response):
    """HTMX clients are told to refetch the board"""
    if request.htmx:
        trigger_client_event(response, BOARD_REFRESH_EVENT, {'boardId': board.id})
    return response


# === Time logs ===

def _get_card(board, card_id):
    return Card.objects.filter(id=card_id, list__board=board).first()


@require_http_methods(['GET', 'POST'])
@requires_board_member
def card_time_logs(request, board_id, card_id):
    """
    GET: the card's time logs with their total
    POST: manual entry (admin only)
    """
    if request.method == 'POST':
        return _create_time_log(request, card_id)

    logs = list(
        TimeLog.objects.filter(card_id=card_id, card__list__board=request.board)
        .select_related('user', 'list')
        .order_by('-start_time')
    )
    total_ms = total_duration_ms(logs)

    return api_success({
        'logs': [serialize_time_log(log) for log in logs],
        'totalMs': total_ms,
        'totalFormatted': format_duration(total_ms),
    })


def _create_time_log(request, card_id):
    if not FalloPermissions.is_admin(request.user):
        return ApiErrors.admin_required()

    try:
        form = TimeLogCreateForm(parse_json_body(request))
    except ValidationError as exc:
        return error_response(exc)
    if not form.is_valid():
        return ApiErrors.validation(form_error_message(form))

    card = _get_card(request.board, card_id)
    if card is None:
        return ApiErrors.not_found('Card')

    user = User.objects.filter(id=form.cleaned_data['userId']).first()
    if user is None:
        return ApiErrors.not_found('User')

    board_list = List.objects.filter(id=form.cleaned_data['listId'], board=request.board).first()
    if board_list is None:
        return ApiErrors.not_found('List')

    time_log = form.build(card, user, board_list)
    time_log.save()

    logger.info(
        "Manual time log %s created on card %s for user %s by %s",
        time_log.id, card.id, user.id, request.user.id,
    )
    return api_success(serialize_time_log(time_log), status=201)


@require_http_methods(['PATCH', 'DELETE'])
@requires_admin
@requires_board_member
def time_log_detail(request, board_id, card_id, log_id):
    """Update or delete a time log (admin only)"""
    time_log = (
        TimeLog.objects.select_related('user', 'list')
        .filter(id=log_id, card_id=card_id, card__list__board=request.board)
        .first()
    )
    if time_log is None:
        return ApiErrors.not_found('Time log')

    if request.method == 'DELETE':
        time_log.delete()
        logger.info("Time log %s deleted by user %s", log_id, request.user.id)
        return api_success(None)

    try:
        form = TimeLogUpdateForm(parse_json_body(request), instance=time_log)
    except ValidationError as exc:
        return error_response(exc)
    if not form.is_valid():
        return ApiErrors.validation(form_error_message(form))

    form.apply_to(time_log)
    time_log.save()

    return api_success(serialize_time_log(time_log))
