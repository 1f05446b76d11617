# apps/board/notifications.py

"""
Notifications and the background dispatcher that delivers them

Reviewer notifications are fire-and-forget: the request path hands them
to `dispatch_background` and never waits for them. The worker has its own
error boundary, so a failing notification is logged and dropped.
"""

import logging
import re
from concurrent.futures import ThreadPoolExecutor

from django.conf import settings
from django.db import close_old_connections, transaction

from apps.core.models import Card, Notification, User
from apps.core.slack import SlackError, is_slack_configured, post_slack_message
from apps.core.utils import serialize_notification

from .realtime import push_user_notification

logger = logging.getLogger(__name__)

LEAD_ROLE_HINTS = ('lead',)
PO_ROLE_HINTS = ('po', 'product owner')

NOTIFICATION_CARD_IN_REVIEW = 'CARD_IN_REVIEW'

_executor = None


def _get_executor():
    global _executor
    if _executor is None:
        _executor = ThreadPoolExecutor(
            max_workers=getattr(settings, 'FALLO_NOTIFICATION_WORKERS', 4),
            thread_name_prefix='fallo-notify',
        )
    return _executor


def dispatch_background(func, *args, **kwargs):
    """
    Runs `func` detached from the request once the current transaction commits

    With FALLO_NOTIFICATIONS_INLINE the job runs right away in the calling
    thread, still behind the same error boundary.
    """
    name = getattr(func, '__name__', repr(func))
    inline = getattr(settings, 'FALLO_NOTIFICATIONS_INLINE', False)

    def run():
        try:
            func(*args, **kwargs)
        except Exception:
            logger.exception("Background job %s failed", name)
        finally:
            if not inline:
                close_old_connections()

    if inline:
        run()
        return

    transaction.on_commit(lambda: _get_executor().submit(run))


# === Approvers ===

def normalize_role_name(value):
    return re.sub(r'[\s_-]+', ' ', value.strip().lower())


def _matches_po(normalized):
    # Whole words only, unlike a plain substring test: "composer" is not a PO
    words = f" {normalized.replace('.', '')} "
    return any(f' {hint} ' in words for hint in PO_ROLE_HINTS)


def _matches_lead(normalized):
    return any(
        normalized == hint or normalized.endswith(f' {hint}') or normalized.startswith(f'{hint} ')
        for hint in LEAD_ROLE_HINTS
    )


def resolve_approvers(project_role_assignments):
    """
    PO and Lead approvers from the board's role assignments

    Each assignment is {"userId": ..., "roleName": ...}; a user can show up
    once per matching role.
    """
    approvers = []
    for assignment in project_role_assignments or []:
        if not isinstance(assignment, dict):
            continue
        user_id = assignment.get('userId')
        role_name = assignment.get('roleName')
        if not user_id or not role_name:
            continue

        normalized = normalize_role_name(role_name)
        if _matches_po(normalized):
            approvers.append({'role': 'PO', 'userId': user_id, 'roleName': role_name})
        if _matches_lead(normalized):
            approvers.append({'role': 'LEAD', 'userId': user_id, 'roleName': role_name})

    return approvers


# === Notifications ===

def create_notification(user_id, type, title, message, data=None):
    """Stores the notification and pushes it to the user's open sockets"""
    notification = Notification.objects.create(
        user_id=user_id,
        type=type,
        title=title,
        message=message,
        data=data or {},
    )

    try:
        push_user_notification(user_id, serialize_notification(notification))
    except Exception:
        logger.exception("Realtime push of notification %s failed", notification.id)

    return notification


def create_notification_with_slack_dm(user_id, type, title, message, data=None, slack_user_id=None):
    """In-app notification plus a best-effort Slack DM"""
    notification = create_notification(user_id, type, title, message, data)

    if slack_user_id and is_slack_configured():
        try:
            post_slack_message(slack_user_id, message)
        except SlackError:
            logger.exception("Failed to send Slack DM to user %s", user_id)

    return notification


def notify_reviewers(board_id, card_id, actor_id, list_id):
    """
    Tells the board's approvers that a card is waiting in review

    One notification per distinct approver user.
    """
    card = Card.objects.select_related('list__board').filter(id=card_id).first()
    if card is None:
        logger.warning("Card %s vanished before reviewers could be notified", card_id)
        return []

    board = card.list.board
    approvers = resolve_approvers(board.get_settings().get('projectRoleAssignments'))
    if not approvers:
        logger.debug("Board %s has no approvers configured", board_id)
        return []

    user_ids = []
    for approver in approvers:
        try:
            user_id = int(approver['userId'])
        except (TypeError, ValueError):
            continue
        if user_id not in user_ids:
            user_ids.append(user_id)

    users = User.objects.in_bulk(user_ids)
    actor = User.objects.filter(id=actor_id).first()
    actor_name = actor.display_name if actor else 'Someone'

    notifications = []
    for user_id in user_ids:
        user = users.get(user_id)
        if user is None:
            logger.warning("Approver %s on board %s does not exist", user_id, board_id)
            continue

        notifications.append(create_notification_with_slack_dm(
            user_id=user.id,
            type=NOTIFICATION_CARD_IN_REVIEW,
            title='Card ready for review',
            message=f'{actor_name} moved "{card.title}" to {card.list.name}',
            data={'boardId': board_id, 'cardId': card_id, 'listId': list_id},
            slack_user_id=user.slack_user_id,
        ))

    logger.info("Notified %s reviewer(s) about card %s", len(notifications), card_id)
    return notifications
