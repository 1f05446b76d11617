# apps/core/views.py

import logging

from django.core.cache import cache
from django.db import DatabaseError
from django.http import JsonResponse
from django.utils import timezone
from django.views.decorators.http import require_GET, require_POST

from .api import ApiErrors, api_success
from .models import Notification, User
from .permissions import api_login_required
from .utils import serialize_notification

logger = logging.getLogger(__name__)

VERSION = '0.1.0'

DEFAULT_NOTIFICATION_LIMIT = 50
MAX_NOTIFICATION_LIMIT = 200


@require_GET
def health_check(request):
    """
    Health check for monitoring
    """
    try:
        # Database
        User.objects.exists()

        # Cache (Redis in production)
        cache.set('health_check', 'ok', 60)
        cache.get('health_check')

        return JsonResponse({
            'status': 'healthy',
            'database': 'ok',
            'cache': 'ok',
            'timestamp': timezone.now().isoformat(),
            'version': VERSION,
        })

    except Exception as e:
        logger.exception("Health check failed")
        return JsonResponse({
            'status': 'unhealthy',
            'error': str(e),
            'timestamp': timezone.now().isoformat(),
            'version': VERSION,
        }, status=500)


# === Notifications API ===

def _parse_limit(value):
    try:
        limit = int(value)
    except (TypeError, ValueError):
        return DEFAULT_NOTIFICATION_LIMIT
    return max(1, min(limit, MAX_NOTIFICATION_LIMIT))


@require_GET
@api_login_required
def notification_list(request):
    """
    Notifications of the current user, newest first
    ?unread=1 keeps only unread ones; ?limit=N caps the page
    """
    queryset = Notification.objects.filter(user=request.user)
    unread_count = queryset.filter(is_read=False).count()

    if request.GET.get('unread') in ('1', 'true'):
        queryset = queryset.filter(is_read=False)

    notifications = queryset.order_by('-created_at', '-id')[:_parse_limit(request.GET.get('limit'))]

    return api_success({
        'notifications': [serialize_notification(n) for n in notifications],
        'unreadCount': unread_count,
    })


@require_POST
@api_login_required
def notification_mark_read(request, notification_id):
    notification = Notification.objects.filter(id=notification_id, user=request.user).first()
    if notification is None:
        return ApiErrors.not_found('Notification')

    if not notification.is_read:
        notification.is_read = True
        notification.save(update_fields=['is_read'])

    return api_success(serialize_notification(notification))


@require_POST
@api_login_required
def notification_mark_all_read(request):
    try:
        updated = Notification.objects.filter(user=request.user, is_read=False).update(is_read=True)
    except DatabaseError:
        logger.exception("Failed to mark notifications read for user %s", request.user.id)
        return ApiErrors.internal('Failed to update notifications')

    return api_success({'updated': updated})
