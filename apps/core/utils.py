# apps/core/utils.py

import hashlib
from typing import Dict, Optional


def user_color(username: str) -> str:
    """
    Consistent colour derived from the username
    Used for avatars when there is no picture
    """
    hash_hex = hashlib.md5(username.encode()).hexdigest()
    return f"#{hash_hex[:6]}"


def format_duration(ms: Optional[int]) -> str:
    """
    Formats a duration in milliseconds
    Ex: 5_400_000 -> "1h 30m", 600_000 -> "10m"
    """
    total_minutes = int((ms or 0) // 60_000)
    hours, minutes = divmod(total_minutes, 60)

    if hours > 0:
        return f"{hours}h {minutes}m"
    return f"{minutes}m"


def serialize_user(user) -> Optional[Dict]:
    if user is None:
        return None
    return {
        'id': user.id,
        'name': user.display_name,
        'username': user.username,
        'avatar': user.avatar.url if user.avatar else None,
        'color': user_color(user.username),
    }


def serialize_notification(notification) -> Dict:
    return {
        'id': notification.id,
        'type': notification.type,
        'title': notification.title,
        'message': notification.message,
        'data': notification.data,
        'isRead': notification.is_read,
        'createdAt': notification.created_at.isoformat(),
    }
