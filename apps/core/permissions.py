# apps/core/permissions.py

from functools import wraps

from .api import ApiErrors
from .models import Board, BoardMember, PermissionLevel, has_permission


class FalloPermissions:
    """
    Permission checks of Fallo

    Two layers: the user's global permission level (VIEWER, MEMBER, ADMIN,
    SUPER_ADMIN) and the per-board BoardMember permission.
    """

    @staticmethod
    def is_admin(user):
        """Global admin or super admin"""
        return user.is_authenticated and has_permission(user.permission, PermissionLevel.ADMIN)

    @staticmethod
    def get_board_membership(user, board):
        """
        Returns the effective permission of the user on the board, or None

        Super admins are treated as board admins-plus even without an
        explicit membership row.
        """
        if not user.is_authenticated:
            return None

        membership = BoardMember.objects.filter(board=board, user=user).only('permission').first()
        if membership:
            return membership.permission

        if user.permission == PermissionLevel.SUPER_ADMIN:
            return PermissionLevel.SUPER_ADMIN

        return None

    @staticmethod
    def is_board_member(user, board):
        return FalloPermissions.get_board_membership(user, board) is not None

    @staticmethod
    def can_edit_board(user, board):
        """Members and above may move and edit cards; viewers may not"""
        permission = FalloPermissions.get_board_membership(user, board)
        return permission is not None and has_permission(permission, PermissionLevel.MEMBER)


# Decorators for JSON API views

def api_login_required(view_func):
    """Like login_required, but answers 401 JSON instead of redirecting"""

    @wraps(view_func)
    def wrapped_view(request, *args, **kwargs):
        if not request.user.is_authenticated:
            return ApiErrors.unauthorized()
        return view_func(request, *args, **kwargs)

    return wrapped_view


def requires_board_member(view_func):
    """
    Checks authentication and board membership
    Expects the view to receive board_id; injects request.board and
    request.board_permission
    """

    @wraps(view_func)
    def wrapped_view(request, board_id, *args, **kwargs):
        if not request.user.is_authenticated:
            return ApiErrors.unauthorized()

        try:
            board = Board.objects.get(id=board_id)
        except Board.DoesNotExist:
            return ApiErrors.not_found('Board')

        permission = FalloPermissions.get_board_membership(request.user, board)
        if permission is None:
            return ApiErrors.forbidden('Not a member of this board')

        request.board = board
        request.board_permission = permission
        return view_func(request, board_id, *args, **kwargs)

    return wrapped_view


def requires_admin(view_func):
    """Requires a global ADMIN or SUPER_ADMIN; answers 403 JSON otherwise"""

    @wraps(view_func)
    def wrapped_view(request, *args, **kwargs):
        if not request.user.is_authenticated:
            return ApiErrors.unauthorized()
        if not FalloPermissions.is_admin(request.user):
            return ApiErrors.admin_required()
        return view_func(request, *args, **kwargs)

    return wrapped_view
