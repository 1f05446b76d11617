# apps/core/exceptions.py

"""
Error taxonomy shared by services and API views

Each error carries the API error code and the HTTP status it maps to,
so views only need `error_response(exc)` from apps.core.api.
"""


class FalloError(Exception):
    """Base class for errors reported to API clients"""

    code = 'INTERNAL_ERROR'
    status = 500
    default_message = 'Internal server error'

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(FalloError):
    code = 'VALIDATION_ERROR'
    status = 400
    default_message = 'Invalid request'


class UnauthorizedError(FalloError):
    code = 'UNAUTHORIZED'
    status = 401
    default_message = 'Not authenticated'


class ForbiddenError(FalloError):
    code = 'FORBIDDEN'
    status = 403
    default_message = 'Access denied'


class NotFoundError(FalloError):
    code = 'NOT_FOUND'
    status = 404
    default_message = 'Resource not found'

    @classmethod
    def for_resource(cls, resource):
        return cls(f'{resource} not found')


class InternalError(FalloError):
    pass
