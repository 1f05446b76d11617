# apps/core/api.py

"""
JSON envelope helpers for the API views

Every response has the shape {"success": bool, "data": ...} or
{"success": false, "error": {"code": ..., "message": ...}}.
"""

import json

from django.http import JsonResponse

from .exceptions import FalloError, ValidationError


def api_success(data=None, status=200):
    """Standard success response"""
    return JsonResponse({'success': True, 'data': data}, status=status)


def api_error(code, message, status):
    """Standard error response"""
    return JsonResponse(
        {'success': False, 'error': {'code': code, 'message': message}},
        status=status,
    )


def error_response(exc: FalloError):
    """Converts a FalloError into its error response"""
    return api_error(exc.code, exc.message, exc.status)


class ApiErrors:
    """Common error responses"""

    @staticmethod
    def unauthorized():
        return api_error('UNAUTHORIZED', 'Not authenticated', 401)

    @staticmethod
    def forbidden(message='Access denied'):
        return api_error('FORBIDDEN', message, 403)

    @staticmethod
    def admin_required():
        return api_error('FORBIDDEN', 'Admin access required', 403)

    @staticmethod
    def not_found(resource='Resource'):
        return api_error('NOT_FOUND', f'{resource} not found', 404)

    @staticmethod
    def validation(message):
        return api_error('VALIDATION_ERROR', message, 400)

    @staticmethod
    def internal(message='Internal server error'):
        return api_error('INTERNAL_ERROR', message, 500)


def parse_json_body(request):
    """Decodes the request body, raising ValidationError on bad JSON"""
    if not request.body:
        return {}
    try:
        data = json.loads(request.body)
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise ValidationError('Request body must be valid JSON')
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object')
    return data


def form_error_message(form):
    """Flattens form errors into one readable message"""
    parts = []
    for field, errors in form.errors.items():
        label = field if field != '__all__' else 'request'
        parts.append(f"{label}: {' '.join(errors)}")
    return '; '.join(parts) or 'Invalid request'
