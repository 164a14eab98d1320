"""
JSON helpers shared by the API views.

- json_body: parse a request body into a dict
- api_response / api_error: {"data": ...} and {"error": ..., "message": ...} envelopes
- form_error_response: 400 envelope built from a bound form
- api_view: method/auth guard that maps service exceptions to status codes
- admin_required: admin-only guard for api_view endpoints
- paginate: limit/offset slicing of a queryset
"""

import json
import logging
from functools import wraps

from django.conf import settings
from django.core.exceptions import (
    BadRequest, ObjectDoesNotExist, PermissionDenied, ValidationError,
)
from django.core.serializers.json import DjangoJSONEncoder
from django.http import Http404, JsonResponse

logger = logging.getLogger(__name__)


def json_body(request):
    """Decode the JSON request body; an empty body is an empty dict."""
    if not request.body:
        return {}
    try:
        data = json.loads(request.body)
    except ValueError as exc:
        raise BadRequest('Request body must be valid JSON.') from exc
    if not isinstance(data, dict):
        raise BadRequest('Request body must be a JSON object.')
    return data


def api_response(data=None, status=200, message=None, **extra):
    payload = {}
    if data is not None:
        payload['data'] = data
    if message:
        payload['message'] = message
    payload.update(extra)
    return JsonResponse(payload, status=status, encoder=DjangoJSONEncoder)


def api_error(error, message, status, details=None):
    payload = {'error': error, 'message': message}
    if details:
        payload['details'] = details
    return JsonResponse(payload, status=status, encoder=DjangoJSONEncoder)


def form_error_response(form):
    """400 response listing a bound form's errors."""
    errors = {field: [str(e) for e in errs] for field, errs in form.errors.items()}
    first = next(iter(errors.values()), ['Invalid data.'])[0]
    return api_error('Validation error', first, 400, details=errors)


def _validation_message(exc):
    return ' '.join(exc.messages) if exc.messages else 'Invalid data.'


def api_view(methods):
    """
    Guard an API view.

    - 401 for anonymous users
    - 405 for methods not in ``methods``
    - PermissionDenied -> 403, ValidationError/BadRequest -> 400,
      Http404/ObjectDoesNotExist -> 404

    Anything else propagates to Django's 500 handling.
    """
    allowed = [m.upper() for m in methods]

    def decorator(view_func):
        @wraps(view_func)
        def wrapped(request, *args, **kwargs):
            if not request.user.is_authenticated:
                return api_error('Unauthorized', 'Authentication required.', 401)
            if request.method not in allowed:
                response = api_error(
                    'Method not allowed', f'{request.method} is not allowed here.', 405,
                )
                response['Allow'] = ', '.join(allowed)
                return response

            try:
                return view_func(request, *args, **kwargs)
            except PermissionDenied as exc:
                logger.warning(
                    'Permission denied for %s on %s: %s', request.user, request.path, exc,
                )
                return api_error('Forbidden', str(exc) or 'Permission denied.', 403)
            except ValidationError as exc:
                return api_error('Validation error', _validation_message(exc), 400)
            except BadRequest as exc:
                return api_error('Bad request', str(exc), 400)
            except (Http404, ObjectDoesNotExist) as exc:
                return api_error('Not found', str(exc) or 'Not found.', 404)

        return wrapped

    return decorator


def admin_required(view_func):
    """Restrict an api_view endpoint to admins."""
    @wraps(view_func)
    def wrapped(request, *args, **kwargs):
        if not request.user.is_admin():
            raise PermissionDenied('Admin access required.')
        return view_func(request, *args, **kwargs)
    return wrapped


def _int_param(request, name, default):
    raw = request.GET.get(name)
    if raw in (None, ''):
        return default
    try:
        value = int(raw)
    except ValueError:
        raise BadRequest(f'"{name}" must be an integer.')
    if value < 0:
        raise BadRequest(f'"{name}" must not be negative.')
    return value


def paginate(request, queryset):
    """
    Slice ``queryset`` by ``limit``/``offset`` query parameters.

    Returns:
        (items, extra) where extra holds count, limit and offset
    """
    limit = _int_param(request, 'limit', settings.API_DEFAULT_PAGE_SIZE)
    limit = min(max(limit, 1), settings.API_MAX_PAGE_SIZE)
    offset = _int_param(request, 'offset', 0)
    count = queryset.count()
    return list(queryset[offset:offset + limit]), {
        'count': count,
        'limit': limit,
        'offset': offset,
    }
