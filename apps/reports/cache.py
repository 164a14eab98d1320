"""
Short-TTL response cache for analytics endpoints.

Responses are cached per user and per full URL (query string included)
on Django's cache framework. Nothing invalidates an entry early: a
report may lag behind writes by up to the TTL.
"""

import logging
from functools import wraps

from django.conf import settings
from django.core.cache import cache
from django.http import HttpResponse

logger = logging.getLogger(__name__)

KEY_PREFIX = 'analytics'


def cache_key(request):
    return f'{KEY_PREFIX}:{request.user.pk}:{request.get_full_path()}'


def cached_response(ttl_setting):
    """
    Cache successful GET responses for ``settings.<ttl_setting>`` seconds.

    Must sit below api_view so the user is already authenticated.
    """
    def decorator(view_func):
        @wraps(view_func)
        def wrapped(request, *args, **kwargs):
            if request.method != 'GET':
                return view_func(request, *args, **kwargs)

            key = cache_key(request)
            hit = cache.get(key)
            if hit is not None:
                logger.debug('Analytics cache hit: %s', key)
                content, content_type = hit
                return HttpResponse(content, content_type=content_type)

            response = view_func(request, *args, **kwargs)
            if 200 <= response.status_code < 300:
                cache.set(
                    key,
                    (response.content, response['Content-Type']),
                    getattr(settings, ttl_setting),
                )
            return response

        return wrapped

    return decorator
