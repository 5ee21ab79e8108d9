"""Liveness probe: database round trip plus a cache write/read."""
import logging

from django.core.cache import cache
from django.db import DatabaseError, connections
from django.http import JsonResponse

logger = logging.getLogger(__name__)


def healthz(request):
    checks = {}
    try:
        with connections['default'].cursor() as cursor:
            cursor.execute('SELECT 1')
            checks['db'] = cursor.fetchone() == (1,)
    except DatabaseError as e:
        logger.error('health check: database unavailable: %s', e)
        return JsonResponse({'ok': False, 'error': str(e)}, status=503)

    cache.set('healthz', 1, timeout=5)
    checks['cache'] = cache.get('healthz') == 1
    return JsonResponse({'ok': all(checks.values()), **checks})
