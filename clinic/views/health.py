import logging

from django.core.cache import cache
from django.db import DatabaseError, connections
from django.http import JsonResponse

logger = logging.getLogger(__name__)


def healthz(request):
    """Liveness probe: database round trip plus a cache write/read."""
    checks = {}
    try:
        with connections['default'].cursor() as c:
            c.execute('SELECT 1')
            row = c.fetchone()
        checks['db'] = bool(row and row[0] == 1)
    except DatabaseError as e:
        logger.error("health check: database unavailable: %s", e)
        return JsonResponse({'ok': False, 'db': False, 'error': str(e)}, status=500)
    try:
        cache.set('healthz', 1, 5)
        checks['cache'] = cache.get('healthz') == 1
    except Exception as e:
        logger.warning("health check: cache unavailable: %s", e)
        checks['cache'] = False
    return JsonResponse({'ok': all(checks.values()), **checks}, status=200 if checks['db'] else 500)
