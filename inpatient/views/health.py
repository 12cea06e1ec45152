import logging

from django.db import DatabaseError, connections
from django.http import JsonResponse

logger = logging.getLogger(__name__)


def healthz(request):
    """Liveness probe: the service is up and the database answers."""
    try:
        with connections['default'].cursor() as cursor:
            cursor.execute('SELECT 1')
            row = cursor.fetchone()
    except DatabaseError as e:
        logger.error('health check failed: %s', e)
        return JsonResponse({'ok': False, 'service': 'inpatient', 'error': str(e)}, status=503)
    return JsonResponse({'ok': True, 'service': 'inpatient', 'db': bool(row and row[0] == 1)})
