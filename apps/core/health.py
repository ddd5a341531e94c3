"""
Health check endpoints for Kubernetes/Docker liveness and readiness checks.

- /healthz - Liveness (is process running?)
- /readyz - Readiness (can we serve traffic?)
"""
import logging
from datetime import datetime, timezone

import redis
import httpx
from django.conf import settings
from django.db import connection
from django.http import JsonResponse
from django.views.decorators.http import require_GET
from django.views.decorators.csrf import csrf_exempt

logger = logging.getLogger(__name__)


def get_timestamp() -> str:
    """Get current UTC timestamp in ISO format."""
    return datetime.now(timezone.utc).isoformat()


@csrf_exempt
@require_GET
def healthz(request):
    """
    Liveness endpoint.

    Returns 200 if the Django process is running.
    Does NOT check dependencies - that's for readiness.
    """
    return JsonResponse({
        'status': 'healthy',
        'timestamp': get_timestamp()
    })


def check_database() -> tuple[str, bool]:
    """Check database connectivity."""
    try:
        with connection.cursor() as cursor:
            cursor.execute('SELECT 1')
            cursor.fetchone()
        return 'ok', True
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return f'error: {str(e)[:50]}', False


def check_redis() -> tuple[str, bool]:
    """Check Redis connectivity."""
    try:
        client = redis.from_url(settings.REDIS_URL, socket_timeout=3)
        client.ping()
        return 'ok', True
    except Exception as e:
        logger.error(f"Redis health check failed: {e}")
        return f'error: {str(e)[:50]}', False


def check_gemini() -> str:
    """
    Check that the Gemini API answers (never blocks readiness).

    Existing documents and analyses can still be served without the LLM.
    """
    if not settings.GEMINI_API_KEY:
        return 'not_configured'
    try:
        with httpx.Client(timeout=5.0) as client:
            response = client.get(
                f"{settings.GEMINI_BASE_URL}/models/{settings.GEMINI_MODEL}",
                params={'key': settings.GEMINI_API_KEY}
            )
        if response.status_code == 200:
            return 'ok'
        return f'degraded: status {response.status_code}'
    except Exception as e:
        logger.warning(f"Gemini health check failed: {e}")
        return f'degraded: {str(e)[:30]}'


def check_pinecone() -> str:
    """Check the vector index (never blocks readiness)."""
    from apps.rag.vectorstore import get_vector_store

    if not settings.PINECONE_API_KEY:
        return 'not_configured'
    try:
        get_vector_store().describe()
        return 'ok'
    except Exception as e:
        logger.warning(f"Pinecone health check failed: {e}")
        return f'degraded: {str(e)[:30]}'


@csrf_exempt
@require_GET
def readyz(request):
    """
    Readiness endpoint.

    Returns 200 only if all critical dependencies are reachable.
    """
    checks = {}
    all_ok = True

    # Database (critical)
    status, ok = check_database()
    checks['database'] = status
    if not ok:
        all_ok = False

    # Redis (critical for rate limiting and channels)
    status, ok = check_redis()
    checks['redis'] = status
    if not ok:
        all_ok = False

    # External AI services (optional)
    checks['gemini'] = check_gemini()
    checks['pinecone'] = check_pinecone()

    response_data = {
        'status': 'ready' if all_ok else 'not_ready',
        'timestamp': get_timestamp(),
        'checks': checks
    }

    return JsonResponse(response_data, status=200 if all_ok else 503)
