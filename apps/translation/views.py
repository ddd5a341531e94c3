"""
Text translation endpoint.

POST /api/translate {"text", "target", "source"?} -> {"translatedText"}
"""
import logging

from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods

from apps.authn.middleware import auth_required
from apps.authn.ratelimit import rate_limited, check_translate_rate_limit
from apps.core.http import error_response, invalid_json, read_json
from .client import TranslationError, translate_text

logger = logging.getLogger(__name__)


@csrf_exempt
@require_http_methods(["POST"])
@auth_required
@rate_limited(check_translate_rate_limit)
def translate(request):
    body = read_json(request)
    if body is None:
        return invalid_json()

    text = body.get('text')
    target = body.get('target')
    if not isinstance(text, str) or not text or not isinstance(target, str) or not target:
        return error_response('Missing text or target language')

    source = body.get('source') if isinstance(body.get('source'), str) else None

    try:
        translated = translate_text(text, target, source=source)
    except TranslationError as e:
        logger.error(f"Translation failed for {request.auth_user.id}: {e}")
        return error_response('Failed to translate', 500)

    return JsonResponse({'translatedText': translated})
