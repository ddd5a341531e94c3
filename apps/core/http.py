"""
Small request/response helpers shared by the JSON API views.
"""
import json
import logging
from datetime import datetime
from typing import Any, Optional

from django.http import JsonResponse
from django.utils.dateparse import parse_datetime

logger = logging.getLogger(__name__)


def read_json(request) -> Optional[dict]:
    """
    Parse the request body as a JSON object.

    An empty body is treated as {}. Returns None when the body is not
    valid JSON or not an object.
    """
    if not request.body:
        return {}
    try:
        body = json.loads(request.body)
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None
    if not isinstance(body, dict):
        return None
    return body


def error_response(message: str, status: int = 400, code: Optional[str] = None) -> JsonResponse:
    data = {'error': message}
    if code:
        data['code'] = code
    return JsonResponse(data, status=status)


def invalid_json() -> JsonResponse:
    return error_response('Invalid JSON', 400)


def isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def parse_bool(value: Any, default: bool = False) -> bool:
    """Interpret JSON or query-string values as booleans."""
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    return str(value).lower() in ('true', '1', 'yes')


def parse_optional_datetime(value: Any) -> Optional[datetime]:
    """
    Parse an ISO-8601 timestamp from a request body.

    Raises:
        ValueError: If the value is present but not a valid timestamp
    """
    if value in (None, ''):
        return None
    parsed = parse_datetime(str(value))
    if parsed is None:
        raise ValueError(f"Invalid datetime: {value}")
    return parsed


def validation_error(message: str) -> JsonResponse:
    return error_response(message, 400, 'VALIDATION_ERROR')


def text_field(body: dict, key: str, default: str = '', strip: bool = True) -> Optional[str]:
    """
    A string value from a JSON body.

    Missing or null values give `default`. Returns None when the value has
    any other non-string type, so callers can answer 400.
    """
    value = body.get(key)
    if value is None:
        return default
    if not isinstance(value, str):
        return None
    return value.strip() if strip else value
