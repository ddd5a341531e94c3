"""
Authentication decorators for JWT-protected endpoints.
"""
import logging
from typing import Optional, Callable
from functools import wraps

from django.core.exceptions import ValidationError
from django.http import JsonResponse, HttpRequest

from .jwt_validator import validate_token, JWTValidationError
from .models import User

logger = logging.getLogger(__name__)


def get_token_from_request(request: HttpRequest) -> Optional[str]:
    """
    Extract Bearer token from Authorization header.

    Returns:
        The token string if found, None otherwise
    """
    auth_header = request.META.get('HTTP_AUTHORIZATION', '')

    if not auth_header:
        return None

    parts = auth_header.split()

    if len(parts) != 2 or parts[0].lower() != 'bearer':
        return None

    return parts[1]


def load_user(user_id: str) -> Optional[User]:
    """Fetch the user a token refers to, or None for unknown or malformed ids."""
    try:
        return User.objects.filter(id=user_id).first()
    except (ValueError, ValidationError):
        return None


def resolve_user(request: HttpRequest) -> Optional[User]:
    """
    Authenticate the request without rejecting it.

    Attaches request.user_claims and request.auth_user when a valid token
    for an existing user is present; returns the user or None.
    """
    request.user_claims = None
    request.auth_user = None

    token = get_token_from_request(request)
    if not token:
        return None

    try:
        claims = validate_token(token)
    except JWTValidationError as e:
        logger.debug(f"Ignoring invalid token: {e}")
        return None

    user = load_user(claims.sub)
    if user is None:
        return None

    request.user_claims = claims
    request.auth_user = user
    return user


def auth_required(view_func: Callable) -> Callable:
    """
    Decorator that requires a valid JWT token for an existing user.

    Attaches the claims to request.user_claims and the User row to
    request.auth_user.

    Usage:
        @auth_required
        def my_view(request):
            user = request.auth_user
            ...
    """
    @wraps(view_func)
    def wrapper(request: HttpRequest, *args, **kwargs):
        token = get_token_from_request(request)

        if not token:
            return JsonResponse(
                {'error': 'Unauthorized'},
                status=401
            )

        try:
            claims = validate_token(token)
        except JWTValidationError as e:
            logger.warning(f"JWT validation failed: {e}")
            return JsonResponse(
                {'error': str(e)},
                status=401
            )

        user = load_user(claims.sub)
        if user is None:
            logger.warning(f"Token subject {claims.sub} no longer exists")
            return JsonResponse(
                {'error': 'Unauthorized'},
                status=401
            )

        request.user_claims = claims
        request.auth_user = user
        logger.debug(f"Authenticated user: {claims.email} (sub={claims.sub})")
        return view_func(request, *args, **kwargs)

    return wrapper
