"""
Authenticates WebSocket connections from the ?token=<jwt> query parameter.
"""
import logging
from typing import Optional
from urllib.parse import parse_qs

from channels.db import database_sync_to_async
from channels.middleware import BaseMiddleware

from apps.authn.jwt_validator import validate_token, JWTValidationError
from apps.authn.middleware import load_user

logger = logging.getLogger(__name__)


@database_sync_to_async
def user_for_token(token: str) -> Optional[dict]:
    """The scope user for a valid token of an existing account, else None."""
    try:
        claims = validate_token(token)
    except JWTValidationError as e:
        logger.warning(f"WebSocket token rejected: {e}")
        return None

    user = load_user(claims.sub)
    if user is None:
        logger.warning(f"WebSocket token for deleted user {claims.sub}")
        return None
    return {'id': str(user.id), 'email': user.email, 'name': user.full_name}


class JWTAuthMiddleware(BaseMiddleware):
    """Sets scope['user'] to a dict (id, email, name) or None."""

    async def __call__(self, scope, receive, send):
        if scope['type'] == 'websocket':
            params = parse_qs(scope.get('query_string', b'').decode())
            token = (params.get('token') or [''])[0]
            scope = dict(scope, user=await user_for_token(token) if token else None)
        return await super().__call__(scope, receive, send)
