"""
JWT issuing and validation for LegisEye access tokens.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any, Tuple

import jwt
from django.conf import settings

logger = logging.getLogger(__name__)


class JWTValidationError(Exception):
    """Raised when JWT validation fails."""
    pass


@dataclass
class TokenClaims:
    """Validated token claims."""
    sub: str  # Subject (user ID)
    email: str
    name: str
    role: str
    persona: str
    raw_claims: Dict[str, Any]


def issue_token(user, now: Optional[datetime] = None) -> Tuple[str, int]:
    """
    Sign an access token for a user.

    Returns:
        (token, expires_in_seconds)
    """
    now = now or datetime.now(timezone.utc)
    ttl = settings.JWT_ACCESS_TOKEN_TTL
    payload = {
        'sub': str(user.id),
        'email': user.email,
        'name': user.full_name,
        'role': user.role,
        'persona': user.persona,
        'iss': settings.JWT_ISSUER,
        'iat': int(now.timestamp()),
        'exp': int((now + timedelta(seconds=ttl)).timestamp()),
    }
    token = jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)
    return token, ttl


def validate_token(token: str) -> TokenClaims:
    """
    Validate a LegisEye access token.

    Verifies signature, expiry and issuer, and requires a subject.

    Raises:
        JWTValidationError: If validation fails
    """
    try:
        claims = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
            issuer=settings.JWT_ISSUER,
            options={
                'verify_signature': True,
                'verify_exp': True,
                'verify_iss': True,
                'require': ['sub', 'exp'],
            }
        )
    except jwt.ExpiredSignatureError:
        raise JWTValidationError("Token has expired")
    except jwt.InvalidIssuerError:
        raise JWTValidationError("Invalid token issuer")
    except jwt.InvalidTokenError as e:
        raise JWTValidationError(f"Invalid token: {e}")

    return TokenClaims(
        sub=claims['sub'],
        email=claims.get('email', ''),
        name=claims.get('name', ''),
        role=claims.get('role', 'USER'),
        persona=claims.get('persona', 'GENERAL'),
        raw_claims=claims
    )
