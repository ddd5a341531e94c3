"""
Google Sign-In ID token verification.

Google signs ID tokens with rotating RS256 keys published as a JWKS.
The keys are cached for GOOGLE_JWKS_CACHE_TTL seconds and refetched
early when a token names a key id we have not seen.
"""
import logging
import threading
import time
from dataclasses import dataclass
from typing import Dict, Optional

import jwt
import requests
from django.conf import settings
from jwt import PyJWK

logger = logging.getLogger(__name__)

GOOGLE_ISSUERS = ('accounts.google.com', 'https://accounts.google.com')

# Minimum seconds between refetches triggered by an unknown kid
REFETCH_DEBOUNCE = 5


class GoogleTokenError(Exception):
    """The ID token could not be verified."""
    pass


@dataclass
class GoogleIdentity:
    subject: str
    email: str
    given_name: str
    family_name: str
    picture: Optional[str] = None


class GoogleKeyCache:

    def __init__(self, jwks_url: str, ttl: int):
        self.jwks_url = jwks_url
        self.ttl = ttl
        self._keys: Dict[str, dict] = {}
        self._fetched_at = 0.0
        self._lock = threading.Lock()

    def _refresh(self) -> None:
        try:
            response = requests.get(self.jwks_url, timeout=10)
            response.raise_for_status()
            keys = response.json().get('keys', [])
        except (requests.RequestException, ValueError) as e:
            raise GoogleTokenError(f"Could not load Google signing keys: {e}")

        self._keys = {key['kid']: key for key in keys if key.get('kid')}
        self._fetched_at = time.time()
        logger.info(f"Loaded {len(self._keys)} Google signing keys")

    def get(self, kid: str) -> Optional[dict]:
        with self._lock:
            age = time.time() - self._fetched_at
            if age > self.ttl or (kid not in self._keys and age > REFETCH_DEBOUNCE):
                self._refresh()
            return self._keys.get(kid)


_key_cache: Optional[GoogleKeyCache] = None


def get_key_cache() -> GoogleKeyCache:
    global _key_cache
    if _key_cache is None:
        _key_cache = GoogleKeyCache(settings.GOOGLE_JWKS_URL, settings.GOOGLE_JWKS_CACHE_TTL)
    return _key_cache


def verify_google_id_token(token: str) -> GoogleIdentity:
    """
    Verify a Google ID token issued to our client id.

    Checks the signature, expiry, audience and issuer, and requires a
    verified email address.

    Raises:
        GoogleTokenError: If any check fails
    """
    try:
        kid = jwt.get_unverified_header(token).get('kid')
    except jwt.PyJWTError as e:
        raise GoogleTokenError(f"Malformed token: {e}")
    if not kid:
        raise GoogleTokenError("Token header has no key id")

    jwk = get_key_cache().get(kid)
    if jwk is None:
        raise GoogleTokenError(f"Unknown signing key {kid}")

    try:
        claims = jwt.decode(
            token,
            PyJWK.from_dict(jwk).key,
            algorithms=['RS256'],
            audience=settings.GOOGLE_CLIENT_ID,
            options={'require': ['exp', 'iat', 'iss', 'sub', 'aud']},
        )
    except jwt.PyJWTError as e:
        raise GoogleTokenError(str(e))

    if claims['iss'] not in GOOGLE_ISSUERS:
        raise GoogleTokenError(f"Unexpected issuer {claims['iss']}")

    email = str(claims.get('email') or '').strip().lower()
    if not email or claims.get('email_verified') not in (True, 'true'):
        raise GoogleTokenError("Google account has no verified email")

    return GoogleIdentity(
        subject=claims['sub'],
        email=email,
        given_name=claims.get('given_name') or '',
        family_name=claims.get('family_name') or '',
        picture=claims.get('picture'),
    )
