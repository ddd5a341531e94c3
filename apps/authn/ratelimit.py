"""
Per-endpoint rate limits kept in Redis.

Uploads and login attempts are counted in fixed windows; chat and
translation draw from token buckets so short bursts are allowed. Each
check runs as a single Lua script, so concurrent requests cannot race.
If Redis is unreachable requests are let through.
"""
import os
import time
import logging
import functools
from dataclasses import dataclass
from typing import Callable, Dict, Optional

import redis
from django.conf import settings

from apps.core.http import error_response

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FixedWindow:
    name: str
    limit: int
    window_seconds: int


@dataclass(frozen=True)
class TokenBucket:
    name: str
    capacity: int
    refill_per_second: float


UPLOADS = FixedWindow('upload', limit=10, window_seconds=60)
LOGINS = FixedWindow('login', limit=20, window_seconds=300)
CHAT = TokenBucket('chat', capacity=5, refill_per_second=0.2)
TRANSLATIONS = TokenBucket('translate', capacity=30, refill_per_second=1.0)

DEFAULT_RETRY_AFTER = 60


@dataclass
class RateLimitResult:
    allowed: bool
    limit: int
    remaining: int
    reset_at: int  # unix seconds, 0 for token buckets
    retry_after: Optional[int] = None


# KEYS[1] counter prefix; ARGV limit, window, now.
# Returns {allowed, remaining, reset_at}
WINDOW_SCRIPT = """
local window_start = ARGV[3] - (ARGV[3] % ARGV[2])
local counter = KEYS[1] .. ":" .. window_start
local used = tonumber(redis.call('GET', counter) or '0')
local reset_at = window_start + ARGV[2]
if used >= tonumber(ARGV[1]) then
    return {0, 0, reset_at}
end
redis.call('INCR', counter)
redis.call('EXPIRE', counter, ARGV[2] + 1)
return {1, ARGV[1] - used - 1, reset_at}
"""

# KEYS[1] bucket hash; ARGV capacity, refill per second, now.
# Returns {allowed, tokens left, seconds until the next token}
BUCKET_SCRIPT = """
local capacity = tonumber(ARGV[1])
local rate = tonumber(ARGV[2])
local now = tonumber(ARGV[3])
local state = redis.call('HMGET', KEYS[1], 'tokens', 'updated')
local tokens = tonumber(state[1]) or capacity
local updated = tonumber(state[2]) or now
tokens = math.min(capacity, tokens + (now - updated) * rate)
if tokens < 1 then
    return {0, 0, math.ceil((1 - tokens) / rate)}
end
tokens = tokens - 1
redis.call('HSET', KEYS[1], 'tokens', tokens, 'updated', now)
redis.call('EXPIRE', KEYS[1], math.ceil(capacity / rate) + 60)
return {1, math.floor(tokens), 0}
"""


class RateLimiter:
    """Runs the limit scripts against one Redis connection."""

    def __init__(self, client: Optional[redis.Redis] = None):
        self._client = client
        self._scripts: Dict[str, object] = {}

    @property
    def client(self) -> redis.Redis:
        if self._client is None:
            self._client = redis.from_url(settings.REDIS_URL, decode_responses=True)
        return self._client

    def _run(self, source: str, key: str, *args):
        if source not in self._scripts:
            self._scripts[source] = self.client.register_script(source)
        return self._scripts[source](keys=[key], args=list(args))

    def hit_window(self, policy: FixedWindow, key: str) -> RateLimitResult:
        allowed, remaining, reset_at = self._run(
            WINDOW_SCRIPT, f"ratelimit:{policy.name}:{key}",
            policy.limit, policy.window_seconds, int(time.time()),
        )
        now = int(time.time())
        return RateLimitResult(
            allowed=bool(allowed),
            limit=policy.limit,
            remaining=int(remaining),
            reset_at=int(reset_at),
            retry_after=None if allowed else max(1, int(reset_at) - now),
        )

    def take_token(self, policy: TokenBucket, key: str) -> RateLimitResult:
        allowed, remaining, wait = self._run(
            BUCKET_SCRIPT, f"ratelimit:{policy.name}:{key}",
            policy.capacity, policy.refill_per_second, time.time(),
        )
        return RateLimitResult(
            allowed=bool(allowed),
            limit=policy.capacity,
            remaining=int(remaining),
            reset_at=0,
            retry_after=int(wait) or None,
        )


_limiter: Optional[RateLimiter] = None


def get_limiter() -> RateLimiter:
    global _limiter
    if _limiter is None:
        _limiter = RateLimiter()
    return _limiter


def is_rate_limiting_disabled() -> bool:
    return os.getenv('DISABLE_RATE_LIMITING', '').lower() in ('true', '1', 'yes')


def _unlimited() -> RateLimitResult:
    return RateLimitResult(allowed=True, limit=999, remaining=999, reset_at=0)


def _check_fixed_window(policy: FixedWindow, key: str) -> RateLimitResult:
    if is_rate_limiting_disabled():
        return _unlimited()
    try:
        return get_limiter().hit_window(policy, key)
    except redis.RedisError as e:
        logger.error(f"Rate limit check for {policy.name} skipped, Redis error: {e}")
        return RateLimitResult(allowed=True, limit=policy.limit, remaining=policy.limit, reset_at=0)


def _check_token_bucket(policy: TokenBucket, key: str) -> RateLimitResult:
    if is_rate_limiting_disabled():
        return _unlimited()
    try:
        return get_limiter().take_token(policy, key)
    except redis.RedisError as e:
        logger.error(f"Rate limit check for {policy.name} skipped, Redis error: {e}")
        return RateLimitResult(allowed=True, limit=policy.capacity, remaining=policy.capacity, reset_at=0)


def check_upload_rate_limit(user_id: str) -> RateLimitResult:
    return _check_fixed_window(UPLOADS, user_id)


def check_login_rate_limit(client_ip: str) -> RateLimitResult:
    return _check_fixed_window(LOGINS, client_ip)


def check_chat_rate_limit(user_id: str) -> RateLimitResult:
    return _check_token_bucket(CHAT, user_id)


def check_translate_rate_limit(user_id: str) -> RateLimitResult:
    return _check_token_bucket(TRANSLATIONS, user_id)


def set_limit_headers(response, result: RateLimitResult):
    response['X-RateLimit-Limit'] = str(result.limit)
    response['X-RateLimit-Remaining'] = str(result.remaining)
    if result.reset_at:
        response['X-RateLimit-Reset'] = str(result.reset_at)
    return response


def user_key(request) -> Optional[str]:
    """Key for endpoints behind auth_required, which sets user_claims."""
    return getattr(getattr(request, 'user_claims', None), 'sub', None)


def ip_key(request) -> Optional[str]:
    from .audit import get_client_ip
    return get_client_ip(request)


def rate_limited(check: Callable[[str], RateLimitResult], key_func: Callable = user_key):
    """
    Reject requests over the limit with 429 and a Retry-After header.

    Place it below auth_required so the caller's id is known. Requests
    without a key are passed through.
    """
    def decorator(view_func):
        @functools.wraps(view_func)
        def wrapper(request, *args, **kwargs):
            key = key_func(request)
            if not key:
                return view_func(request, *args, **kwargs)

            result = check(key)
            if not result.allowed:
                from .audit import audit_ratelimit_exceeded
                retry_after = result.retry_after or DEFAULT_RETRY_AFTER
                logger.warning(f"Rate limit exceeded for {key} on {request.path}")
                audit_ratelimit_exceeded(request, request.path, result.limit)
                response = error_response('Rate limit exceeded', 429, 'RATE_LIMITED')
                response['Retry-After'] = str(retry_after)
                return set_limit_headers(response, result)

            return set_limit_headers(view_func(request, *args, **kwargs), result)

        return wrapper
    return decorator
