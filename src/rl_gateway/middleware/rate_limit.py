"""Rate limiting middleware: fixed window on hold placement.

Rule: RATE_LIMIT_HOLDS_PER_MINUTE POST /riplimit/holds per user per minute.

Redis logic (INCR + EXPIRE, key "ratelimit:{user_id}:holds:{window}"):
    count = await redis.incr(key)
    if count == 1:
        await redis.expire(key, 60)
    if count > limit:
        -> 429 RateLimitError (9001) with Retry-After

Requests without a valid token pass through untouched; the route's auth
dependency answers them with 401. If Redis is unreachable the request is
allowed and a warning is logged: rate limiting never blocks the ledger.
"""

import logging
import time

import redis.asyncio as aioredis
from redis.exceptions import RedisError
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from config.settings import settings
from src.rl_common.errors import RateLimitError
from src.rl_common.redis_client import get_redis
from src.rl_common.response import error_response
from src.rl_gateway.auth.dependencies import principal_from_header

logger = logging.getLogger(__name__)

WINDOW_SECONDS = 60
_LIMITED_PATH_SUFFIX = "/riplimit/holds"


async def hit(redis: aioredis.Redis, key: str, limit: int, window: int = WINDOW_SECONDS) -> int:
    """Count one request in the current window; return seconds to wait, 0 if allowed."""
    count = await redis.incr(key)
    if count == 1:
        await redis.expire(key, window)
    if count > limit:
        ttl = await redis.ttl(key)
        return ttl if ttl and ttl > 0 else window
    return 0


class RateLimitMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if not (
            settings.RATE_LIMIT_ENABLED
            and request.method == "POST"
            and request.url.path.endswith(_LIMITED_PATH_SUFFIX)
        ):
            return await call_next(request)

        principal = principal_from_header(request.headers.get("authorization", ""))
        if principal is None:
            return await call_next(request)
        user_id = principal.user_id

        window = int(time.time()) // WINDOW_SECONDS
        key = f"ratelimit:{user_id}:holds:{window}"
        try:
            redis = await get_redis()
            retry_after = await hit(redis, key, settings.RATE_LIMIT_HOLDS_PER_MINUTE)
        except RedisError:
            logger.warning("rate limit check skipped for user=%s: redis unavailable", user_id)
            return await call_next(request)

        if retry_after:
            logger.info("rate limited user=%s on %s", user_id, request.url.path)
            exc = RateLimitError()
            return JSONResponse(
                status_code=exc.http_status,
                content=error_response(exc.code, exc.message).model_dump(),
                headers={"Retry-After": str(retry_after)},
            )
        return await call_next(request)
