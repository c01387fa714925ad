"""
Rate Limiting for Corpus Admin API
==================================
Implements rate limiting using slowapi.

- Default: RATE_LIMIT_PER_MINUTE requests/minute per client
- /auth/login: LOGIN_RATE_LIMIT (brute force protection, 5/minute by default)

Counters live in RATE_LIMIT_STORAGE_URI ("memory://" for a single process,
redis://... when running several workers).
"""

from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from fastapi import Request
from fastapi.responses import JSONResponse

from corpus_admin.core.config import settings
from corpus_admin.core.logging_config import logger
from corpus_admin.services.security_tracker import get_client_ip


def get_user_identifier(request: Request) -> str:
    """
    Get rate limit key.

    Priority:
    1. Authenticated user ID (set on request.state by the auth dependency)
    2. Client IP address (proxy headers honoured)
    """
    user_id = getattr(request.state, 'user_id', None)
    if user_id:
        return f"user:{user_id}"

    return f"ip:{get_client_ip(request)}"


limiter = Limiter(
    key_func=get_user_identifier,
    default_limits=[f"{settings.RATE_LIMIT_PER_MINUTE}/minute"],
    storage_uri=settings.RATE_LIMIT_STORAGE_URI,
    strategy="fixed-window",
    enabled=settings.RATE_LIMIT_ENABLED,
)


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded):
    """Return a JSON 429 with a Retry-After hint"""
    logger.warning(
        f"[RateLimit] Exceeded for {get_user_identifier(request)}: {exc.detail}",
        extra={"event_type": "rate_limit_exceeded", "http_path": request.url.path}
    )

    return JSONResponse(
        status_code=429,
        content={
            "success": False,
            "error": {
                "code": "RATE_LIMIT_EXCEEDED",
                "message": "Too many requests. Please slow down.",
                "details": {"limit": str(exc.detail)},
            },
        },
        headers={"Retry-After": "60"},
    )


def auth_rate_limit():
    """Rate limit for credential endpoints"""
    return limiter.limit(settings.LOGIN_RATE_LIMIT, key_func=get_user_identifier)
