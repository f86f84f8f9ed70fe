"""Per-caller request throttling for the HTTP API.

Calling services identify themselves with ``X-Caller-ID``; anonymous calls
are throttled by client address.
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from carenotify.logging import get_module_logger

logger = get_module_logger()

CALLER_HEADER = "X-Caller-ID"


def caller_key(request: Request) -> str:
    caller = request.headers.get(CALLER_HEADER)
    if caller:
        return f"caller:{caller}"
    return get_remote_address(request)


limiter = Limiter(key_func=caller_key)


async def rate_limit_handler(request: Request, exc: Exception):
    """Answer throttled calls with 429 instead of slowapi's default body."""
    if isinstance(exc, RateLimitExceeded):
        logger.warning("api_rate_limit_exceeded", path=str(request.url.path))
        return JSONResponse(
            status_code=429,
            content={"message": "Rate limit exceeded"},
        )


def setup_rate_limiter(app: FastAPI) -> None:
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_handler)


def get_limiter() -> Limiter:
    return limiter
