"""Correlation context for API requests and dispatch ticks.

Every entry logged inside ``bind_request_context`` carries the same
``correlation_id``, so a notification can be followed from the HTTP call
that created it to the tick that delivered it.
"""

import uuid
from contextlib import contextmanager
from typing import Any, Iterator, Optional

import structlog


@contextmanager
def bind_request_context(
    correlation_id: Optional[str] = None,
    user_id: Optional[str] = None,
    request_path: Optional[str] = None,
    request_method: Optional[str] = None,
    **extra_context: Any,
) -> Iterator[None]:
    """Bind correlation fields to structlog's context vars for the block.

    A fresh UUID is used when ``correlation_id`` is not given. ``None``
    fields are left out. On exit the previous bindings are restored, so a
    nested block does not erase the outer correlation id.

    Example:
        with bind_request_context(correlation_id="tick-42", job="tick"):
            logger.info("dispatch_tick_started")
    """
    optional = {
        "user_id": user_id,
        "request_path": request_path,
        "request_method": request_method,
    }
    context = {"correlation_id": correlation_id or str(uuid.uuid4())}
    context.update({k: v for k, v in optional.items() if v is not None})
    context.update(extra_context)

    with structlog.contextvars.bound_contextvars(**context):
        yield


def get_correlation_id() -> Optional[str]:
    return structlog.contextvars.get_contextvars().get("correlation_id")


def clear_request_context() -> None:
    """Drop every bound field, e.g. between worker thread iterations."""
    structlog.contextvars.clear_contextvars()
