"""Structured logging for carenotify.

Modules create their logger once and log snake_case events with keyword
context:

    from carenotify.logging import get_module_logger

    logger = get_module_logger()
    logger.info("notification_enqueued", notification_id=notification.id)
"""

from carenotify.logging.setup import (
    configure_logging,
    get_module_logger,
)
from carenotify.logging.context import (
    bind_request_context,
    get_correlation_id,
    clear_request_context,
)
from carenotify.logging.formatters import (
    add_app_info,
    mask_sensitive_data,
    SENSITIVE_PATTERNS,
)

__all__ = [
    "configure_logging",
    "get_module_logger",
    "bind_request_context",
    "get_correlation_id",
    "clear_request_context",
    "add_app_info",
    "mask_sensitive_data",
    "SENSITIVE_PATTERNS",
]
