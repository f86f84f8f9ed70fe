"""Structlog configuration for the dispatch service.

``configure_logging`` is called once at import time with defaults and again
by the application lifespan with the loaded settings. Under pytest every
record is dropped so test output stays readable.
"""

import inspect
import logging
import sys
from typing import Any, List, Optional

import structlog
from structlog.stdlib import BoundLogger

from carenotify.logging.formatters import add_app_info, mask_sensitive_data

APP_NAME = "carenotify"

# Client libraries used by the gateway and DynamoDB adapters log every
# request at INFO/DEBUG.
NOISY_LOGGERS = ("botocore", "boto3", "urllib3")


def _running_under_pytest() -> bool:
    return "pytest" in sys.modules


def _processors(app_version: str, is_production: bool) -> List[Any]:
    chain: List[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        add_app_info(APP_NAME, app_version),
        mask_sensitive_data(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]
    if is_production:
        chain.append(structlog.processors.JSONRenderer())
    else:
        chain.insert(
            3,
            structlog.processors.CallsiteParameterAdder(
                parameters=[
                    structlog.processors.CallsiteParameter.FILENAME,
                    structlog.processors.CallsiteParameter.LINENO,
                ]
            ),
        )
        chain.append(structlog.dev.ConsoleRenderer())
    return chain


def _silence() -> BoundLogger:
    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
    logging.basicConfig(format="%(message)s", level=logging.CRITICAL + 1, force=True)
    return structlog.stdlib.get_logger()


def configure_logging(
    log_level: Optional[str] = None,
    is_production: Optional[bool] = None,
    app_version: Optional[str] = None,
) -> BoundLogger:
    """Configure structlog and the stdlib root logger.

    Args:
        log_level: Level name (DEBUG, INFO, ...). Defaults to Settings.LOG_LEVEL.
        is_production: JSON output when True, console output otherwise.
            Defaults to Settings.is_production.
        app_version: Version stamped on every entry. Defaults to Settings.GIT_SHA.

    Returns:
        Root structlog logger
    """
    if _running_under_pytest():
        return _silence()

    if log_level is None or is_production is None or app_version is None:
        from carenotify.configuration import Settings

        settings = Settings()
        log_level = log_level or settings.LOG_LEVEL
        app_version = app_version or settings.GIT_SHA
        if is_production is None:
            is_production = settings.is_production

    structlog.configure(
        processors=_processors(app_version, is_production),
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
    level = getattr(logging, log_level.upper(), logging.INFO)
    logging.basicConfig(format="%(message)s", level=level)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    return structlog.stdlib.get_logger()


logger: BoundLogger = configure_logging()


def get_module_logger() -> BoundLogger:
    """Logger bound to the calling module.

    In ``carenotify/notifications/queue.py`` the entries carry
    ``component="queue"`` and ``module_path="carenotify.notifications.queue"``.
    """
    frame = inspect.currentframe()
    caller = frame.f_back if frame is not None else None
    module = inspect.getmodule(caller) if caller is not None else None
    if module is None:
        return logger.bind(component="unknown")

    name = module.__name__
    return logger.bind(component=name.rsplit(".", 1)[-1], module_path=name)
