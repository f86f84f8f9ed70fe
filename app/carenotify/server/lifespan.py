"""Application startup and shutdown.

Startup configures logging from the loaded settings, builds the
notification service (restoring any persisted queue) and starts the
background thread that drives the dispatch tick. Shutdown stops the thread
before releasing the channel fan-out pool.
"""

from contextlib import asynccontextmanager
import sys
from typing import AsyncIterator, TYPE_CHECKING

from fastapi import FastAPI
from structlog.stdlib import BoundLogger

from carenotify.jobs import scheduled_tasks
from carenotify.logging.setup import configure_logging
from carenotify.services import get_notification_service, get_settings

if TYPE_CHECKING:
    from carenotify.configuration import Settings


def _log_configuration(settings: "Settings", logger: BoundLogger) -> None:
    logger.info(
        "configuration_loaded",
        environment="production" if settings.is_production else settings.PREFIX,
        store_backend=settings.storage.backend,
        tick_seconds=settings.dispatch.tick_seconds,
        batch_size=settings.dispatch.batch_size,
        retry_strategy=settings.retry.strategy,
        retry_max_attempts=settings.retry.max_attempts,
        quiet_hours=f"{settings.quiet_hours.start_time}-{settings.quiet_hours.end_time}",
        quiet_hours_timezone=settings.quiet_hours.timezone,
        sms_gateway_enabled=bool(settings.gateway.SMS_GATEWAY_URL),
        push_gateway_enabled=bool(settings.gateway.PUSH_GATEWAY_URL),
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    settings = get_settings()
    logger = configure_logging(
        log_level=settings.LOG_LEVEL,
        is_production=settings.is_production,
        app_version=settings.GIT_SHA,
    )
    _log_configuration(settings, logger)

    service = get_notification_service()
    app.state.notification_service = service

    stop_event = None
    if "pytest" in sys.modules:
        logger.info("scheduled_tasks_skipped", reason="test_environment")
    else:
        scheduled_tasks.init(service, settings.dispatch.tick_seconds)
        stop_event = scheduled_tasks.run_continuously()
        logger.info("scheduled_tasks_started", pending=service.pending_count())

    yield

    logger.info("application_shutdown", pending=service.pending_count())
    if stop_event is not None:
        stop_event.set()
    service.shutdown()
