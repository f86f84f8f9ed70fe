"""Periodic jobs driving the dispatcher.

The processing tick, a daily retention cleanup and a heartbeat are
registered on the ``schedule`` library and run by a background thread.
"""

import threading
import time
from typing import Optional

import schedule

from carenotify.logging import bind_request_context, get_module_logger
from carenotify.notifications.service import NotificationService

logger = get_module_logger()


def safe_run(job):
    def wrapper(*args, **kwargs):
        try:
            with bind_request_context(job=getattr(job, "__name__", repr(job))):
                job(*args, **kwargs)
        except Exception as e:
            logger.error(
                "scheduled_job_failed",
                job=getattr(job, "__name__", repr(job)),
                error=str(e),
                exc_info=True,
            )

    return wrapper


def init(
    service: NotificationService,
    tick_seconds: float,
    scheduler: Optional[schedule.Scheduler] = None,
) -> schedule.Scheduler:
    """Register the dispatch jobs on ``scheduler`` (default: module scheduler)."""
    scheduler = scheduler or schedule.default_scheduler
    logger.info("scheduled_tasks_initialized", tick_seconds=tick_seconds)

    scheduler.every(tick_seconds).seconds.do(safe_run(service.tick))
    scheduler.every().day.at("03:00").do(safe_run(service.cleanup))
    scheduler.every(5).minutes.do(safe_run(scheduler_heartbeat), service=service)
    return scheduler


def scheduler_heartbeat(service: NotificationService):
    logger.info(
        "scheduler_heartbeat",
        at=time.ctime(),
        pending=service.pending_count(),
    )


def run_continuously(interval=1, scheduler: Optional[schedule.Scheduler] = None):
    """Continuously run, while executing pending jobs at each
    elapsed time interval.
    @return cease_continuous_run: threading. Event which can
    be set to cease continuous run. Please note that it is
    *intended behavior that run_continuously() does not run
    missed jobs*. For example, if you've registered a job that
    should run every minute and you set a continuous run
    interval of one hour then your job won't be run 60 times
    at each interval but only once.
    """
    scheduler = scheduler or schedule.default_scheduler
    cease_continuous_run = threading.Event()

    class ScheduleThread(threading.Thread):
        @classmethod
        def run(cls):
            while not cease_continuous_run.is_set():
                scheduler.run_pending()
                time.sleep(interval)

    continuous_thread = ScheduleThread(daemon=True, name="carenotify-scheduler")
    continuous_thread.start()
    return cease_continuous_run
