from fastapi import APIRouter, Request

from carenotify.api.rate_limits import get_limiter
from carenotify.services import NotificationServiceDep, SettingsDep

router = APIRouter(tags=["System"])
limiter = get_limiter()


@router.get("/version")
@limiter.limit("50/minute")
def get_version(request: Request, settings: SettingsDep):  # pylint: disable=unused-argument
    """Get the version of the application."""
    return {"version": settings.GIT_SHA}


@router.get("/health")
@limiter.limit("50/minute")
def get_health(request: Request, service: NotificationServiceDep):  # pylint: disable=unused-argument
    """Healthcheck endpoint with channel health and queue depth."""
    return {
        "status": "ok",
        "channels": service.health_check(),
        "pending": service.pending_count(),
    }
