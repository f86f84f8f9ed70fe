import pytest
from fastapi.testclient import TestClient

from carenotify.api.rate_limits import get_limiter
from carenotify.configuration import GatewaySettings, Settings
from carenotify.notifications.service import NotificationService
from carenotify.server.server import create_app
from carenotify.services import get_notification_service, get_settings


@pytest.fixture
def api_settings():
    return Settings(
        GIT_SHA="abc123",
        gateway=GatewaySettings(SMS_GATEWAY_URL="", PUSH_GATEWAY_URL=""),
    )


@pytest.fixture
def api_service(api_settings, store, clock):
    service = NotificationService(api_settings, store=store, clock=clock)
    yield service
    service.shutdown()


@pytest.fixture
def api_client(api_settings, api_service):
    """TestClient with the service and settings providers overridden.

    The lifespan is not entered, so no scheduler thread is started; tests
    drive the dispatcher with ``api_service.tick()``.
    """
    app = create_app()
    app.dependency_overrides[get_settings] = lambda: api_settings
    app.dependency_overrides[get_notification_service] = lambda: api_service

    limiter = get_limiter()
    limiter.enabled = False
    yield TestClient(app)
    limiter.enabled = True
