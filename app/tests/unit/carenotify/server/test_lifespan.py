from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from carenotify.configuration import GatewaySettings, Settings
from carenotify.server.server import create_app


@pytest.mark.unit
@patch("carenotify.server.lifespan.scheduled_tasks")
@patch("carenotify.server.lifespan.get_notification_service")
@patch("carenotify.server.lifespan.get_settings")
def test_lifespan_builds_service_and_shuts_it_down(
    mock_get_settings, mock_get_service, mock_scheduled_tasks
):
    mock_get_settings.return_value = Settings(
        gateway=GatewaySettings(SMS_GATEWAY_URL="", PUSH_GATEWAY_URL="")
    )
    service = MagicMock()
    service.pending_count.return_value = 0
    mock_get_service.return_value = service
    app = create_app()

    with TestClient(app):
        assert app.state.notification_service is service

    service.shutdown.assert_called_once_with()
    # the scheduler thread is not started under pytest
    mock_scheduled_tasks.run_continuously.assert_not_called()
