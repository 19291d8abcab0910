from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from carelog.api.core.dependencies.send_mail import EmailResult


@pytest.fixture(autouse=True)
def mock_send_email():
    """Capture outgoing ticket e-mail instead of talking to SMTP."""
    with patch(
        "carelog.api.modules.v1.tickets.service.ticket_notifier.send_email",
        new_callable=AsyncMock,
    ) as mock:
        mock.return_value = EmailResult(success=True)
        yield mock


@pytest.fixture(autouse=True)
def mock_summary_task():
    """Replace the Celery summary task so nothing is sent to a broker."""
    task = MagicMock()
    with patch(
        "carelog.api.modules.v1.tickets.service.ticket_lifecycle_service.generate_ticket_summary",
        task,
    ):
        yield task
