"""Shared fixtures for uploads package tests."""

from unittest.mock import MagicMock, patch

import pytest
from adsbridge.uploads import AuthMode, LogPolicy, RequestLogger, UploaderSettings


@pytest.fixture
def owned_settings():
    """Settings for the owned-credentials flow."""
    return UploaderSettings(
        login_customer_id="1112223333",
        developer_token="dev-token",
        client_id="client-id",
        client_secret="client-secret",
        refresh_token="1//refresh",
        credential_path="ads/token",
        credential_project_id="test-project",
    )


@pytest.fixture
def relay_settings():
    """Settings for the relay flow."""
    return UploaderSettings(
        login_customer_id="1112223333",
        auth_mode=AuthMode.RELAY,
        container_key="eu:abc123:secretkey",
    )


@pytest.fixture
def silent_logger():
    """RequestLogger that never emits."""
    return RequestLogger(policy=LogPolicy.NEVER)


@pytest.fixture
def recording_sink():
    """Log sink collecting emitted records in memory."""

    class RecordingSink:
        def __init__(self):
            self.records = []

        async def emit(self, record):
            self.records.append(record)

    return RecordingSink()


@pytest.fixture
def mock_secret_manager_client():
    """Mock Secret Manager client for testing."""
    with patch("google.cloud.secretmanager.SecretManagerServiceClient") as mock:
        client = MagicMock()
        mock.return_value = client
        yield client


@pytest.fixture
def mock_bigquery_client():
    """Mock google.cloud.bigquery.Client for testing."""
    with patch("google.cloud.bigquery.Client") as mock:
        client = MagicMock()
        client.insert_rows_json.return_value = []
        mock.return_value = client
        yield client
