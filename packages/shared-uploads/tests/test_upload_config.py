"""Tests for uploader settings."""

import pytest
from adsbridge.uploads import (
    AuthMode,
    ConfigurationError,
    ContainerKey,
    LogPolicy,
    UploaderSettings,
)
from adsbridge.uploads.config import env_debug_mode

ENV_VARS = [
    "ADSBRIDGE_LOGIN_CUSTOMER_ID",
    "ADSBRIDGE_AUTH_MODE",
    "ADSBRIDGE_DEVELOPER_TOKEN",
    "ADSBRIDGE_CLIENT_ID",
    "ADSBRIDGE_CLIENT_SECRET",
    "ADSBRIDGE_REFRESH_TOKEN",
    "ADSBRIDGE_CREDENTIAL_PATH",
    "ADSBRIDGE_CREDENTIAL_PROJECT_ID",
    "GCP_PROJECT_ID",
    "ADSBRIDGE_CONTAINER_KEY",
    "ADSBRIDGE_RELAY_DOMAIN",
    "ADSBRIDGE_API_VERSION",
    "ADSBRIDGE_LOG_POLICY",
    "ADSBRIDGE_TIMEOUT",
    "ADSBRIDGE_DEBUG_MODE",
    "ADSBRIDGE_PREVIEW_MODE",
]


@pytest.fixture
def clean_env(monkeypatch):
    """Remove all uploader environment variables."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestFromEnv:
    """Test UploaderSettings.from_env."""

    def test_requires_login_customer_id(self, clean_env):
        with pytest.raises(ConfigurationError, match="ADSBRIDGE_LOGIN_CUSTOMER_ID"):
            UploaderSettings.from_env()

    def test_defaults(self, clean_env):
        clean_env.setenv("ADSBRIDGE_LOGIN_CUSTOMER_ID", "111")

        settings = UploaderSettings.from_env()

        assert settings.login_customer_id == "111"
        assert settings.auth_mode == AuthMode.OWNED
        assert settings.api_version == "v17"
        assert settings.relay_domain == "stape.io"
        assert settings.credential_path == "adsbridge/google-ads/access-token"
        assert settings.log_policy is None
        assert settings.timeout == 30.0

    def test_all_values(self, clean_env):
        clean_env.setenv("ADSBRIDGE_LOGIN_CUSTOMER_ID", "111")
        clean_env.setenv("ADSBRIDGE_AUTH_MODE", "relay")
        clean_env.setenv("ADSBRIDGE_CONTAINER_KEY", "us:id:key")
        clean_env.setenv("ADSBRIDGE_LOG_POLICY", "always")
        clean_env.setenv("ADSBRIDGE_TIMEOUT", "5")
        clean_env.setenv("GCP_PROJECT_ID", "gcp-project")

        settings = UploaderSettings.from_env()

        assert settings.auth_mode == AuthMode.RELAY
        assert settings.container_key == "us:id:key"
        assert settings.log_policy == LogPolicy.ALWAYS
        assert settings.timeout == 5.0
        assert settings.credential_project_id == "gcp-project"

    def test_credential_project_precedence(self, clean_env):
        clean_env.setenv("ADSBRIDGE_LOGIN_CUSTOMER_ID", "111")
        clean_env.setenv("ADSBRIDGE_CREDENTIAL_PROJECT_ID", "explicit")
        clean_env.setenv("GCP_PROJECT_ID", "gcp-project")

        assert UploaderSettings.from_env().credential_project_id == "explicit"


class TestUploadUrl:
    """Test endpoint construction."""

    def test_owned(self, owned_settings):
        assert owned_settings.upload_url("1234567890") == (
            "https://googleads.googleapis.com/v17/customers/1234567890:uploadClickConversions"
        )

    def test_owned_custom_version(self, owned_settings):
        settings = owned_settings.model_copy(update={"api_version": "v18"})
        assert "/v18/customers/" in settings.upload_url("1")

    def test_relay(self, relay_settings):
        assert relay_settings.upload_url("1234567890") == (
            "https://abc123.eu.stape.io/stape-api/secretkey/v1/gads/auth-proxy"
        )

    def test_relay_components_encoded(self, relay_settings):
        settings = relay_settings.model_copy(update={"container_key": "eu:a/b:k y"})
        assert settings.upload_url("1") == (
            "https://a%2Fb.eu.stape.io/stape-api/k%20y/v1/gads/auth-proxy"
        )

    def test_relay_bad_key(self, relay_settings):
        settings = relay_settings.model_copy(update={"container_key": "eu:abc123"})
        with pytest.raises(ConfigurationError, match="Invalid container key"):
            settings.upload_url("1")


class TestContainerKey:
    """Test ContainerKey.parse."""

    def test_parse(self):
        key = ContainerKey.parse("eu:abc:key")
        assert (key.zone, key.identifier, key.api_key) == ("eu", "abc", "key")

    @pytest.mark.parametrize("raw", [None, "", "eu::key", "::", "eu:abc"])
    def test_invalid(self, raw):
        with pytest.raises(ConfigurationError):
            ContainerKey.parse(raw)


class TestSettings:
    """Test settings behavior."""

    def test_repr_hides_secrets(self, owned_settings):
        text = repr(owned_settings)
        assert "client-secret" not in text
        assert "1//refresh" not in text
        assert "dev-token" not in text
        assert "client-id" in text

    def test_validate_owned_credentials(self, owned_settings):
        owned_settings.validate_owned_credentials()

    def test_validate_owned_credentials_missing(self):
        settings = UploaderSettings(login_customer_id="1", client_id="id")
        with pytest.raises(ConfigurationError, match="client_secret"):
            settings.validate_owned_credentials()

    def test_uses_owned_credentials(self, owned_settings, relay_settings):
        assert owned_settings.uses_owned_credentials is True
        assert relay_settings.uses_owned_credentials is False


class TestEnvDebugMode:
    """Test env_debug_mode."""

    def test_off_by_default(self, clean_env):
        assert env_debug_mode() is False

    @pytest.mark.parametrize("name", ["ADSBRIDGE_DEBUG_MODE", "ADSBRIDGE_PREVIEW_MODE"])
    def test_enabled(self, clean_env, name):
        clean_env.setenv(name, "true")
        assert env_debug_mode() is True

    def test_falsey_value(self, clean_env):
        clean_env.setenv("ADSBRIDGE_DEBUG_MODE", "0")
        assert env_debug_mode() is False
