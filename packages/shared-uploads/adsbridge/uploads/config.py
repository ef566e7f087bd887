"""Configuration models for conversion uploads."""

from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum
from urllib.parse import quote

from pydantic import BaseModel, Field

from adsbridge.uploads.exceptions import ConfigurationError

GOOGLE_ADS_API_HOST = "https://googleads.googleapis.com"
GOOGLE_ADS_API_VERSION = "v17"
GOOGLE_OAUTH_TOKEN_URL = "https://www.googleapis.com/oauth2/v3/token"
DEFAULT_RELAY_DOMAIN = "stape.io"

_TRUTHY = {"1", "true", "yes", "on"}


class AuthMode(str, Enum):
    """How the upload request is authenticated."""

    OWNED = "owned"  # Own developer token and OAuth client, direct to Google Ads
    RELAY = "relay"  # Relay endpoint holds the credentials


class LogPolicy(str, Enum):
    """When request/response records are emitted."""

    ALWAYS = "always"
    NEVER = "no"
    DEBUG = "debug"  # Only when the runtime reports debug or preview mode


def _enc(value: str | None) -> str:
    return quote(value or "", safe="")


@dataclass(frozen=True)
class ContainerKey:
    """Relay container key in the form ``zone:identifier:api_key``."""

    zone: str
    identifier: str
    api_key: str

    @classmethod
    def parse(cls, raw: str | None) -> ContainerKey:
        """Parse a colon-delimited container key.

        Raises:
            ConfigurationError: If the key does not have three non-empty segments.
        """
        parts = (raw or "").split(":")
        if len(parts) < 3 or not all(parts[:3]):
            raise ConfigurationError(
                "Invalid container key: expected 'zone:identifier:api_key'"
            )
        return cls(zone=parts[0], identifier=parts[1], api_key=parts[2])


class UploaderSettings(BaseModel):
    """Settings for the conversion uploader.

    Secrets are excluded from repr to avoid leaking them into logs.
    """

    login_customer_id: str  # Sent as the login-customer-id header
    auth_mode: AuthMode = AuthMode.OWNED

    # Owned credentials
    developer_token: str | None = Field(default=None, repr=False)
    client_id: str | None = None
    client_secret: str | None = Field(default=None, repr=False)
    refresh_token: str | None = Field(default=None, repr=False)

    # Credential cache location
    credential_path: str = "adsbridge/google-ads/access-token"
    credential_project_id: str | None = None

    # Relay
    container_key: str | None = Field(default=None, repr=False)
    relay_domain: str = DEFAULT_RELAY_DOMAIN

    api_version: str = GOOGLE_ADS_API_VERSION
    token_url: str = GOOGLE_OAUTH_TOKEN_URL
    log_policy: LogPolicy | None = None
    timeout: float = 30.0

    @classmethod
    def from_env(cls) -> UploaderSettings:
        """Load settings from ADSBRIDGE_* environment variables.

        Raises:
            ConfigurationError: If ADSBRIDGE_LOGIN_CUSTOMER_ID is not set.
        """
        login_customer_id = os.getenv("ADSBRIDGE_LOGIN_CUSTOMER_ID")
        if not login_customer_id:
            raise ConfigurationError("ADSBRIDGE_LOGIN_CUSTOMER_ID environment variable required")

        log_policy = os.getenv("ADSBRIDGE_LOG_POLICY")

        return cls(
            login_customer_id=login_customer_id,
            auth_mode=AuthMode(os.getenv("ADSBRIDGE_AUTH_MODE", AuthMode.OWNED.value)),
            developer_token=os.getenv("ADSBRIDGE_DEVELOPER_TOKEN"),
            client_id=os.getenv("ADSBRIDGE_CLIENT_ID"),
            client_secret=os.getenv("ADSBRIDGE_CLIENT_SECRET"),
            refresh_token=os.getenv("ADSBRIDGE_REFRESH_TOKEN"),
            credential_path=os.getenv(
                "ADSBRIDGE_CREDENTIAL_PATH", "adsbridge/google-ads/access-token"
            ),
            credential_project_id=(
                os.getenv("ADSBRIDGE_CREDENTIAL_PROJECT_ID") or os.getenv("GCP_PROJECT_ID")
            ),
            container_key=os.getenv("ADSBRIDGE_CONTAINER_KEY"),
            relay_domain=os.getenv("ADSBRIDGE_RELAY_DOMAIN", DEFAULT_RELAY_DOMAIN),
            api_version=os.getenv("ADSBRIDGE_API_VERSION", GOOGLE_ADS_API_VERSION),
            log_policy=LogPolicy(log_policy) if log_policy else None,
            timeout=float(os.getenv("ADSBRIDGE_TIMEOUT", "30")),
        )

    @property
    def uses_owned_credentials(self) -> bool:
        """Return True if this uploader holds the OAuth credentials itself."""
        return self.auth_mode == AuthMode.OWNED

    def upload_url(self, customer_id: str) -> str:
        """Return the conversion upload endpoint for the configured auth mode.

        Args:
            customer_id: Google Ads customer that owns the conversion action.

        Raises:
            ConfigurationError: If the relay container key is malformed.
        """
        if self.uses_owned_credentials:
            return (
                f"{GOOGLE_ADS_API_HOST}/{self.api_version}/customers/"
                f"{_enc(customer_id)}:uploadClickConversions"
            )

        key = ContainerKey.parse(self.container_key)
        return (
            f"https://{_enc(key.identifier)}.{_enc(key.zone)}.{self.relay_domain}"
            f"/stape-api/{_enc(key.api_key)}/v1/gads/auth-proxy"
        )

    def validate_owned_credentials(self) -> None:
        """Check the OAuth client fields required to refresh a token.

        Raises:
            ConfigurationError: If client_id or client_secret is missing.
        """
        missing = [
            name for name in ("client_id", "client_secret") if not getattr(self, name)
        ]
        if missing:
            raise ConfigurationError(
                f"Missing required OAuth settings: {', '.join(missing)}"
            )


def env_debug_mode() -> bool:
    """Return True if the runtime reports debug or preview mode via the environment."""
    return any(
        os.getenv(name, "").strip().lower() in _TRUTHY
        for name in ("ADSBRIDGE_DEBUG_MODE", "ADSBRIDGE_PREVIEW_MODE")
    )
