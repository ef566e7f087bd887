"""Conversion upload orchestrator.

Drives one conversion upload end to end:

    PENDING -> CREDENTIAL_READY -> SENT -> SUCCEEDED
                                        -> AUTH_RETRY -> SENT -> SUCCEEDED | FAILED
                                        -> FAILED

A 401 triggers at most one refresh-and-resend per invocation; a 401 on the
resend is terminal. A conversion is sent at most twice.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from adsbridge.conversions import (
    ConversionConfig,
    ConversionRecord,
    HashPolicy,
    resolve_conversion,
)
from adsbridge.conversions.timestamps import now_millis
from adsbridge.uploads.client import GoogleAdsClient, HttpExchange
from adsbridge.uploads.config import UploaderSettings
from adsbridge.uploads.credentials import (
    CredentialCache,
    SecretCacheConfig,
    SecretManagerCredentialCache,
    access_token_of,
)
from adsbridge.uploads.exceptions import (
    AuthError,
    ConfigurationError,
    ConversionUploadError,
    UpstreamError,
)
from adsbridge.uploads.request_log import RequestLogger

logger = logging.getLogger(__name__)


class UploadStatus(str, Enum):
    """Status of a conversion upload."""

    PENDING = "pending"
    CREDENTIAL_READY = "credential_ready"
    SENT = "sent"
    AUTH_RETRY = "auth_retry"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass
class UploadResult:
    """Result of one conversion upload."""

    status: UploadStatus = UploadStatus.PENDING
    record: ConversionRecord | None = None
    status_code: int | None = None
    response_body: str | None = None
    attempts: int = 0
    refresh_count: int = 0
    error: str | None = None
    error_type: str | None = None
    started_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    completed_at: datetime | None = None

    @property
    def is_success(self) -> bool:
        """Return True if the conversion was accepted."""
        return self.status == UploadStatus.SUCCEEDED

    @property
    def duration_seconds(self) -> float | None:
        """Return duration of the upload in seconds."""
        if self.started_at and self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None


def build_upload_body(record: ConversionRecord) -> dict[str, Any]:
    """Wrap a single conversion in an uploadClickConversions request body."""
    return {
        "conversions": [record.to_dict()],
        "partialFailure": True,
        "validateOnly": False,
    }


class ConversionUploader:
    """
    Upload a single conversion per call, refreshing the access token on 401.

    Two flows are supported, selected by ``settings.auth_mode``:
    - OWNED: this uploader holds the OAuth client and developer token and
      posts directly to Google Ads with a cached bearer token.
    - RELAY: a relay endpoint owns authentication; only the business payload
      is sent and no credential is read or refreshed.

    Every call ends in exactly one of ``on_success()`` or ``on_failure()``
    and returns an UploadResult. No exception escapes ``upload``.

    Example:
        >>> settings = UploaderSettings(
        ...     login_customer_id="1234567890",
        ...     developer_token="dev-token",
        ...     client_id="client-id",
        ...     client_secret="client-secret",
        ...     refresh_token="1//refresh",
        ... )
        >>> async with ConversionUploader(settings) as uploader:
        ...     result = await uploader.upload(config, event)
        >>> result.is_success
        True
    """

    def __init__(
        self,
        settings: UploaderSettings,
        cache: CredentialCache | None = None,
        client: GoogleAdsClient | None = None,
        request_logger: RequestLogger | None = None,
        hash_policy: HashPolicy = HashPolicy.HASH_ALL,
        clock: Callable[[], int] = now_millis,
    ):
        """Initialize the uploader.

        Args:
            settings: Uploader settings (auth mode, OAuth client, cache path).
            cache: Credential cache. Defaults to Secret Manager.
            client: HTTP gateway. Defaults to a GoogleAdsClient built from settings.
            request_logger: Request/response recorder. Defaults to the settings' log policy.
            hash_policy: Which identifier kinds are hashed before upload.
            clock: Millisecond clock for computed conversion timestamps.
        """
        self.settings = settings
        self.hash_policy = hash_policy
        self.clock = clock
        self.request_logger = request_logger or RequestLogger(policy=settings.log_policy)
        if cache is None:
            cache_config = (
                SecretCacheConfig(project_id=settings.credential_project_id)
                if settings.credential_project_id
                else None
            )
            cache = SecretManagerCredentialCache(cache_config)
        self.cache = cache
        self.client = client or GoogleAdsClient(
            timeout=settings.timeout, request_logger=self.request_logger
        )

    async def __aenter__(self) -> ConversionUploader:
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the HTTP client."""
        await self.client.aclose()

    async def upload(
        self,
        config: ConversionConfig,
        event: Mapping[str, Any],
        on_success: Callable[[], Any] | None = None,
        on_failure: Callable[[], Any] | None = None,
        trace_id: str | None = None,
        refresh_token: str | None = None,
    ) -> UploadResult:
        """
        Resolve and upload one conversion.

        Args:
            config: Conversion configuration and overrides.
            event: Raw event payload.
            on_success: Called once if the conversion was accepted.
            on_failure: Called once on any failure.
            trace_id: Correlation id attached to request/response records.
            refresh_token: Refresh token overriding the one in settings.

        Returns:
            UploadResult describing the terminal outcome.
        """
        result = UploadResult()

        try:
            await self._run(config, event, result, trace_id, refresh_token)
        except ConversionUploadError as e:
            result.status = UploadStatus.FAILED
            result.error = str(e)
            result.error_type = type(e).__name__
            logger.warning(f"Conversion upload failed for {config.conversion_action}: {e}")
        except Exception as e:
            result.status = UploadStatus.FAILED
            result.error = str(e)
            result.error_type = type(e).__name__
            logger.exception(f"Unexpected error uploading conversion {config.conversion_action}")

        result.completed_at = datetime.now(UTC)
        self._signal(result, on_success, on_failure)
        return result

    async def _run(
        self,
        config: ConversionConfig,
        event: Mapping[str, Any],
        result: UploadResult,
        trace_id: str | None,
        refresh_token: str | None,
    ) -> None:
        try:
            record = resolve_conversion(config, event, self.hash_policy, self.clock)
        except ValueError as e:
            raise ConfigurationError(f"Invalid conversion data: {e}") from e
        result.record = record

        url = self.settings.upload_url(config.customer_id)
        body = build_upload_body(record)
        event_name = str(config.conversion_action)

        access_token: str | None = None
        if self.settings.uses_owned_credentials:
            access_token = await self._cached_access_token()
            if access_token is None:
                logger.info("No cached access token, refreshing")
                access_token = await self._refresh(result, trace_id, refresh_token)

        result.status = UploadStatus.CREDENTIAL_READY
        exchange = await self._send(url, body, access_token, event_name, trace_id, result)
        if exchange.is_success:
            result.status = UploadStatus.SUCCEEDED
            return

        # One refresh-and-resend per invocation, however the first token was obtained
        if exchange.is_unauthorized and self.settings.uses_owned_credentials:
            result.status = UploadStatus.AUTH_RETRY
            logger.warning(
                f"Upload for {event_name} received 401 Unauthorized. "
                f"Refreshing token and retrying once..."
            )
            access_token = await self._refresh(result, trace_id, refresh_token)
            exchange = await self._send(url, body, access_token, event_name, trace_id, result)
            if exchange.is_success:
                result.status = UploadStatus.SUCCEEDED
                return

        if exchange.is_unauthorized:
            raise AuthError(f"Upload rejected with HTTP 401 for {event_name}")
        raise UpstreamError(exchange.status_code, exchange.text)

    async def _cached_access_token(self) -> str | None:
        entry = await self.cache.read(
            self.settings.credential_path, self.settings.credential_project_id
        )
        return access_token_of(entry)

    async def _refresh(
        self,
        result: UploadResult,
        trace_id: str | None,
        refresh_token: str | None,
    ) -> str:
        """Exchange the refresh token once and persist the new token response.

        Raises:
            ConfigurationError: If OAuth client settings or refresh token are missing.
            AuthError: If the exchange fails or returns no access token.
            CredentialCacheError: If the token response cannot be cached.
        """
        settings = self.settings
        settings.validate_owned_credentials()
        token = refresh_token or settings.refresh_token
        if not token:
            raise ConfigurationError("Missing refresh token")

        result.refresh_count += 1
        exchange = await self.client.refresh_access_token(
            settings.token_url,
            refresh_token=token,
            client_id=settings.client_id or "",
            client_secret=settings.client_secret or "",
            trace_id=trace_id,
        )
        if not exchange.is_success:
            raise AuthError(f"Token refresh failed with HTTP {exchange.status_code}")

        try:
            token_response = exchange.json()
        except ValueError as e:
            raise AuthError("Token refresh returned an invalid JSON body") from e

        access_token = access_token_of(token_response)
        if access_token is None:
            raise AuthError("Token refresh response did not include an access_token")

        await self.cache.write(
            settings.credential_path, token_response, settings.credential_project_id
        )
        logger.info("Access token refreshed successfully")
        return access_token

    async def _send(
        self,
        url: str,
        body: dict[str, Any],
        access_token: str | None,
        event_name: str,
        trace_id: str | None,
        result: UploadResult,
    ) -> HttpExchange:
        result.attempts += 1
        exchange = await self.client.upload_conversions(
            url,
            body,
            self._headers(access_token),
            event_name=event_name,
            trace_id=trace_id,
        )
        result.status = UploadStatus.SENT
        result.status_code = exchange.status_code
        result.response_body = exchange.text
        return exchange

    def _headers(self, access_token: str | None) -> dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "login-customer-id": self.settings.login_customer_id,
        }
        if access_token:
            headers["Authorization"] = f"Bearer {access_token}"
        if self.settings.uses_owned_credentials and self.settings.developer_token:
            headers["developer-token"] = self.settings.developer_token
        return headers

    @staticmethod
    def _signal(
        result: UploadResult,
        on_success: Callable[[], Any] | None,
        on_failure: Callable[[], Any] | None,
    ) -> None:
        callback = on_success if result.is_success else on_failure
        if callback is None:
            return
        try:
            callback()
        except Exception:
            logger.exception("Upload outcome callback raised")
