"""AdsBridge Uploads - deliver click conversions to Google Ads.

This package provides:
- ConversionUploader: resolve, send, and refresh-once-on-401 orchestration
- GoogleAdsClient: async HTTP calls for token refresh and conversion upload
- Credential caches (Secret Manager, in-memory) for OAuth token responses
- Policy-gated request/response logging with an optional BigQuery sink

Example:
    from adsbridge.conversions import ConversionConfig
    from adsbridge.uploads import ConversionUploader, UploaderSettings

    settings = UploaderSettings.from_env()
    config = ConversionConfig(customer_id="1234567890", conversion_action="42")

    async with ConversionUploader(settings) as uploader:
        result = await uploader.upload(config, event)
    print(f"Upload {result.status.value} after {result.attempts} attempt(s)")
"""

from adsbridge.uploads.client import GoogleAdsClient, HttpExchange
from adsbridge.uploads.config import (
    AuthMode,
    ContainerKey,
    LogPolicy,
    UploaderSettings,
)
from adsbridge.uploads.credentials import (
    CredentialCache,
    InMemoryCredentialCache,
    SecretCacheConfig,
    SecretManagerCredentialCache,
)
from adsbridge.uploads.exceptions import (
    AuthError,
    ConfigurationError,
    ConversionUploadError,
    CredentialCacheError,
    TransportError,
    UpstreamError,
)
from adsbridge.uploads.orchestrator import (
    ConversionUploader,
    UploadResult,
    UploadStatus,
    build_upload_body,
)
from adsbridge.uploads.request_log import (
    BigQueryLogSink,
    LoggerSink,
    RequestLogger,
)

__all__ = [
    # Orchestration
    "ConversionUploader",
    "UploadResult",
    "UploadStatus",
    "build_upload_body",
    # HTTP
    "GoogleAdsClient",
    "HttpExchange",
    # Config
    "AuthMode",
    "ContainerKey",
    "LogPolicy",
    "UploaderSettings",
    # Credentials
    "CredentialCache",
    "InMemoryCredentialCache",
    "SecretCacheConfig",
    "SecretManagerCredentialCache",
    # Logging
    "BigQueryLogSink",
    "LoggerSink",
    "RequestLogger",
    # Exceptions
    "AuthError",
    "ConfigurationError",
    "ConversionUploadError",
    "CredentialCacheError",
    "TransportError",
    "UpstreamError",
]
