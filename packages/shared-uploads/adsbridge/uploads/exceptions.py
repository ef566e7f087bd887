"""Custom exceptions for conversion uploads."""

from __future__ import annotations


class ConversionUploadError(Exception):
    """Base exception for conversion upload errors."""

    pass


class ConfigurationError(ConversionUploadError):
    """Raised when uploader settings or conversion config are malformed."""

    pass


class AuthError(ConversionUploadError):
    """Raised when the access token cannot be refreshed or is rejected after retry."""

    pass


class UpstreamError(ConversionUploadError):
    """Raised when the upload endpoint answers with a non-success status."""

    def __init__(self, status_code: int, body: str | None = None):
        self.status_code = status_code
        self.body = body
        super().__init__(f"Upload failed with HTTP {status_code}")


class TransportError(ConversionUploadError):
    """Raised when a request fails before any HTTP status is received."""

    pass


class CredentialCacheError(ConversionUploadError):
    """Raised when the credential cache cannot be written."""

    pass
