"""Access token cache backed by Secret Manager.

The uploader keeps the most recent OAuth token response in a cache keyed by
a caller-supplied path, optionally scoped to a GCP project. Entries are
treated as opaque: a token is only replaced after the upload endpoint
rejects it or when no usable entry exists.

Concurrent writers are tolerated (last write wins). No locking is done
across invocations.
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
import os
import re
from dataclasses import dataclass
from typing import Any, Protocol

from google.api_core import exceptions
from google.auth import exceptions as auth_exceptions
from google.cloud import secretmanager

from adsbridge.uploads.exceptions import ConfigurationError, CredentialCacheError

logger = logging.getLogger(__name__)

_SECRET_ID_INVALID_CHARS = re.compile(r"[^A-Za-z0-9_-]+")


class CredentialCache(Protocol):
    """Read/write access to cached token responses."""

    async def read(self, path: str, project_id: str | None = None) -> dict[str, Any] | None:
        """Return the cached token response, or None on a miss."""
        ...

    async def write(
        self, path: str, value: dict[str, Any], project_id: str | None = None
    ) -> None:
        """Store a token response.

        Raises:
            CredentialCacheError: If the value cannot be stored.
        """
        ...


def access_token_of(entry: dict[str, Any] | None) -> str | None:
    """Extract the access token from a cached entry, if usable."""
    if not isinstance(entry, dict):
        return None
    token = entry.get("access_token")
    return token if isinstance(token, str) and token else None


class InMemoryCredentialCache:
    """Process-local credential cache.

    Example:
        >>> cache = InMemoryCredentialCache()
        >>> await cache.write("ads/token", {"access_token": "ya29..."})
        >>> await cache.read("ads/token")
        {'access_token': 'ya29...'}
    """

    def __init__(self, entries: dict[tuple[str | None, str], dict[str, Any]] | None = None):
        self._entries: dict[tuple[str | None, str], dict[str, Any]] = dict(entries or {})

    async def read(self, path: str, project_id: str | None = None) -> dict[str, Any] | None:
        entry = self._entries.get((project_id, path))
        return dict(entry) if entry is not None else None

    async def write(
        self, path: str, value: dict[str, Any], project_id: str | None = None
    ) -> None:
        self._entries[(project_id, path)] = dict(value)


@dataclass
class SecretCacheConfig:
    """Configuration for the Secret Manager credential cache.

    Attributes:
        project_id: Default GCP project for secrets.
        secret_prefix: Prefix for secret names. Defaults to "adsbridge".
    """

    project_id: str
    secret_prefix: str = "adsbridge"

    @classmethod
    def from_env(cls) -> SecretCacheConfig:
        """Create configuration from environment variables.

        Uses GCP_PROJECT_ID or ADSBRIDGE_PROJECT_ID for project.
        Uses ADSBRIDGE_SECRET_PREFIX for prefix (optional).

        Raises:
            ConfigurationError: If no project ID is set.
        """
        project_id = os.getenv("GCP_PROJECT_ID") or os.getenv("ADSBRIDGE_PROJECT_ID")
        if not project_id:
            raise ConfigurationError(
                "GCP_PROJECT_ID or ADSBRIDGE_PROJECT_ID environment variable required"
            )

        secret_prefix = os.getenv("ADSBRIDGE_SECRET_PREFIX", "adsbridge")

        return cls(project_id=project_id, secret_prefix=secret_prefix)


class SecretManagerCredentialCache:
    """Stores token responses as JSON secrets in Secret Manager.

    Secrets are named ``{prefix}-{path}`` with every character outside
    ``[A-Za-z0-9_-]`` replaced by ``-``. Each write adds a new version; reads
    use the latest version.

    Example:
        >>> cache = SecretManagerCredentialCache(SecretCacheConfig(project_id="my-project"))
        >>> await cache.write("ads/token", {"access_token": "ya29..."})
        >>> entry = await cache.read("ads/token")
    """

    def __init__(self, config: SecretCacheConfig | None = None):
        """Initialize the cache.

        Args:
            config: Configuration for the cache. If None, will be lazily
                   initialized from environment variables when accessed.
        """
        self._config = config
        self._client: secretmanager.SecretManagerServiceClient | None = None

    @property
    def config(self) -> SecretCacheConfig:
        """Get configuration, lazily initializing from environment if needed."""
        if self._config is None:
            self._config = SecretCacheConfig.from_env()
        return self._config

    @property
    def client(self) -> secretmanager.SecretManagerServiceClient:
        """Lazy-initialize Secret Manager client."""
        if self._client is None:
            self._client = secretmanager.SecretManagerServiceClient()
        return self._client

    def secret_id(self, path: str) -> str:
        """Derive the secret ID for a cache path."""
        slug = _SECRET_ID_INVALID_CHARS.sub("-", path).strip("-")
        return f"{self.config.secret_prefix}-{slug}"[:255]

    def _parent(self, project_id: str | None) -> str:
        return f"projects/{project_id or self.config.project_id}"

    def _read_sync(self, path: str, project_id: str | None) -> dict[str, Any] | None:
        name = f"{self._parent(project_id)}/secrets/{self.secret_id(path)}/versions/latest"
        try:
            response = self.client.access_secret_version(request={"name": name})
        except exceptions.NotFound:
            return None
        value = json.loads(response.payload.data.decode("utf-8"))
        return value if isinstance(value, dict) else None

    def _write_sync(self, path: str, value: dict[str, Any], project_id: str | None) -> None:
        parent = self._parent(project_id)
        secret_id = self.secret_id(path)

        # Create secret if it doesn't exist, then add a new version
        with contextlib.suppress(exceptions.AlreadyExists):
            self.client.create_secret(
                request={
                    "parent": parent,
                    "secret_id": secret_id,
                    "secret": {
                        "replication": {"automatic": {}},
                        "labels": {"managed_by": "adsbridge"},
                    },
                }
            )

        self.client.add_secret_version(
            request={
                "parent": f"{parent}/secrets/{secret_id}",
                "payload": {"data": json.dumps(value).encode("utf-8")},
            }
        )

    async def read(self, path: str, project_id: str | None = None) -> dict[str, Any] | None:
        """Return the latest cached token response.

        Any read failure is reported as a miss so the caller refreshes.
        """
        try:
            return await asyncio.to_thread(self._read_sync, path, project_id)
        except (
            exceptions.GoogleAPIError,
            auth_exceptions.GoogleAuthError,
            ConfigurationError,
            ValueError,
        ) as e:
            logger.warning(f"Credential cache read failed for {path}: {e}")
            return None

    async def write(
        self, path: str, value: dict[str, Any], project_id: str | None = None
    ) -> None:
        """Store a token response as a new secret version.

        Raises:
            CredentialCacheError: If Secret Manager rejects the write.
        """
        try:
            await asyncio.to_thread(self._write_sync, path, value, project_id)
        except (exceptions.GoogleAPIError, auth_exceptions.GoogleAuthError) as e:
            raise CredentialCacheError(f"Failed to write credential cache {path}: {e}") from e
