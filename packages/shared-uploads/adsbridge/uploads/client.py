"""Google Ads HTTP gateway.

One coroutine per network call. Each returns an HttpExchange for any HTTP
status and raises TransportError only when no status was received. Status
interpretation is left to the caller.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any

import httpx

from adsbridge.uploads.exceptions import TransportError
from adsbridge.uploads.request_log import RequestLogger

logger = logging.getLogger(__name__)

# HTTP timeouts (in seconds)
TOKEN_TIMEOUT = httpx.Timeout(10.0, connect=5.0)  # 10s read, 5s connect

AUTH_EVENT_NAME = "Auth"


@dataclass
class HttpExchange:
    """Status, headers and body of a completed HTTP request."""

    status_code: int
    headers: dict[str, str] = field(default_factory=dict)
    text: str = ""

    @property
    def is_success(self) -> bool:
        """Return True for 2xx and 3xx statuses."""
        return 200 <= self.status_code < 400

    @property
    def is_unauthorized(self) -> bool:
        return self.status_code == 401

    def json(self) -> Any:
        return json.loads(self.text)

    @classmethod
    def from_response(cls, response: httpx.Response) -> HttpExchange:
        return cls(
            status_code=response.status_code,
            headers=dict(response.headers),
            text=response.text,
        )


class GoogleAdsClient:
    """
    Async client for the OAuth token endpoint and the conversion upload endpoint.

    Can be used as an async context manager:
        async with GoogleAdsClient(timeout=30.0) as client:
            exchange = await client.upload_conversions(url, body, headers)
    """

    def __init__(
        self,
        timeout: float = 30.0,
        request_logger: RequestLogger | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.request_logger = request_logger or RequestLogger()
        self._client = http_client or httpx.AsyncClient(
            timeout=httpx.Timeout(timeout, connect=10.0)
        )

    async def __aenter__(self) -> GoogleAdsClient:
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    async def refresh_access_token(
        self,
        token_url: str,
        refresh_token: str,
        client_id: str,
        client_secret: str,
        trace_id: str | None = None,
    ) -> HttpExchange:
        """Exchange a refresh token for a new access token.

        Request and response bodies carry secrets and are never logged.

        Raises:
            TransportError: If the request fails before a status is received.
        """
        await self.request_logger.log_request(
            AUTH_EVENT_NAME, "POST", token_url, trace_id=trace_id
        )
        try:
            response = await self._client.post(
                token_url,
                data={
                    "refresh_token": refresh_token,
                    "client_id": client_id,
                    "client_secret": client_secret,
                    "grant_type": "refresh_token",
                },
                timeout=TOKEN_TIMEOUT,
            )
        except httpx.HTTPError as e:
            raise TransportError(f"Token refresh request failed: {e}") from e

        exchange = HttpExchange.from_response(response)
        await self.request_logger.log_response(
            AUTH_EVENT_NAME, exchange.status_code, exchange.headers, trace_id=trace_id
        )
        return exchange

    async def upload_conversions(
        self,
        url: str,
        body: dict[str, Any],
        headers: dict[str, str],
        event_name: str = "",
        trace_id: str | None = None,
    ) -> HttpExchange:
        """POST an uploadClickConversions request body.

        Raises:
            TransportError: If the request fails before a status is received.
        """
        await self.request_logger.log_request(
            event_name, "POST", url, body=body, trace_id=trace_id
        )
        try:
            response = await self._client.post(
                url,
                content=json.dumps(body),
                headers=headers,
            )
        except httpx.HTTPError as e:
            raise TransportError(f"Conversion upload request failed: {e}") from e

        exchange = HttpExchange.from_response(response)
        await self.request_logger.log_response(
            event_name,
            exchange.status_code,
            exchange.headers,
            body=exchange.text,
            trace_id=trace_id,
        )
        return exchange
