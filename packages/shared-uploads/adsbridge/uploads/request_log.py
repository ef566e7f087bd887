"""
Request/response logging for conversion uploads.

Every network call is recorded before and after it is made. Records are
gated by a LogPolicy and emitted to one or more sinks:
- LoggerSink: JSON lines on the stdlib ``adsbridge.uploads.request_log`` logger
- BigQueryLogSink: rows streamed to a BigQuery table, re-keyed to snake_case

Sink failures are logged and never affect the upload.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Callable, Sequence
from datetime import UTC, datetime
from typing import Any, Protocol

from google.api_core import exceptions
from google.cloud import bigquery

from adsbridge.uploads.config import LogPolicy, env_debug_mode

logger = logging.getLogger(__name__)

LOG_NAME = "gAdsOfflineConversion"

# Record key -> BigQuery column
BIGQUERY_KEY_MAP = {
    "Name": "tag_name",
    "Type": "type",
    "TraceId": "trace_id",
    "EventName": "event_name",
    "RequestMethod": "request_method",
    "RequestUrl": "request_url",
    "RequestBody": "request_body",
    "ResponseStatusCode": "response_status_code",
    "ResponseHeaders": "response_headers",
    "ResponseBody": "response_body",
}


class LogSink(Protocol):
    """Destination for request/response records."""

    async def emit(self, record: dict[str, Any]) -> None: ...


class LoggerSink:
    """Emit records as JSON on a stdlib logger."""

    def __init__(self, target: logging.Logger | None = None, level: int = logging.INFO):
        self.target = target or logger
        self.level = level

    async def emit(self, record: dict[str, Any]) -> None:
        self.target.log(self.level, json.dumps(record, default=str))


def to_bigquery_row(record: dict[str, Any], timestamp: datetime | None = None) -> dict[str, Any]:
    """Re-key a record for BigQuery and serialize nested fields as JSON strings."""
    row: dict[str, Any] = {}
    for key, value in record.items():
        column = BIGQUERY_KEY_MAP.get(key)
        if column is None:
            continue
        if isinstance(value, (dict, list)):
            value = json.dumps(value, default=str)
        row[column] = value
    row["timestamp"] = (timestamp or datetime.now(UTC)).isoformat()
    return row


class BigQueryLogSink:
    """
    Stream records into a BigQuery table.

    Example:
        sink = BigQueryLogSink(table_id="my-project.logs.gads_conversions")
        request_logger = RequestLogger(LogPolicy.ALWAYS, sinks=[LoggerSink(), sink])
    """

    def __init__(
        self,
        table_id: str,
        project_id: str | None = None,
        client: bigquery.Client | None = None,
    ):
        self.table_id = table_id
        self.project_id = project_id
        self._client = client

    @property
    def client(self) -> bigquery.Client:
        """Lazy initialization of BigQuery client."""
        if self._client is None:
            self._client = bigquery.Client(project=self.project_id)
        return self._client

    async def emit(self, record: dict[str, Any]) -> None:
        row = to_bigquery_row(record)
        try:
            errors = await asyncio.to_thread(self.client.insert_rows_json, self.table_id, [row])
        except exceptions.GoogleAPIError as e:
            logger.warning(f"Failed to write log row to {self.table_id}: {e}")
            return
        if errors:
            logger.warning(f"BigQuery rejected log row for {self.table_id}: {errors}")


class RequestLogger:
    """Policy-gated request/response recorder.

    Args:
        policy: When to emit. None behaves like LogPolicy.DEBUG.
        debug_mode: Callable reporting whether the runtime is in debug/preview mode.
        sinks: Destinations for records. Defaults to a LoggerSink.
    """

    def __init__(
        self,
        policy: LogPolicy | None = None,
        debug_mode: Callable[[], bool] = env_debug_mode,
        sinks: Sequence[LogSink] | None = None,
        name: str = LOG_NAME,
    ):
        self.policy = policy
        self.debug_mode = debug_mode
        self.sinks: list[LogSink] = list(sinks) if sinks is not None else [LoggerSink()]
        self.name = name

    def is_enabled(self) -> bool:
        """Return True if records should be emitted now."""
        if self.policy == LogPolicy.ALWAYS:
            return True
        if self.policy == LogPolicy.NEVER:
            return False
        return bool(self.debug_mode())

    async def _emit(self, record: dict[str, Any]) -> None:
        for sink in self.sinks:
            try:
                await sink.emit(record)
            except Exception:
                logger.exception(f"Log sink {type(sink).__name__} failed")

    async def log_request(
        self,
        event_name: str,
        method: str,
        url: str,
        body: Any = None,
        trace_id: str | None = None,
    ) -> None:
        """Record an outgoing request. ``body`` is omitted when None."""
        if not self.is_enabled():
            return
        record: dict[str, Any] = {
            "Name": self.name,
            "Type": "Request",
            "TraceId": trace_id,
            "EventName": event_name,
            "RequestMethod": method,
            "RequestUrl": url,
        }
        if body is not None:
            record["RequestBody"] = body
        await self._emit(record)

    async def log_response(
        self,
        event_name: str,
        status_code: int,
        headers: dict[str, str] | None = None,
        body: Any = None,
        trace_id: str | None = None,
    ) -> None:
        """Record a received response. ``body`` is omitted when None."""
        if not self.is_enabled():
            return
        record: dict[str, Any] = {
            "Name": self.name,
            "Type": "Response",
            "TraceId": trace_id,
            "EventName": event_name,
            "ResponseStatusCode": status_code,
            "ResponseHeaders": dict(headers or {}),
        }
        if body is not None:
            record["ResponseBody"] = body
        await self._emit(record)
