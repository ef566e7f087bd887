"""
AdsBridge MCP Server - Main entry point.

MCP server exposing conversion tools:
- resolve_conversion: preview the click conversion built from config + event
- hash_identifier: normalize and hash a single user identifier
- upload_conversion: resolve and upload a conversion to Google Ads

Upload settings are read from ADSBRIDGE_* environment variables.
"""

from __future__ import annotations

import logging

from fastmcp import FastMCP

from adsbridge.conversions import (
    ConversionConfig,
    HashPolicy,
    normalize_and_hash,
)
from adsbridge.conversions import resolve_conversion as _resolve
from adsbridge.uploads import ConfigurationError, ConversionUploader, UploaderSettings

# Initialize server
mcp = FastMCP("AdsBridge Conversion Uploads")


# =============================================================================
# Conversion Tools
# =============================================================================


@mcp.tool()
def resolve_conversion(
    config: dict,
    event: dict,
    hash_policy: str = HashPolicy.HASH_ALL.value,
) -> dict:
    """
    Resolve a Google Ads click conversion without uploading it.

    Args:
        config: Conversion configuration (customer_id, conversion_action, overrides)
        event: Raw event payload
        hash_policy: "hash_all" or "hash_contact_only"

    Returns:
        The resolved conversion in Google Ads JSON shape
    """
    try:
        conversion_config = ConversionConfig.from_dict(config)
        record = _resolve(conversion_config, event, HashPolicy(hash_policy))
        return {"success": True, "conversion": record.to_dict()}

    except ValueError as e:
        return {"success": False, "error": str(e)}


@mcp.tool()
def hash_identifier(kind: str, value: str) -> dict:
    """
    Normalize and SHA-256 hash a user identifier.

    Args:
        kind: Identifier kind (hashedEmail, hashedPhoneNumber, mobileId, ...)
        value: Raw identifier value

    Returns:
        The hashed value
    """
    return {"kind": kind, "hashed": normalize_and_hash(kind, value)}


@mcp.tool()
async def upload_conversion(
    config: dict,
    event: dict,
    trace_id: str | None = None,
) -> dict:
    """
    Resolve and upload a conversion to Google Ads.

    Refreshes the cached access token once if Google Ads answers 401.

    Args:
        config: Conversion configuration (customer_id, conversion_action, overrides)
        event: Raw event payload
        trace_id: Optional correlation id for request logs

    Returns:
        Upload outcome with status, HTTP status code and attempt counts
    """
    try:
        settings = UploaderSettings.from_env()
        conversion_config = ConversionConfig.from_dict(config)
    except (ConfigurationError, ValueError) as e:
        return {"success": False, "error": str(e)}

    async with ConversionUploader(settings) as uploader:
        result = await uploader.upload(conversion_config, event, trace_id=trace_id)

    return {
        "success": result.is_success,
        "status": result.status.value,
        "status_code": result.status_code,
        "attempts": result.attempts,
        "refresh_count": result.refresh_count,
        "error": result.error,
    }


# =============================================================================
# Entry Point
# =============================================================================


def main():
    """Run the MCP server."""
    logging.basicConfig(level=logging.INFO)
    mcp.run()


if __name__ == "__main__":
    main()
