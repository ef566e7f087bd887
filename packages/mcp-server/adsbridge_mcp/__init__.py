"""
AdsBridge MCP Server - Model Context Protocol server for conversion uploads.

Exposes AdsBridge capabilities as MCP tools:
- Conversion resolution (config + event -> Google Ads click conversion)
- Identifier normalization and hashing
- Conversion upload with automatic token refresh

Usage:
    # Via CLI
    adsbridge-mcp

    # Via Python
    from adsbridge_mcp import server
    server.main()
"""

__version__ = "0.1.0"
