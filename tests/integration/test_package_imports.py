"""Integration tests for package imports."""

import pytest


class TestAllPackagesImportable:
    """Test that all AdsBridge packages can be imported together."""

    def test_conversions_package_imports(self):
        """Conversions package classes should be importable."""
        from adsbridge.conversions import ConversionConfig
        from adsbridge.conversions import ConversionRecord
        from adsbridge.conversions import ConversionResolver
        from adsbridge.conversions import HashPolicy

        assert ConversionConfig is not None
        assert ConversionRecord is not None
        assert ConversionResolver is not None
        assert HashPolicy is not None

    def test_uploads_package_imports(self):
        """Uploads package classes should be importable."""
        from adsbridge.uploads import ConversionUploader
        from adsbridge.uploads import GoogleAdsClient
        from adsbridge.uploads import SecretManagerCredentialCache
        from adsbridge.uploads import UploaderSettings

        assert ConversionUploader is not None
        assert GoogleAdsClient is not None
        assert SecretManagerCredentialCache is not None
        assert UploaderSettings is not None

    def test_mcp_server_imports(self):
        """MCP server should be importable."""
        from adsbridge_mcp.server import main
        from adsbridge_mcp.server import mcp

        assert mcp is not None
        assert callable(main)
        assert callable(mcp._tool_manager._tools["upload_conversion"].fn)


class TestCrossPackageFlow:
    """Test conversions and uploads work together without network access."""

    @pytest.mark.asyncio
    async def test_resolve_and_upload_with_mock_transport(self):
        """A resolved conversion flows through the uploader unchanged."""
        import json

        import httpx
        from adsbridge.conversions import ConversionConfig
        from adsbridge.uploads import (
            AuthMode,
            ConversionUploader,
            GoogleAdsClient,
            InMemoryCredentialCache,
            LogPolicy,
            RequestLogger,
            UploaderSettings,
        )

        sent = []

        def handler(request: httpx.Request) -> httpx.Response:
            sent.append(json.loads(request.content))
            return httpx.Response(200, json={})

        request_logger = RequestLogger(LogPolicy.NEVER)
        settings = UploaderSettings(
            login_customer_id="1",
            auth_mode=AuthMode.RELAY,
            container_key="eu:id:key",
        )
        client = GoogleAdsClient(
            request_logger=request_logger,
            http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        )

        async with ConversionUploader(
            settings,
            cache=InMemoryCredentialCache(),
            client=client,
            request_logger=request_logger,
        ) as uploader:
            result = await uploader.upload(
                ConversionConfig(customer_id="2", conversion_action="3"),
                {"transaction_id": "T-9", "x-ga-mp1-tr": "12.5"},
            )

        assert result.is_success
        conversion = sent[0]["conversions"][0]
        assert conversion["orderId"] == "T-9"
        assert conversion["conversionValue"] == 12.5
        assert conversion["currencyCode"] == "USD"
