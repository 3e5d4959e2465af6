"""
==============================================================================
Verification Gateway Tests
==============================================================================

Tests for the HTTP verification client against a mocked transport.

==============================================================================
"""

import json

import httpx
import pytest

from checkpoint.core import AppException
from checkpoint.scanner.models import SourceChannel
from checkpoint.schemas.scan import ScanStatus
from checkpoint.services.verification_service import HttpVerificationGateway


def make_gateway(handler) -> HttpVerificationGateway:
    return HttpVerificationGateway(
        base_url="http://verifier.test/",
        timeout=1.0,
        transport=httpx.MockTransport(handler),
    )


class TestHttpVerificationGateway:
    """Tests for request shape and response handling."""

    @pytest.mark.asyncio
    async def test_verified(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={
                "success": True,
                "status": "verified",
                "staff_name": "Jo Bloggs",
                "provider_name": "Acme Security",
                "role": "steward",
                "message": "Checked in",
            })

        gateway = make_gateway(handler)
        try:
            result = await gateway.verify_and_record("evt-1", "1017048777048490", SourceChannel.OCR)
        finally:
            await gateway.close()

        assert seen["path"] == "/events/evt-1/scans"
        assert seen["body"] == {
            "candidate_id": "1017048777048490",
            "method": "ocr_scan",
            "source_channel": "ocr",
        }
        assert result.status == ScanStatus.VERIFIED
        assert result.staff_name == "Jo Bloggs"
        assert result.candidate_id == "1017048777048490"
        assert result.source_channel == SourceChannel.OCR

    @pytest.mark.asyncio
    @pytest.mark.parametrize("channel, method", [
        (SourceChannel.BARCODE, "qr_scan"),
        (SourceChannel.OCR, "ocr_scan"),
        (SourceChannel.MANUAL, "manual_entry"),
    ])
    async def test_method_mapping(self, channel, method):
        methods = []

        def handler(request: httpx.Request) -> httpx.Response:
            methods.append(json.loads(request.content)["method"])
            return httpx.Response(200, json={"status": "duplicate"})

        gateway = make_gateway(handler)
        try:
            await gateway.verify_and_record("evt-1", "123456789012", channel)
        finally:
            await gateway.close()

        assert methods == [method]

    @pytest.mark.asyncio
    async def test_signed_out(self):
        gateway = make_gateway(lambda request: httpx.Response(200, json={"status": "signed_out"}))
        try:
            result = await gateway.verify_and_record("evt-1", "123456789012", SourceChannel.BARCODE)
        finally:
            await gateway.close()

        assert result.status == ScanStatus.SIGNED_OUT

    @pytest.mark.asyncio
    @pytest.mark.parametrize("response", [
        httpx.Response(500, json={"detail": "boom"}),
        httpx.Response(200, text="not json"),
        httpx.Response(200, json={"success": True}),
        httpx.Response(200, json={"status": "teleported"}),
    ])
    async def test_failures_raised(self, response):
        """Test server errors and malformed bodies become GATEWAY_FAILURE."""
        gateway = make_gateway(lambda request: response)
        try:
            with pytest.raises(AppException) as exc_info:
                await gateway.verify_and_record("evt-1", "123456789012", SourceChannel.OCR)
        finally:
            await gateway.close()

        assert exc_info.value.code == "GATEWAY_FAILURE"
        assert exc_info.value.status_code == 502

    @pytest.mark.asyncio
    async def test_transport_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        gateway = make_gateway(handler)
        try:
            with pytest.raises(AppException) as exc_info:
                await gateway.verify_and_record("evt-1", "123456789012", SourceChannel.OCR)
        finally:
            await gateway.close()

        assert "connection refused" in exc_info.value.message
