"""
==============================================================================
Verification Gateway Module
==============================================================================

Client for the external verification service that classifies a badge
number against the event roster and records the check-in.

Contract:
---------
    POST {base_url}/events/{event_id}/scans
    {"candidate_id": "1017048777048490", "method": "qr_scan", "source_channel": "barcode"}

    200 -> ScanResult JSON
          {"success": true, "status": "verified", "staff_name": "...", ...}

Any transport error, non-2xx response or malformed body is raised as a
GATEWAY_FAILURE AppException. The scan scheduler turns it into a local
error record.

==============================================================================
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Optional

import httpx
from pydantic import ValidationError

from checkpoint.config import get_settings
from checkpoint.core import exceptions
from checkpoint.scanner.models import SourceChannel
from checkpoint.schemas.scan import ScanResult


# Module logger
logger = logging.getLogger(__name__)


class VerificationGateway(ABC):
    """Verification service boundary."""

    @abstractmethod
    async def verify_and_record(
        self,
        event_id: str,
        candidate_id: str,
        source_channel: SourceChannel
    ) -> ScanResult:
        """Classify a candidate and record the check-in."""
        ...

    async def close(self) -> None:
        """Release client resources."""


class HttpVerificationGateway(VerificationGateway):
    """
    httpx based verification client.

    Example:
        >>> gateway = HttpVerificationGateway("http://verifier:9000")
        >>> result = await gateway.verify_and_record("evt-1", "1017048777048490", SourceChannel.OCR)
        >>> result.status
        <ScanStatus.VERIFIED: 'verified'>
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ) -> None:
        """
        Initialize gateway client.

        Args:
            base_url: Service base URL (uses settings if None)
            timeout: Request timeout in seconds (uses settings if None)
            transport: Optional httpx transport (used by tests)
        """
        settings = get_settings()
        self._base_url = (base_url or settings.verification_gateway_url).rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            timeout=timeout or settings.verification_timeout_seconds,
            transport=transport,
        )

    async def verify_and_record(
        self,
        event_id: str,
        candidate_id: str,
        source_channel: SourceChannel
    ) -> ScanResult:
        payload = {
            "candidate_id": candidate_id,
            "method": source_channel.method,
            "source_channel": source_channel.value,
        }

        logger.debug(f"POST /events/{event_id}/scans {payload}")

        try:
            response = await self._client.post(f"/events/{event_id}/scans", json=payload)
            response.raise_for_status()
            result = ScanResult.model_validate(response.json())
        except httpx.HTTPStatusError as e:
            raise exceptions.gateway_failure(f"HTTP {e.response.status_code}")
        except httpx.HTTPError as e:
            raise exceptions.gateway_failure(str(e) or type(e).__name__)
        except (ValidationError, ValueError) as e:
            raise exceptions.gateway_failure(f"invalid response: {e}")

        return result.model_copy(update={
            "candidate_id": result.candidate_id or candidate_id,
            "source_channel": source_channel,
        })

    async def close(self) -> None:
        await self._client.aclose()
