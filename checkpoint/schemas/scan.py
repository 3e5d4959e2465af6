"""
==============================================================================
Scan Schemas Module
==============================================================================

Verification results and the request/response schemas of the check-in API.

==============================================================================
"""

import enum
from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from checkpoint.scanner.models import ScanLifecycleState, SourceChannel


class ScanStatus(str, enum.Enum):
    """
    Classification returned by the verification service.

    - VERIFIED: On the event roster
    - UNLISTED: Valid scan, not on the roster
    - DUPLICATE: Already checked in within the duplicate window
    - SIGNED_OUT: Second scan of an active check-in
    - ERROR: Verification could not be completed
    """

    VERIFIED = "verified"
    UNLISTED = "unlisted"
    DUPLICATE = "duplicate"
    SIGNED_OUT = "signed_out"
    ERROR = "error"

    def __str__(self) -> str:
        """Return the enum value as string."""
        return self.value


# =============================================================================
# VERIFICATION RESULT
# =============================================================================

class ScanResult(BaseModel):
    """Outcome of one verification call."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: Optional[str] = None
    success: bool = False
    status: ScanStatus
    staff_name: Optional[str] = None
    provider_name: Optional[str] = None
    role: Optional[str] = None
    candidate_id: Optional[str] = None
    source_channel: Optional[SourceChannel] = None
    message: str = ""
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def local_error(
        cls,
        candidate_id: str,
        source_channel: SourceChannel,
        error: Exception
    ) -> "ScanResult":
        """Synthesize an error record when the verification call fails."""
        now = datetime.now(timezone.utc)
        detail = getattr(error, "message", None) or str(error) or "Unknown error"
        return cls(
            id=f"error-{int(now.timestamp() * 1000)}",
            success=False,
            status=ScanStatus.ERROR,
            candidate_id=candidate_id,
            source_channel=source_channel,
            message=f"Error processing scan: {detail}",
            timestamp=now,
        )


# =============================================================================
# REQUEST SCHEMAS
# =============================================================================

class ManualEntryRequest(BaseModel):
    """Operator-typed badge number."""
    candidate_id: str = Field(..., min_length=1, max_length=64)

    @field_validator("candidate_id")
    @classmethod
    def require_content(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Badge number cannot be blank")
        return v


class ViewportUpdate(BaseModel):
    """Displayed size of the camera preview."""
    width: int = Field(..., ge=0, le=10000)
    height: int = Field(..., ge=0, le=10000)


# =============================================================================
# RESPONSE SCHEMAS
# =============================================================================

class SessionStatusResponse(BaseModel):
    """Snapshot of a check-in session."""
    success: bool = True
    event_id: str
    state: ScanLifecycleState
    busy: bool
    last_result: Optional[ScanResult] = None
    error: Optional[str] = None


class ManualEntryResponse(BaseModel):
    """Manual entry accepted for processing."""
    success: bool = True
    accepted: bool
    candidate_id: str


class RecentScansResponse(BaseModel):
    """Recent results, newest first."""
    success: bool = True
    items: List[ScanResult]
    total: int = Field(ge=0)
