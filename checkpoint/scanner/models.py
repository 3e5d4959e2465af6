"""
==============================================================================
Scanner Models Module
==============================================================================

Enumerations and Pydantic models shared by the capture pipeline.

==============================================================================
"""

from __future__ import annotations

import enum
from datetime import datetime, timezone
from typing import Optional

import numpy as np
from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# ENUMS
# =============================================================================

class SourceChannel(str, enum.Enum):
    """
    Channel that produced a candidate.

    - BARCODE: continuous barcode decode
    - OCR: periodic region sampling through the recognition engine
    - MANUAL: operator-typed badge number
    """

    BARCODE = "barcode"
    OCR = "ocr"
    MANUAL = "manual"

    def __str__(self) -> str:
        """Return the enum value as string."""
        return self.value

    @property
    def method(self) -> str:
        """Check-in method name understood by the verification service."""
        return {
            "barcode": "qr_scan",
            "ocr": "ocr_scan",
            "manual": "manual_entry",
        }[self.value]


class ScanLifecycleState(str, enum.Enum):
    """
    Scan scheduler lifecycle.

    State Machine:

    ┌──────┐ start()  ┌───────────┐ candidate ┌────────────┐ result ┌──────────┐
    │ IDLE │ ───────▶ │ CAPTURING │ ────────▶ │ PROCESSING │ ─────▶ │ COOLDOWN │
    └──────┘          └───────────┘           └────────────┘        └──────────┘
        │                   ▲                                            │
        │                   └──────────── camera reacquired ─────────────┤
        │                                                                │
        │  camera fault     ┌───────┐          no camera                 │
        └─────────────────▶ │ ERROR │ ◀──────────────────────────────────┘
                            └───────┘

    ERROR is terminal for the camera. A manual entry may still be processed
    from ERROR; its cooldown returns to ERROR. CLOSED is entered from any
    state by teardown.
    """

    IDLE = "idle"
    CAPTURING = "capturing"
    PROCESSING = "processing"
    COOLDOWN = "cooldown"
    ERROR = "error"
    CLOSED = "closed"

    def __str__(self) -> str:
        """Return the enum value as string."""
        return self.value

    @property
    def channels_active(self) -> bool:
        """Recognition channels only run while capturing."""
        return self == ScanLifecycleState.CAPTURING


# =============================================================================
# FRAME & REGION MODELS
# =============================================================================

class RecognitionRegion(BaseModel):
    """
    Fractional guide box relative to the displayed viewport.

    Attributes:
        top: Top edge as a fraction of displayed height
        left: Left edge as a fraction of displayed width
        width: Box width as a fraction of displayed width
        height: Box height as a fraction of displayed height
    """

    model_config = ConfigDict(frozen=True)

    top: float = Field(default=0.32, ge=0.0, le=1.0)
    left: float = Field(default=0.05, ge=0.0, le=1.0)
    width: float = Field(default=0.90, gt=0.0, le=1.0)
    height: float = Field(default=0.25, gt=0.0, le=1.0)


# The on-screen badge guide
BADGE_REGION = RecognitionRegion()


class MappedRegion(BaseModel):
    """Pixel rectangle in native capture space."""

    model_config = ConfigDict(frozen=True)

    x: int
    y: int
    width: int
    height: int

    @property
    def is_empty(self) -> bool:
        """True when the rectangle covers no pixels."""
        return self.width <= 0 or self.height <= 0


class CaptureFrame(BaseModel):
    """
    One sampled video frame.

    Attributes:
        pixels: H x W x C uint8 array, RGB or RGBA channel order
        native_width: Capture resolution width
        native_height: Capture resolution height
        displayed_width: Width of the viewport the guide box is drawn on
        displayed_height: Height of the viewport the guide box is drawn on
        captured_at: Capture timestamp (UTC)
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    pixels: np.ndarray
    native_width: int = Field(..., ge=0)
    native_height: int = Field(..., ge=0)
    displayed_width: int = Field(..., ge=0)
    displayed_height: int = Field(..., ge=0)
    captured_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def from_array(
        cls,
        pixels: np.ndarray,
        displayed_width: int,
        displayed_height: int
    ) -> "CaptureFrame":
        """Build a frame whose native size is taken from the array shape."""
        height, width = pixels.shape[:2]
        return cls(
            pixels=pixels,
            native_width=width,
            native_height=height,
            displayed_width=displayed_width,
            displayed_height=displayed_height,
        )


class CandidateExtractionResult(BaseModel):
    """Outcome of one recognition attempt."""

    model_config = ConfigDict(frozen=True)

    raw_text: str
    normalized_text: str
    extracted_id: Optional[str] = None
    source_channel: SourceChannel

    @property
    def found(self) -> bool:
        """True when a candidate ID was extracted."""
        return bool(self.extracted_id)
