"""
==============================================================================
Schemas Package - Pydantic Models
==============================================================================

Request and response schemas using Pydantic for validation.

This package provides:
- Common: Shared response schemas
- Scan: Verification results and check-in session schemas

==============================================================================
"""

from .common import MessageResponse
from .scan import (
    ScanStatus,
    ScanResult,
    ManualEntryRequest,
    ManualEntryResponse,
    ViewportUpdate,
    SessionStatusResponse,
    RecentScansResponse,
)

__all__ = [
    # Common
    "MessageResponse",
    # Scan
    "ScanStatus",
    "ScanResult",
    "ManualEntryRequest",
    "ManualEntryResponse",
    "ViewportUpdate",
    "SessionStatusResponse",
    "RecentScansResponse",
]
