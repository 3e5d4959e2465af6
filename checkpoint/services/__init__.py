"""
==============================================================================
Services Package - Check-In Orchestration Layer
==============================================================================

Service classes driving live check-in sessions.

This package provides:
- ScanScheduler: Channel arbitration and the scan lifecycle of one session
- CheckInSessionManager: Registry of sessions, one per event
- VerificationGateway: Boundary to the external verification service

Architecture:
-------------
    ┌─────────────────────┐
    │ API / WebSocket     │
    └──────────┬──────────┘
               │
    ┌──────────▼──────────┐
    │ CheckInSessionMgr   │  ← one scheduler per event
    └──────────┬──────────┘
               │
    ┌──────────▼──────────┐
    │   ScanScheduler     │  ← barcode / sampling / manual channels
    └──────────┬──────────┘
               │
    ┌──────────▼──────────┐
    │ VerificationGateway │  ← HTTP
    └─────────────────────┘

Usage:
------
    from checkpoint.services import CheckInSessionManager

    manager = CheckInSessionManager()
    scheduler = await manager.start_session("evt-1")

==============================================================================
"""

from .verification_service import HttpVerificationGateway, VerificationGateway
from .scan_scheduler import ScanScheduler, ScanTiming
from .session_manager import CheckInSessionManager

__all__ = [
    "VerificationGateway",
    "HttpVerificationGateway",
    "ScanScheduler",
    "ScanTiming",
    "CheckInSessionManager",
]
