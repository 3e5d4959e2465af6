"""
==============================================================================
WebSocket Package
==============================================================================

Real-time WebSocket handlers for the operator screen.

Handlers:
---------
- checkin: Session state and scan results for one event, manual entry

==============================================================================
"""

from .checkin import router as checkin_router

__all__ = ["checkin_router"]
