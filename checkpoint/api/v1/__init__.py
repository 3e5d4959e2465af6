"""
==============================================================================
API v1 Endpoints
==============================================================================

Version 1 of the REST API.

Routers:
--------
- health: Health check endpoints
- checkin: Check-in session control, manual entry and scan history

==============================================================================
"""

from . import health, checkin

__all__ = ["health", "checkin"]
