"""
==============================================================================
FastAPI Dependencies Module
==============================================================================

Dependency injection for check-in routes.

This module implements:
- Session manager provider
- Live session lookup by event id
- Secure transport check guarding camera access

Secure transport:
-----------------
Camera capture is only allowed over HTTPS/WSS or from localhost. Behind a
TLS-terminating proxy the X-Forwarded-Proto header is honoured.

==============================================================================
"""

from __future__ import annotations

import logging

from fastapi import Depends
from starlette.requests import HTTPConnection

from checkpoint.config import get_settings
from checkpoint.core import exceptions
from checkpoint.services.scan_scheduler import ScanScheduler
from checkpoint.services.session_manager import CheckInSessionManager


# Module logger
logger = logging.getLogger(__name__)

SECURE_SCHEMES = frozenset({"https", "wss"})
LOCAL_HOSTS = frozenset({"localhost", "127.0.0.1", "::1"})


def get_session_manager() -> CheckInSessionManager:
    """FastAPI dependency providing the session registry."""
    return CheckInSessionManager()


def get_scheduler(
    event_id: str,
    manager: CheckInSessionManager = Depends(get_session_manager)
) -> ScanScheduler:
    """
    FastAPI dependency resolving the live session of an event.

    Raises:
        AppException: SESSION_NOT_FOUND
    """
    return manager.get(event_id)


def is_secure_connection(connection: HTTPConnection) -> bool:
    """True for HTTPS/WSS requests and requests addressed to localhost."""
    forwarded = connection.headers.get("x-forwarded-proto", "").split(",")[0].strip().lower()
    if connection.url.scheme in SECURE_SCHEMES or forwarded in SECURE_SCHEMES:
        return True

    return (connection.url.hostname or "").lower() in LOCAL_HOSTS


def require_secure_transport(connection: HTTPConnection) -> None:
    """
    FastAPI dependency rejecting camera access over plain HTTP.

    Raises:
        AppException: CAMERA_UNAVAILABLE with reason insecure_context
    """
    if not get_settings().require_secure_transport:
        return

    if not is_secure_connection(connection):
        logger.warning(f"Camera access refused over {connection.url.scheme}: {connection.url.hostname}")
        raise exceptions.camera_unavailable(
            exceptions.REASON_INSECURE_CONTEXT,
            "Camera access requires HTTPS. Please use a secure connection or localhost."
        )
