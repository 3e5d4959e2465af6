"""
Application Exception Handling

Single AppException class for all application errors with FastAPI integration.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse


# Camera-unavailable reasons
REASON_NO_DEVICES = "no_devices"
REASON_PERMISSION_DENIED = "permission_denied"
REASON_INSECURE_CONTEXT = "insecure_context"
REASON_START_FAILED = "start_failed"


class AppException(Exception):
    """
    Unified application exception for all error scenarios.

    Usage:
        raise AppException("No cameras found", "CAMERA_UNAVAILABLE", 503)
        raise AppException("Scanner busy", "SCANNER_BUSY", 409, {"state": "processing"})

    Error Codes:
        Camera:
            - CAMERA_UNAVAILABLE (503) - fatal to the session

        Recognition (absorbed by the scheduler, never returned to clients):
            - RECOGNITION_FAILED (500)
            - GATEWAY_FAILURE (502)

        Session:
            - SESSION_NOT_FOUND (404)
            - SESSION_EXISTS (409)
            - SCANNER_BUSY (409)
            - INVALID_MANUAL_ENTRY (400)

        General:
            - INTERNAL_ERROR (500)
    """

    def __init__(
        self,
        message: str,
        code: str,
        status_code: int = 400,
        details: Optional[Dict[str, Any]] = None
    ):
        """
        Initialize application exception.

        Args:
            message: Human-readable error message
            code: Machine-readable error code (e.g., "CAMERA_UNAVAILABLE")
            status_code: HTTP status code (default: 400)
            details: Additional error context (optional)
        """
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}
        self.timestamp = datetime.now(timezone.utc).isoformat()
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for JSON response."""
        error_dict = {
            "success": False,
            "error": {
                "code": self.code,
                "message": self.message,
                "timestamp": self.timestamp
            }
        }

        if self.details:
            error_dict["error"]["details"] = self.details

        return error_dict


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """
    FastAPI exception handler for AppException.

    Converts AppException to consistent JSON error response.
    """
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict()
    )


def register_exception_handlers(app: FastAPI) -> None:
    """
    Register all exception handlers with FastAPI app.

    Args:
        app: FastAPI application instance
    """
    app.add_exception_handler(AppException, app_exception_handler)


# ============================================
# CONVENIENCE FACTORY FUNCTIONS
# ============================================

def camera_unavailable(reason: str, message: Optional[str] = None) -> AppException:
    """Create camera unavailable exception."""
    messages = {
        REASON_NO_DEVICES: "No cameras found. Please ensure a camera is connected.",
        REASON_PERMISSION_DENIED: "Failed to access cameras. Please check device permissions.",
        REASON_INSECURE_CONTEXT: "Camera access requires HTTPS or localhost.",
        REASON_START_FAILED: "Failed to start the camera stream.",
    }
    return AppException(
        message or messages.get(reason, "Camera unavailable"),
        "CAMERA_UNAVAILABLE",
        503,
        {"reason": reason}
    )


def recognition_failed(reason: str) -> AppException:
    """Create recognition engine failure exception."""
    return AppException(
        f"Recognition failed: {reason}",
        "RECOGNITION_FAILED",
        500,
        {"reason": reason}
    )


def gateway_failure(reason: str) -> AppException:
    """Create verification gateway failure exception."""
    return AppException(
        f"Verification service error: {reason}",
        "GATEWAY_FAILURE",
        502,
        {"reason": reason}
    )


def session_not_found(event_id: str) -> AppException:
    """Create session not found exception."""
    return AppException(
        "No active check-in session for this event",
        "SESSION_NOT_FOUND",
        404,
        {"event_id": event_id}
    )


def session_exists(event_id: str) -> AppException:
    """Create session already active exception."""
    return AppException(
        "A check-in session is already active for this event",
        "SESSION_EXISTS",
        409,
        {"event_id": event_id}
    )


def scanner_busy(state: str) -> AppException:
    """Create scanner busy exception."""
    return AppException(
        "Scanner is processing another badge",
        "SCANNER_BUSY",
        409,
        {"state": state}
    )


def invalid_manual_entry(reason: str) -> AppException:
    """Create invalid manual entry exception."""
    return AppException(
        f"Invalid badge number: {reason}",
        "INVALID_MANUAL_ENTRY",
        400,
        {"reason": reason}
    )


def internal_error(message: str = "Internal server error") -> AppException:
    """Create internal server error exception."""
    return AppException(message, "INTERNAL_ERROR", 500)
