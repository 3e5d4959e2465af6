"""
==============================================================================
Health Check Endpoints
==============================================================================

System health status endpoints for monitoring and orchestration.

==============================================================================
"""

from fastapi import APIRouter, Depends

from checkpoint.core.dependencies import get_session_manager
from checkpoint.scanner.models import ScanLifecycleState
from checkpoint.services.session_manager import CheckInSessionManager


router = APIRouter(prefix="/health", tags=["Health"])


class HealthController:
    """Controller for health check operations."""

    def __init__(self, manager: CheckInSessionManager):
        self._manager = manager

    def check_sessions(self) -> dict:
        """Summarize camera and recognition engine availability per session."""
        sessions = [self._manager.get(event_id) for event_id in self._manager.event_ids]
        engines = [session.engine_ready for session in sessions]
        return {
            "active": len(sessions),
            "camera_errors": sum(1 for s in sessions if s.state == ScanLifecycleState.ERROR),
            "cameras_streaming": sum(1 for s in sessions if s.camera_streaming),
            "engines_ready": sum(1 for ready in engines if ready),
            "engine_errors": sum(1 for ready in engines if ready is False),
        }

    def get_health(self) -> dict:
        """Get full health status."""
        sessions = self.check_sessions()

        camera = "degraded" if sessions["camera_errors"] else "healthy"
        recognition = "degraded" if sessions["engine_errors"] else "healthy"
        overall = "healthy" if camera == recognition == "healthy" else "degraded"

        return {
            "status": overall,
            "components": {
                "api": "healthy",
                "camera": camera,
                "recognition": recognition,
            },
            "details": sessions,
        }


@router.get("")
async def health_check(manager: CheckInSessionManager = Depends(get_session_manager)):
    """
    Health check endpoint.

    Returns API status and a summary of live check-in sessions.
    """
    controller = HealthController(manager)
    return controller.get_health()


@router.get("/ready")
async def readiness_check():
    """Readiness probe for container orchestration."""
    return {"ready": True}


@router.get("/live")
async def liveness_check():
    """Liveness probe for container orchestration."""
    return {"alive": True}
