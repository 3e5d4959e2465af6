"""
==============================================================================
Check-In Endpoints
==============================================================================

Endpoints controlling the live check-in session of an event.

    POST   /checkin/{event_id}/session    start scanning (secure transport only)
    GET    /checkin/{event_id}/session    lifecycle state and latest result
    DELETE /checkin/{event_id}/session    tear the session down
    POST   /checkin/{event_id}/manual     operator-typed badge number
    PUT    /checkin/{event_id}/viewport   displayed preview size
    GET    /checkin/{event_id}/scans      recent results, newest first

==============================================================================
"""

from fastapi import APIRouter, Depends, Query, status

from checkpoint.core.dependencies import (
    get_scheduler,
    get_session_manager,
    require_secure_transport,
)
from checkpoint.schemas import (
    ManualEntryRequest,
    ManualEntryResponse,
    MessageResponse,
    RecentScansResponse,
    SessionStatusResponse,
    ViewportUpdate,
)
from checkpoint.services.scan_scheduler import ScanScheduler
from checkpoint.services.session_manager import CheckInSessionManager


router = APIRouter(prefix="/checkin", tags=["Check-In"])


class CheckInController:
    """Controller for check-in session operations."""

    def __init__(self, scheduler: ScanScheduler):
        self._scheduler = scheduler

    def get_status(self) -> SessionStatusResponse:
        """Current lifecycle snapshot."""
        return SessionStatusResponse(
            event_id=self._scheduler.event_id,
            state=self._scheduler.state,
            busy=self._scheduler.busy,
            last_result=self._scheduler.last_result,
            error=self._scheduler.error,
        )

    def submit_manual(self, request: ManualEntryRequest) -> ManualEntryResponse:
        """Queue a manual badge number for verification."""
        candidate = self._scheduler.submit_manual(request.candidate_id)
        return ManualEntryResponse(accepted=True, candidate_id=candidate.extracted_id)

    def update_viewport(self, viewport: ViewportUpdate) -> SessionStatusResponse:
        """Record the preview size used for region mapping."""
        self._scheduler.set_viewport(viewport.width, viewport.height)
        return self.get_status()

    def recent_scans(self, limit: int) -> RecentScansResponse:
        """Recent results newest first."""
        items = self._scheduler.history.recent(limit)
        return RecentScansResponse(items=items, total=len(self._scheduler.history))


@router.post(
    "/{event_id}/session",
    response_model=SessionStatusResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_secure_transport)]
)
async def start_session(
    event_id: str,
    manager: CheckInSessionManager = Depends(get_session_manager)
):
    """
    Start scanning for an event.

    A session whose camera is unavailable is still created in the ERROR
    state; manual entry keeps working.
    """
    scheduler = await manager.start_session(event_id)
    return CheckInController(scheduler).get_status()


@router.get("/{event_id}/session", response_model=SessionStatusResponse)
async def get_session(scheduler: ScanScheduler = Depends(get_scheduler)):
    """Get the lifecycle state of a session."""
    return CheckInController(scheduler).get_status()


@router.delete("/{event_id}/session", response_model=MessageResponse)
async def stop_session(
    event_id: str,
    manager: CheckInSessionManager = Depends(get_session_manager)
):
    """Stop scanning and release the camera."""
    await manager.stop_session(event_id)
    return MessageResponse(message=f"Check-in session for {event_id} stopped")


@router.post(
    "/{event_id}/manual",
    response_model=ManualEntryResponse,
    status_code=status.HTTP_202_ACCEPTED
)
async def manual_entry(
    request: ManualEntryRequest,
    scheduler: ScanScheduler = Depends(get_scheduler)
):
    """
    Submit a badge number typed by the operator.

    Returns 409 while another scan is being processed.
    """
    return CheckInController(scheduler).submit_manual(request)


@router.put("/{event_id}/viewport", response_model=SessionStatusResponse)
async def update_viewport(
    viewport: ViewportUpdate,
    scheduler: ScanScheduler = Depends(get_scheduler)
):
    """Report the displayed size of the camera preview."""
    return CheckInController(scheduler).update_viewport(viewport)


@router.get("/{event_id}/scans", response_model=RecentScansResponse)
async def recent_scans(
    limit: int = Query(10, ge=1, le=100),
    scheduler: ScanScheduler = Depends(get_scheduler)
):
    """Get recent scan results, newest first."""
    return CheckInController(scheduler).recent_scans(limit)
