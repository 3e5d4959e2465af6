"""
==============================================================================
Check-In Session Manager Module
==============================================================================

Registry of live check-in sessions, one ScanScheduler per event.

Each session owns its own camera handle, recognition engine and gateway
client; nothing is shared between sessions. The manager is a process-wide
singleton started and shut down with the application lifespan.

==============================================================================
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Dict, List, Optional

from checkpoint.config import get_settings
from checkpoint.core import exceptions
from checkpoint.scanner.barcode import BarcodeDecoder
from checkpoint.scanner.camera import CameraSource, OpenCVCamera
from checkpoint.scanner.recognizer import TesseractRecognizer, TextRecognizer
from checkpoint.services.scan_scheduler import ScanScheduler
from checkpoint.services.verification_service import (
    HttpVerificationGateway,
    VerificationGateway,
)


# Module logger
logger = logging.getLogger(__name__)


class CheckInSessionManager:
    """
    Manager for per-event scan schedulers.

    Component factories can be replaced to run sessions against fake
    hardware and services.

    Example:
        >>> manager = CheckInSessionManager()
        >>> scheduler = await manager.start_session("evt-1")
        >>> manager.get("evt-1").state
        <ScanLifecycleState.CAPTURING: 'capturing'>
        >>> await manager.shutdown_all()
    """

    _instance: Optional[CheckInSessionManager] = None

    def __new__(cls) -> CheckInSessionManager:
        """Singleton pattern."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self) -> None:
        """Initialize the session manager."""
        if getattr(self, '_initialized', False):
            return

        self._settings = get_settings()
        self._sessions: Dict[str, ScanScheduler] = {}
        self._lock = asyncio.Lock()

        self.camera_factory: Callable[[], CameraSource] = self._default_camera
        self.recognizer_factory: Callable[[], TextRecognizer] = self._default_recognizer
        self.gateway_factory: Callable[[], VerificationGateway] = HttpVerificationGateway
        self.decoder_factory: Callable[[], BarcodeDecoder] = BarcodeDecoder

        self._initialized = True

    # =========================================================================
    # DEFAULT COMPONENTS
    # =========================================================================

    def _default_camera(self) -> CameraSource:
        return OpenCVCamera(
            preferred_index=self._settings.camera_index,
            scan_limit=self._settings.camera_device_scan_limit,
            width=self._settings.capture_width,
            height=self._settings.capture_height,
        )

    def _default_recognizer(self) -> TextRecognizer:
        return TesseractRecognizer(
            lang=self._settings.tesseract_lang,
            config=self._settings.tesseract_config,
            tesseract_cmd=self._settings.tesseract_cmd,
        )

    # =========================================================================
    # SESSION OPERATIONS
    # =========================================================================

    async def start_session(self, event_id: str) -> ScanScheduler:
        """
        Create and start the scheduler for an event.

        A session whose camera could not be started is still registered
        (in ERROR) so the operator can see why and fall back to manual
        entry.

        Raises:
            AppException: SESSION_EXISTS if the event already has a session
        """
        async with self._lock:
            if event_id in self._sessions:
                raise exceptions.session_exists(event_id)

            scheduler = ScanScheduler(
                event_id=event_id,
                camera=self.camera_factory(),
                gateway=self.gateway_factory(),
                recognizer_factory=self.recognizer_factory,
                decoder=self.decoder_factory(),
            )
            self._sessions[event_id] = scheduler

        await scheduler.start()
        logger.info(f"✅ Session {event_id} started ({scheduler.state})")
        return scheduler

    def get(self, event_id: str) -> ScanScheduler:
        """
        Look up a live session.

        Raises:
            AppException: SESSION_NOT_FOUND
        """
        scheduler = self._sessions.get(event_id)
        if scheduler is None:
            raise exceptions.session_not_found(event_id)
        return scheduler

    async def stop_session(self, event_id: str) -> None:
        """
        Tear down and forget a session.

        Raises:
            AppException: SESSION_NOT_FOUND
        """
        async with self._lock:
            scheduler = self._sessions.pop(event_id, None)

        if scheduler is None:
            raise exceptions.session_not_found(event_id)

        await scheduler.close()
        logger.info(f"🛑 Session {event_id} stopped")

    async def shutdown_all(self) -> None:
        """Close every session. Called on application shutdown."""
        async with self._lock:
            schedulers = list(self._sessions.values())
            self._sessions.clear()

        for scheduler in schedulers:
            try:
                await scheduler.close()
            except Exception as e:
                logger.error(f"Error closing session {scheduler.event_id}: {e}")

        if schedulers:
            logger.info(f"🛑 Closed {len(schedulers)} check-in session(s)")

    @property
    def event_ids(self) -> List[str]:
        """Events with a live session."""
        return list(self._sessions)

    def __contains__(self, event_id: str) -> bool:
        return event_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)

    @classmethod
    def reset(cls) -> None:
        """Drop the singleton instance. Sessions must already be closed."""
        cls._instance = None
