"""
==============================================================================
Scan Scheduler Module
==============================================================================

Owns the camera for one check-in session and arbitrates the recognition
channels so that exactly one badge number is verified at a time.

Channels:
---------
- Barcode: continuous decode attempts at `barcode_fps`
- Sampling: a timer firing every `ocr_interval_ms`; each fire checks the
  last-run timestamp and, when due, drives one frame through
  region mapping -> preprocessing -> OCR -> candidate extraction
- Manual: operator input entering at the same arbitration point

Arbitration:
------------
Producers call submit_candidate(). The busy flag is checked and set under a
lock with no suspension point in between; the winner is put on a depth-1
queue drained by a single processing task. Everything else is dropped.

Processing cycle:
-----------------
    CAPTURING ─▶ PROCESSING ─▶ COOLDOWN ─▶ CAPTURING
                 stop channels   fixed       re-query devices,
                 stop camera     delay       restart camera + channels
                 verify

Only CAMERA_UNAVAILABLE stops the cycle (ERROR). Recognition failures skip
a sample; gateway failures become local error results.

==============================================================================
"""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from typing import Any, Callable, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from checkpoint.config import Settings, get_settings
from checkpoint.core import exceptions
from checkpoint.core.exceptions import AppException
from checkpoint.scanner.barcode import BarcodeDecoder
from checkpoint.scanner.camera import CameraSource
from checkpoint.scanner.extractor import CandidateExtractor
from checkpoint.scanner.models import (
    CandidateExtractionResult,
    CaptureFrame,
    ScanLifecycleState,
    SourceChannel,
)
from checkpoint.scanner.preprocess import FramePreprocessor
from checkpoint.scanner.recognizer import TextRecognizer
from checkpoint.schemas.scan import ScanResult
from checkpoint.services.verification_service import VerificationGateway
from checkpoint.utils.scan_history import ScanHistory
from checkpoint.utils.validators import ManualEntryValidator


# Module logger
logger = logging.getLogger(__name__)


# Timer jitter allowance for the sampling due check (seconds)
SAMPLE_DUE_TOLERANCE = 0.05

# Pending events kept per subscriber before the oldest is dropped
SUBSCRIBER_QUEUE_SIZE = 100


class ScanTiming(BaseModel):
    """Scheduler timings in seconds."""

    model_config = ConfigDict(frozen=True)

    barcode_interval: float = Field(default=0.1, gt=0)
    sampling_interval: float = Field(default=3.0, gt=0)
    cooldown: float = Field(default=2.0, ge=0)

    @classmethod
    def from_settings(cls, settings: Settings) -> "ScanTiming":
        """Build timings from application settings."""
        return cls(
            barcode_interval=settings.barcode_interval_seconds,
            sampling_interval=settings.ocr_interval_seconds,
            cooldown=settings.cooldown_seconds,
        )


class ScanScheduler:
    """
    Per-session scan orchestrator.

    Attributes:
        event_id: Event being checked in
        state: Current lifecycle state
        busy: True while a candidate is being processed

    Example:
        >>> scheduler = ScanScheduler("evt-1", camera, gateway, recognizer_factory=TesseractRecognizer)
        >>> await scheduler.start()
        >>> queue = scheduler.subscribe()
        >>> event = await queue.get()
        >>> await scheduler.close()
    """

    def __init__(
        self,
        event_id: str,
        camera: CameraSource,
        gateway: VerificationGateway,
        recognizer_factory: Callable[[], TextRecognizer],
        decoder: Optional[BarcodeDecoder] = None,
        extractor: Optional[CandidateExtractor] = None,
        preprocessor: Optional[FramePreprocessor] = None,
        timing: Optional[ScanTiming] = None,
        history: Optional[ScanHistory] = None,
        viewport: Optional[Tuple[int, int]] = None,
        clock: Callable[[], float] = time.monotonic
    ) -> None:
        settings = get_settings()

        self._event_id = event_id
        self._camera = camera
        self._gateway = gateway
        self._recognizer_factory = recognizer_factory
        self._decoder = decoder or BarcodeDecoder()
        self._extractor = extractor or CandidateExtractor()
        self._preprocessor = preprocessor or FramePreprocessor()
        self._timing = timing or ScanTiming.from_settings(settings)
        self._history = history if history is not None else ScanHistory(settings.recent_scans_limit)
        self._viewport = viewport or (settings.display_width, settings.display_height)
        self._clock = clock
        self._validator = ManualEntryValidator()

        self._state = ScanLifecycleState.IDLE
        self._error: Optional[str] = None
        self._busy = False
        self._closing = False
        self._busy_lock = threading.Lock()
        self._candidates: "asyncio.Queue[CandidateExtractionResult]" = asyncio.Queue(maxsize=1)

        self._barcode_task: Optional[asyncio.Task] = None
        self._sampling_task: Optional[asyncio.Task] = None
        self._processing_task: Optional[asyncio.Task] = None
        self._inflight: Optional[asyncio.Task] = None
        self._camera_was_live = False

        self._recognizer: Optional[TextRecognizer] = None
        self._recognizer_lock = asyncio.Lock()
        self._engine_failed = False
        self._last_sample_at: Optional[float] = None

        self._subscribers: List[asyncio.Queue] = []

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def event_id(self) -> str:
        return self._event_id

    @property
    def state(self) -> ScanLifecycleState:
        return self._state

    @property
    def busy(self) -> bool:
        return self._busy

    @property
    def error(self) -> Optional[str]:
        """Message of the camera fault that put the session in ERROR."""
        return self._error

    @property
    def history(self) -> ScanHistory:
        return self._history

    @property
    def last_result(self) -> Optional[ScanResult]:
        return self._history.latest

    @property
    def timing(self) -> ScanTiming:
        return self._timing

    @property
    def viewport(self) -> Tuple[int, int]:
        """Displayed preview size used for region mapping."""
        return self._viewport

    @property
    def channels_running(self) -> bool:
        """True while both recognition channels are scheduled."""
        return all(
            task is not None and not task.done()
            for task in (self._barcode_task, self._sampling_task)
        )

    @property
    def camera_streaming(self) -> bool:
        return self._camera.is_streaming

    @property
    def engine_ready(self) -> Optional[bool]:
        """Recognition engine readiness; None until the first sample."""
        if self._recognizer is None:
            return False if self._engine_failed else None
        return self._recognizer.is_ready

    def set_viewport(self, width: int, height: int) -> None:
        """Record the displayed size of the camera preview."""
        self._viewport = (width, height)
        logger.debug(f"[{self._event_id}] Viewport {width}x{height}")

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    async def start(self) -> ScanLifecycleState:
        """
        Acquire the camera and start both channels.

        Returns:
            CAPTURING on success, ERROR when no camera could be started
        """
        if self._state != ScanLifecycleState.IDLE:
            return self._state

        self._processing_task = asyncio.create_task(self._processing_loop())

        try:
            await self._acquire_camera()
        except AppException as e:
            await self._enter_error(e)
            return self._state

        self._set_state(ScanLifecycleState.CAPTURING)
        self._start_channels()
        logger.info(f"🚀 [{self._event_id}] Check-in scanning started")
        return self._state

    async def close(self) -> None:
        """
        Tear the session down.

        Waits for an in-flight verification call, then cancels the
        channels and any pending cooldown, terminates the recognition
        engine and stops the camera.
        """
        if self._state == ScanLifecycleState.CLOSED:
            return

        self._closing = True

        if self._inflight is not None and not self._inflight.done():
            logger.info(f"[{self._event_id}] Waiting for in-flight verification")
            await asyncio.wait([self._inflight])

        tasks = [
            task for task in (self._barcode_task, self._sampling_task, self._processing_task)
            if task is not None and not task.done()
        ]
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

        if self._recognizer is not None:
            try:
                await asyncio.to_thread(self._recognizer.terminate)
            except Exception as e:
                logger.error(f"[{self._event_id}] Error terminating recognizer: {e}")
            self._recognizer = None

        await self._stop_camera()

        try:
            await self._gateway.close()
        except Exception as e:
            logger.error(f"[{self._event_id}] Error closing gateway client: {e}")

        self._busy = False
        self._set_state(ScanLifecycleState.CLOSED)
        logger.info(f"✅ [{self._event_id}] Check-in session closed")

    # =========================================================================
    # ARBITRATION
    # =========================================================================

    def submit_candidate(self, candidate: CandidateExtractionResult) -> bool:
        """
        Offer a candidate for verification.

        Returns:
            True if the candidate won the busy flag and was queued
        """
        if not candidate.found:
            return False

        with self._busy_lock:
            if self._busy or self._closing:
                return False

            accepting = self._state == ScanLifecycleState.CAPTURING or (
                self._state == ScanLifecycleState.ERROR
                and candidate.source_channel == SourceChannel.MANUAL
            )
            if not accepting:
                return False

            self._busy = True

        self._candidates.put_nowait(candidate)
        logger.info(
            f"🎯 [{self._event_id}] Candidate {candidate.extracted_id} "
            f"via {candidate.source_channel}"
        )
        return True

    def submit_manual(self, text: str) -> CandidateExtractionResult:
        """
        Queue an operator-typed badge number.

        Raises:
            AppException: INVALID_MANUAL_ENTRY for blank input,
                SCANNER_BUSY when another candidate is being processed
        """
        is_valid, _, error = self._validator.validate(text)
        if not is_valid:
            raise exceptions.invalid_manual_entry(error)

        candidate = self._extractor.from_manual(text)
        if not self.submit_candidate(candidate):
            raise exceptions.scanner_busy(str(self._state))

        return candidate

    # =========================================================================
    # CHANNELS
    # =========================================================================

    def _start_channels(self) -> None:
        if self._barcode_task is None or self._barcode_task.done():
            self._barcode_task = asyncio.create_task(self._barcode_loop())
        if self._sampling_task is None or self._sampling_task.done():
            self._sampling_task = asyncio.create_task(self._sampling_loop())

    async def _stop_channels(self) -> None:
        tasks = [
            task for task in (self._barcode_task, self._sampling_task)
            if task is not None and not task.done()
        ]
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._barcode_task = None
        self._sampling_task = None

    async def _barcode_loop(self) -> None:
        logger.debug(f"[{self._event_id}] Barcode channel running")

        while True:
            try:
                await self.decode_once()
            except Exception as e:
                logger.debug(f"[{self._event_id}] Barcode attempt failed: {e}")

            await asyncio.sleep(self._timing.barcode_interval)

    async def decode_once(self) -> Optional[CandidateExtractionResult]:
        """One barcode decode attempt against the live feed."""
        if self._busy or not self._state.channels_active:
            return None

        pixels = await asyncio.to_thread(self._camera.read)
        if pixels is None:
            return None

        text = await asyncio.to_thread(self._decoder.decode_first, pixels)
        if not text:
            return None

        candidate = self._extractor.from_barcode(text)
        if candidate.found:
            self.submit_candidate(candidate)
        else:
            logger.debug(f"[{self._event_id}] Barcode without badge number: {text!r}")
        return candidate

    async def _sampling_loop(self) -> None:
        logger.debug(f"[{self._event_id}] Sampling channel running")

        loop = asyncio.get_running_loop()
        interval = self._timing.sampling_interval
        next_fire = loop.time() + interval

        # Fixed-period timer; fires missed during a long sample are dropped
        while True:
            await asyncio.sleep(max(0.0, next_fire - loop.time()))
            next_fire += interval
            while next_fire <= loop.time():
                next_fire += interval

            try:
                await self.sample_once()
            except Exception as e:
                logger.warning(f"[{self._event_id}] Sample failed: {e}")

    def is_sample_due(self, now: float) -> bool:
        """Self-throttle: at most one sample per sampling interval."""
        if self._last_sample_at is None:
            return True
        return now - self._last_sample_at >= self._timing.sampling_interval - SAMPLE_DUE_TOLERANCE

    async def sample_once(self) -> Optional[CandidateExtractionResult]:
        """
        One recognition sample, if due.

        Recognition failures are logged and skipped; the session keeps
        capturing.
        """
        now = self._clock()
        if not self.is_sample_due(now):
            return None

        if self._busy or not self._state.channels_active:
            return None

        self._last_sample_at = now

        try:
            pixels = await asyncio.to_thread(self._camera.read)
            if pixels is None:
                logger.debug(f"[{self._event_id}] Sample skipped: no frame")
                return None

            width, height = self._viewport
            frame = CaptureFrame.from_array(pixels, width, height)

            recognizer = await self._ensure_recognizer()
            image = await asyncio.to_thread(self._preprocessor.process, frame)
            text = await asyncio.to_thread(recognizer.recognize, image)
        except Exception as e:
            logger.warning(f"[{self._event_id}] Recognition attempt failed: {e}")
            return None

        candidate = self._extractor.from_ocr(text or "")
        if candidate.found:
            if not self.submit_candidate(candidate):
                logger.debug(f"[{self._event_id}] Sample result discarded (busy)")
        else:
            logger.debug(f"[{self._event_id}] No badge number in OCR text")
        return candidate

    async def _ensure_recognizer(self) -> TextRecognizer:
        async with self._recognizer_lock:
            if self._recognizer is None:
                logger.info(f"[{self._event_id}] Initializing recognition engine...")
                recognizer = self._recognizer_factory()
                try:
                    await asyncio.to_thread(recognizer.initialize)
                except Exception:
                    self._engine_failed = True
                    raise
                self._engine_failed = False
                self._recognizer = recognizer
            return self._recognizer

    # =========================================================================
    # PROCESSING
    # =========================================================================

    async def _processing_loop(self) -> None:
        while True:
            candidate = await self._candidates.get()
            try:
                await self._process(candidate)
            except Exception as e:
                logger.error(f"[{self._event_id}] Processing error: {e}")
                await self._recover()

    async def _process(self, candidate: CandidateExtractionResult) -> None:
        camera_was_live = self._state == ScanLifecycleState.CAPTURING
        self._camera_was_live = camera_was_live

        self._set_state(ScanLifecycleState.PROCESSING)
        await self._stop_channels()
        if camera_was_live:
            await self._stop_camera()

        # The verification call always runs to completion
        self._inflight = asyncio.create_task(self._verify(candidate))
        await asyncio.shield(self._inflight)
        self._inflight = None

        self._set_state(ScanLifecycleState.COOLDOWN)
        await asyncio.sleep(self._timing.cooldown)

        if camera_was_live:
            await self._resume()
        else:
            with self._busy_lock:
                self._busy = False
            self._set_state(ScanLifecycleState.ERROR)

    async def _verify(self, candidate: CandidateExtractionResult) -> ScanResult:
        candidate_id = candidate.extracted_id
        channel = candidate.source_channel

        try:
            result = await self._gateway.verify_and_record(self._event_id, candidate_id, channel)
            if not isinstance(result, ScanResult):
                raise exceptions.gateway_failure("malformed verification result")
        except Exception as e:
            logger.error(f"❌ [{self._event_id}] Verification failed for {candidate_id}: {e}")
            result = ScanResult.local_error(candidate_id, channel, e)
        else:
            logger.info(f"✅ [{self._event_id}] {candidate_id}: {result.status}")

        self._history.add(result)
        self._publish({
            "type": "result",
            "event_id": self._event_id,
            "result": result.model_dump(mode="json"),
        })
        return result

    async def _recover(self) -> None:
        """Leave PROCESSING/COOLDOWN after a failed cycle."""
        self._inflight = None
        if self._closing:
            with self._busy_lock:
                self._busy = False
            return

        await self._stop_channels()
        if self._camera_was_live:
            await self._resume()
        else:
            with self._busy_lock:
                self._busy = False
            self._set_state(ScanLifecycleState.ERROR)

    async def _resume(self) -> None:
        try:
            await self._acquire_camera()
        except AppException as e:
            with self._busy_lock:
                self._busy = False
            await self._enter_error(e)
            return

        with self._busy_lock:
            self._busy = False
            self._set_state(ScanLifecycleState.CAPTURING)
        self._start_channels()
        logger.info(f"🔄 [{self._event_id}] Scanning resumed")

    # =========================================================================
    # CAMERA
    # =========================================================================

    async def _acquire_camera(self) -> None:
        """
        Query devices and start the stream on the first one.

        Raises:
            AppException: CAMERA_UNAVAILABLE
        """
        try:
            devices = await asyncio.to_thread(self._camera.list_devices)
        except AppException:
            raise
        except Exception as e:
            logger.error(f"[{self._event_id}] Error getting cameras: {e}")
            raise exceptions.camera_unavailable(exceptions.REASON_PERMISSION_DENIED)

        if not devices:
            raise exceptions.camera_unavailable(exceptions.REASON_NO_DEVICES)

        if self._camera.is_streaming:
            return

        try:
            await asyncio.to_thread(self._camera.start, devices[0].id)
        except AppException:
            raise
        except Exception as e:
            logger.error(f"[{self._event_id}] Error starting camera: {e}")
            raise exceptions.camera_unavailable(exceptions.REASON_START_FAILED)

    async def _stop_camera(self) -> None:
        try:
            await asyncio.to_thread(self._camera.stop)
        except Exception as e:
            logger.error(f"[{self._event_id}] Error stopping camera: {e}")

    async def _enter_error(self, error: AppException) -> None:
        self._error = error.message
        await self._stop_channels()
        await self._stop_camera()
        self._set_state(ScanLifecycleState.ERROR)
        logger.error(f"📷 [{self._event_id}] Camera unavailable: {error.message}")

    # =========================================================================
    # SUBSCRIBERS
    # =========================================================================

    def subscribe(self) -> asyncio.Queue:
        """Register a queue receiving state and result events."""
        queue: asyncio.Queue = asyncio.Queue(maxsize=SUBSCRIBER_QUEUE_SIZE)
        self._subscribers.append(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue) -> None:
        """Remove a subscriber queue."""
        if queue in self._subscribers:
            self._subscribers.remove(queue)

    def snapshot(self) -> Dict[str, Any]:
        """Current state as a JSON-ready event."""
        return {
            "type": "state",
            "event_id": self._event_id,
            "state": self._state.value,
            "busy": self._busy,
            "error": self._error,
        }

    def _set_state(self, state: ScanLifecycleState) -> None:
        if state == self._state:
            return
        logger.debug(f"[{self._event_id}] {self._state} -> {state}")
        self._state = state
        self._publish(self.snapshot())

    def _publish(self, event: Dict[str, Any]) -> None:
        for queue in list(self._subscribers):
            if queue.full():
                try:
                    queue.get_nowait()
                except asyncio.QueueEmpty:
                    pass
            queue.put_nowait(event)
