"""
==============================================================================
Pytest Configuration and Fixtures
==============================================================================

Provides fake hardware and services, scan scheduler and client fixtures.

==============================================================================
"""

import asyncio
import os
import time
from typing import Callable, Generator, List, Optional

import numpy as np
import pytest
from fastapi.testclient import TestClient

# Fast timings and the secure transport check for the HTTP surface.
# Must be set before settings are first loaded.
os.environ.setdefault("COOLDOWN_MS", "50")
os.environ.setdefault("OCR_INTERVAL_MS", "60000")
os.environ.setdefault("REQUIRE_SECURE_TRANSPORT", "true")

from checkpoint.core import exceptions  # noqa: E402
from checkpoint.main import app  # noqa: E402
from checkpoint.scanner.barcode import BarcodeDecoder  # noqa: E402
from checkpoint.scanner.camera import CameraInfo, CameraSource  # noqa: E402
from checkpoint.scanner.models import SourceChannel  # noqa: E402
from checkpoint.scanner.recognizer import TextRecognizer  # noqa: E402
from checkpoint.schemas.scan import ScanResult, ScanStatus  # noqa: E402
from checkpoint.services.scan_scheduler import ScanScheduler, ScanTiming  # noqa: E402
from checkpoint.services.session_manager import CheckInSessionManager  # noqa: E402
from checkpoint.services.verification_service import VerificationGateway  # noqa: E402


# ============================================================================
# FAKE COMPONENTS
# ============================================================================

class FakeCamera(CameraSource):
    """In-memory camera producing a blank 1280x720 RGB frame."""

    def __init__(self) -> None:
        self.devices: List[CameraInfo] = [CameraInfo(id=0, label="Camera 0")]
        self.start_error: Optional[Exception] = None
        self.read_error: Optional[Exception] = None
        self.frame = np.full((720, 1280, 3), 255, dtype=np.uint8)
        self.list_calls = 0
        self.start_calls = 0
        self.read_calls = 0
        self.stop_calls = 0
        self._streaming = False

    def list_devices(self) -> List[CameraInfo]:
        self.list_calls += 1
        return list(self.devices)

    def start(self, device_id: int) -> None:
        self.start_calls += 1
        if self.start_error is not None:
            raise self.start_error
        self._streaming = True

    def stop(self) -> None:
        self.stop_calls += 1
        self._streaming = False

    def read(self) -> Optional[np.ndarray]:
        self.read_calls += 1
        if self.read_error is not None:
            raise self.read_error
        return self.frame if self._streaming else None

    @property
    def is_streaming(self) -> bool:
        return self._streaming


class FakeDecoder(BarcodeDecoder):
    """Returns queued payloads one per call, or a fixed payload forever."""

    def __init__(self) -> None:
        super().__init__()
        self.payloads: List[str] = []
        self.always: Optional[str] = None

    def decode_first(self, frame: np.ndarray) -> Optional[str]:
        if self.payloads:
            return self.payloads.pop(0)
        return self.always


class FakeRecognizer(TextRecognizer):
    """Recognizer returning fixed text, optionally after a blocking delay."""

    def __init__(self) -> None:
        self.text = ""
        self.error: Optional[Exception] = None
        self.init_error: Optional[Exception] = None
        self.delay = 0.0
        self.ready = True
        self.initialize_calls = 0
        self.recognize_calls = 0
        self.terminate_calls = 0

    def initialize(self) -> None:
        self.initialize_calls += 1
        if self.init_error is not None:
            raise self.init_error

    def recognize(self, image: np.ndarray) -> str:
        self.recognize_calls += 1
        if self.delay:
            time.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.text

    def terminate(self) -> None:
        self.terminate_calls += 1

    @property
    def is_ready(self) -> bool:
        return self.ready


class FakeGateway(VerificationGateway):
    """Gateway recording calls and their concurrency."""

    def __init__(self) -> None:
        self.status = ScanStatus.VERIFIED
        self.error: Optional[Exception] = None
        self.malformed = False
        self.delay = 0.0
        self.on_call: Optional[Callable[[], None]] = None
        self.calls: List[tuple] = []
        self.active = 0
        self.max_active = 0
        self.closed = False

    async def verify_and_record(
        self,
        event_id: str,
        candidate_id: str,
        source_channel: SourceChannel
    ) -> ScanResult:
        self.calls.append((event_id, candidate_id, source_channel))
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            if self.on_call is not None:
                self.on_call()
            if self.delay:
                await asyncio.sleep(self.delay)
            if self.error is not None:
                raise self.error
            if self.malformed:
                return None
            return ScanResult(
                success=True,
                status=self.status,
                staff_name="Jo Bloggs",
                provider_name="Acme Security",
                role="steward",
                candidate_id=candidate_id,
                source_channel=source_channel,
                message="Checked in",
            )
        finally:
            self.active -= 1

    async def close(self) -> None:
        self.closed = True


# ============================================================================
# COMPONENT FIXTURES
# ============================================================================

@pytest.fixture
def camera() -> FakeCamera:
    return FakeCamera()


@pytest.fixture
def decoder() -> FakeDecoder:
    return FakeDecoder()


@pytest.fixture
def recognizer() -> FakeRecognizer:
    return FakeRecognizer()


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def timing() -> ScanTiming:
    """Fast barcode loop, sampling driven by hand, short cooldown."""
    return ScanTiming(barcode_interval=0.01, sampling_interval=60.0, cooldown=0.05)


# ============================================================================
# SCHEDULER FIXTURES
# ============================================================================

@pytest.fixture
def make_scheduler(
    camera: FakeCamera,
    decoder: FakeDecoder,
    recognizer: FakeRecognizer,
    gateway: FakeGateway,
    timing: ScanTiming
) -> Callable[..., ScanScheduler]:
    """Build a scheduler wired to the fake components."""
    def factory(**overrides) -> ScanScheduler:
        kwargs = dict(
            event_id="evt-1",
            camera=camera,
            gateway=gateway,
            recognizer_factory=lambda: recognizer,
            decoder=decoder,
            timing=timing,
            viewport=(640, 360),
        )
        kwargs.update(overrides)
        return ScanScheduler(**kwargs)

    return factory


async def wait_until(condition: Callable[[], bool], timeout: float = 2.0) -> None:
    """Poll a condition on the running loop."""
    deadline = time.monotonic() + timeout
    while not condition():
        if time.monotonic() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.005)


@pytest.fixture
def wait_for() -> Callable:
    return wait_until


# ============================================================================
# CLIENT FIXTURES
# ============================================================================

@pytest.fixture
def manager(
    camera: FakeCamera,
    decoder: FakeDecoder,
    recognizer: FakeRecognizer,
    gateway: FakeGateway
) -> Generator[CheckInSessionManager, None, None]:
    """Session manager building sessions from the fake components."""
    CheckInSessionManager.reset()
    manager = CheckInSessionManager()
    manager.camera_factory = lambda: camera
    manager.decoder_factory = lambda: decoder
    manager.recognizer_factory = lambda: recognizer
    manager.gateway_factory = lambda: gateway

    yield manager

    CheckInSessionManager.reset()


@pytest.fixture
def client(manager: CheckInSessionManager) -> Generator[TestClient, None, None]:
    """Test client addressed to localhost."""
    with TestClient(app, base_url="http://localhost") as test_client:
        yield test_client


@pytest.fixture
def camera_error() -> exceptions.AppException:
    return exceptions.camera_unavailable(exceptions.REASON_PERMISSION_DENIED)
