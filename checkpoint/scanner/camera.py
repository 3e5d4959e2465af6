"""
==============================================================================
Camera Source Module
==============================================================================

Camera device enumeration and stream control.

CameraSource is the boundary the scan scheduler talks to. OpenCVCamera is
the production implementation backed by cv2.VideoCapture. All methods are
blocking; the scheduler runs them in worker threads.

==============================================================================
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from typing import List, Optional

import cv2
import numpy as np
from pydantic import BaseModel

from checkpoint.core import exceptions


# Module logger
logger = logging.getLogger(__name__)


class CameraInfo(BaseModel):
    """An available capture device."""

    id: int
    label: str


class CameraSource(ABC):
    """Camera capability used by the scan scheduler."""

    @abstractmethod
    def list_devices(self) -> List[CameraInfo]:
        """Enumerate available capture devices."""
        ...

    @abstractmethod
    def start(self, device_id: int) -> None:
        """
        Open the stream on a device.

        Raises:
            AppException: CAMERA_UNAVAILABLE when the device cannot be opened
        """
        ...

    @abstractmethod
    def stop(self) -> None:
        """Release the stream. Safe to call when not streaming."""
        ...

    @abstractmethod
    def read(self) -> Optional[np.ndarray]:
        """Grab the latest frame as RGB, or None if unavailable."""
        ...

    @property
    @abstractmethod
    def is_streaming(self) -> bool:
        """True while a stream is open."""
        ...


class OpenCVCamera(CameraSource):
    """
    cv2.VideoCapture backed camera.

    Attributes:
        preferred_index: Device listed first during enumeration
        scan_limit: Number of device indices probed
    """

    def __init__(
        self,
        preferred_index: int = 0,
        scan_limit: int = 4,
        width: int = 1280,
        height: int = 720
    ) -> None:
        self._preferred_index = preferred_index
        self._scan_limit = scan_limit
        self._width = width
        self._height = height
        self._cap: Optional[cv2.VideoCapture] = None
        self._current_index: Optional[int] = None
        self._lock = threading.Lock()

        logger.debug(f"Camera created (preferred device {preferred_index})")

    def list_devices(self) -> List[CameraInfo]:
        indices = [self._preferred_index] + [
            i for i in range(self._scan_limit) if i != self._preferred_index
        ]

        devices = []
        for index in indices:
            if self.is_streaming and index == self._current_index:
                devices.append(CameraInfo(id=index, label=f"Camera {index}"))
                continue

            probe = cv2.VideoCapture(index)
            try:
                if probe.isOpened():
                    devices.append(CameraInfo(id=index, label=f"Camera {index}"))
            finally:
                probe.release()

        logger.debug(f"Found {len(devices)} camera(s)")
        return devices

    def start(self, device_id: int) -> None:
        with self._lock:
            if self._cap is not None and self._cap.isOpened():
                return

            cap = cv2.VideoCapture(device_id)
            if not cap.isOpened():
                cap.release()
                logger.error(f"Cannot open camera {device_id}")
                raise exceptions.camera_unavailable(exceptions.REASON_PERMISSION_DENIED)

            cap.set(cv2.CAP_PROP_FRAME_WIDTH, self._width)
            cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self._height)
            self._cap = cap
            self._current_index = device_id

        logger.info(f"📷 Camera {device_id} streaming")

    def stop(self) -> None:
        with self._lock:
            if self._cap is not None:
                self._cap.release()
                self._cap = None
                logger.info("📷 Camera stream stopped")

    def read(self) -> Optional[np.ndarray]:
        with self._lock:
            if self._cap is None:
                return None
            ret, frame = self._cap.read()

        if not ret or frame is None:
            logger.debug("Failed to read frame")
            return None

        return cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)

    @property
    def is_streaming(self) -> bool:
        return self._cap is not None and self._cap.isOpened()
