"""
==============================================================================
Frame Preprocessor Module
==============================================================================

Turns the badge region of a frame into a clean binary image for OCR.

Pipeline:
---------
1. Crop the mapped region and upscale it 2x (bicubic)
2. Binarize: dark non-blue pixels become text (0), the rest background (255)
3. Sharpen interior pixels with a 5-point Laplacian kernel

If cropping is impossible the untouched frame is returned so that
recognition is still attempted on the full image.

==============================================================================
"""

from __future__ import annotations

import logging
from typing import Optional

import cv2
import numpy as np

from .models import CaptureFrame, MappedRegion
from .region import RegionMapper


# Module logger
logger = logging.getLogger(__name__)


# Fixed upscale factor applied to the cropped region
UPSCALE_FACTOR = 2


class FramePreprocessor:
    """
    Crop, binarize and sharpen the badge region of a frame.

    Frames are H x W x C uint8 arrays in RGB(A) order. The alpha channel,
    when present, is carried through unchanged.

    Example:
        >>> preprocessor = FramePreprocessor()
        >>> image = preprocessor.process(frame)
    """

    def __init__(self, mapper: Optional[RegionMapper] = None) -> None:
        self._mapper = mapper or RegionMapper()

    def process(self, frame: CaptureFrame) -> np.ndarray:
        """
        Produce the recognition-ready image for a frame.

        Args:
            frame: Captured frame

        Returns:
            Binarized, sharpened crop, or the original pixels when the
            crop step fails
        """
        cropped = self.crop_and_upscale(frame)
        if cropped is None:
            logger.debug("Crop unavailable, falling back to full frame")
            return frame.pixels

        return self.sharpen(self.binarize(cropped))

    # =========================================================================
    # PIPELINE STAGES
    # =========================================================================

    def crop_and_upscale(self, frame: CaptureFrame) -> Optional[np.ndarray]:
        """
        Extract the mapped region scaled by UPSCALE_FACTOR.

        Returns:
            Upscaled crop, or None if the region is not ready or empty
        """
        region = self._mapper.map(frame)
        if region is None:
            return None

        region = self._clamp(region, frame.pixels)
        if region.is_empty:
            return None

        crop = frame.pixels[region.y:region.y + region.height, region.x:region.x + region.width]

        try:
            return cv2.resize(
                crop,
                (region.width * UPSCALE_FACTOR, region.height * UPSCALE_FACTOR),
                interpolation=cv2.INTER_CUBIC,
            )
        except cv2.error as e:
            logger.warning(f"Region resize failed: {e}")
            return None

    @staticmethod
    def binarize(image: np.ndarray) -> np.ndarray:
        """
        Classify each pixel as text (0) or background (255).

        Blue ink (printed badge backgrounds) is pushed to background so that
        only dark, non-blue strokes survive.
        """
        out = image.copy()
        rgb = image[..., :3].astype(np.float32) / 255.0
        r, g, b = rgb[..., 0], rgb[..., 1], rgb[..., 2]

        is_blue = (b > (r + g) * 0.4) & (b > 0.3)
        brightness = (r + g + b) / 3.0
        is_dark = brightness < 0.5

        value = np.where(
            is_dark & ~is_blue,
            0,
            np.where(
                is_blue | (brightness > 0.4),
                255,
                np.where(brightness < 0.3, 0, 255),
            ),
        ).astype(np.uint8)

        out[..., 0] = value
        out[..., 1] = value
        out[..., 2] = value
        return out

    @staticmethod
    def sharpen(image: np.ndarray) -> np.ndarray:
        """
        Apply center*5 - up - down - left - right to interior pixels.

        Border pixels are left as they are; results are clamped to 0..255.
        """
        out = image.copy()
        if image.shape[0] < 3 or image.shape[1] < 3:
            return out

        src = image[..., :3].astype(np.int32)
        center = src[1:-1, 1:-1]
        sharpened = (
            center * 5
            - src[:-2, 1:-1]
            - src[2:, 1:-1]
            - src[1:-1, :-2]
            - src[1:-1, 2:]
        )
        out[1:-1, 1:-1, :3] = np.clip(sharpened, 0, 255).astype(np.uint8)
        return out

    # =========================================================================
    # HELPERS
    # =========================================================================

    @staticmethod
    def _clamp(region: MappedRegion, pixels: np.ndarray) -> MappedRegion:
        """Clip the region to the pixel buffer bounds."""
        height, width = pixels.shape[:2]
        x = min(max(region.x, 0), width)
        y = min(max(region.y, 0), height)
        return MappedRegion(
            x=x,
            y=y,
            width=max(0, min(region.x + region.width, width) - x),
            height=max(0, min(region.y + region.height, height) - y),
        )
