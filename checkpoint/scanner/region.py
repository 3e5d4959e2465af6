"""
==============================================================================
Region Mapper Module
==============================================================================

Maps the fractional on-screen guide box onto native capture pixels.

The guide box is drawn over the displayed viewport, which is usually
smaller than the camera's native resolution. Coordinates are first taken
in displayed space and then scaled by native/displayed per axis:

    scale_x = native_width / displayed_width
    x       = floor(displayed_width * region.left * scale_x)

==============================================================================
"""

from __future__ import annotations

import logging
import math
from typing import Optional

from .models import BADGE_REGION, CaptureFrame, MappedRegion, RecognitionRegion


# Module logger
logger = logging.getLogger(__name__)


class RegionMapper:
    """
    Converts a RecognitionRegion to a MappedRegion for a given frame.

    Example:
        >>> mapper = RegionMapper()
        >>> mapper.map(frame)
        MappedRegion(x=64, y=230, width=1152, height=180)
    """

    def __init__(self, region: RecognitionRegion = BADGE_REGION) -> None:
        self._region = region

    @property
    def region(self) -> RecognitionRegion:
        """The constant guide box."""
        return self._region

    def map(self, frame: CaptureFrame) -> Optional[MappedRegion]:
        """
        Map the guide box into native pixel space.

        Args:
            frame: Frame supplying native and displayed dimensions

        Returns:
            MappedRegion with floored coordinates, or None while the
            viewport has not been laid out (zero displayed size)
        """
        return self.map_dimensions(
            frame.native_width,
            frame.native_height,
            frame.displayed_width,
            frame.displayed_height,
        )

    def map_dimensions(
        self,
        native_width: int,
        native_height: int,
        displayed_width: int,
        displayed_height: int
    ) -> Optional[MappedRegion]:
        """Map the guide box from raw dimensions."""
        if displayed_width <= 0 or displayed_height <= 0:
            logger.debug("Viewport not ready, skipping region mapping")
            return None

        scale_x = native_width / displayed_width
        scale_y = native_height / displayed_height
        region = self._region

        return MappedRegion(
            x=math.floor(displayed_width * region.left * scale_x),
            y=math.floor(displayed_height * region.top * scale_y),
            width=math.floor(displayed_width * region.width * scale_x),
            height=math.floor(displayed_height * region.height * scale_y),
        )
