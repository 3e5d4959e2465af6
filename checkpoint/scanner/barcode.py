"""
==============================================================================
Barcode Decoder Module
==============================================================================

Thin wrapper around pyzbar for badge barcodes and QR codes.

Features:
---------
- Decodes every symbol in a frame
- Returns the first non-empty payload as text
- Decode errors are logged and treated as "nothing found"

==============================================================================
"""

from __future__ import annotations

import logging
from typing import List, Optional

import numpy as np
from pyzbar.pyzbar import decode


# Module logger
logger = logging.getLogger(__name__)


class BarcodeDecoder:
    """
    Barcode decoder for live badge frames.

    Example:
        >>> decoder = BarcodeDecoder()
        >>> decoder.decode_first(frame)
        '9999888877776666'
    """

    def __init__(self, encoding: str = "utf-8") -> None:
        """
        Initialize decoder.

        Args:
            encoding: Text encoding of barcode payloads
        """
        self._encoding = encoding

    def decode_all(self, frame: np.ndarray) -> List[str]:
        """
        Decode every symbol in a frame.

        Args:
            frame: Image array (RGB, BGR or grayscale)

        Returns:
            List of non-empty decoded payloads
        """
        if frame is None or frame.size == 0:
            return []

        try:
            barcodes = decode(frame)
        except Exception as e:
            logger.error(f"Decode error: {e}")
            return []

        payloads = []

        for barcode in barcodes:
            try:
                text = barcode.data.decode(self._encoding).strip()
            except UnicodeDecodeError as e:
                logger.debug(f"Undecodable {barcode.type} payload: {e}")
                continue

            if text:
                logger.debug(f"Decoded {barcode.type}: {text}")
                payloads.append(text)

        return payloads

    def decode_first(self, frame: np.ndarray) -> Optional[str]:
        """Return the first non-empty payload in a frame, if any."""
        payloads = self.decode_all(frame)
        return payloads[0] if payloads else None
