"""
==============================================================================
Text Recognizer Module
==============================================================================

Recognition engine boundary and the Tesseract implementation.

The engine is a stateful handle: it is initialized lazily the first time a
session samples a frame, reused for the rest of the session and terminated
at teardown. All methods are blocking.

==============================================================================
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Optional

import numpy as np
import pytesseract

from checkpoint.core import exceptions


# Module logger
logger = logging.getLogger(__name__)


class TextRecognizer(ABC):
    """Recognition engine capability used by the sampling channel."""

    @abstractmethod
    def initialize(self) -> None:
        """Prepare the engine. Called once per session."""
        ...

    @abstractmethod
    def recognize(self, image: np.ndarray) -> str:
        """
        Return raw text for an image.

        Raises:
            AppException: RECOGNITION_FAILED when the engine cannot run
        """
        ...

    @abstractmethod
    def terminate(self) -> None:
        """Release engine resources."""
        ...

    @property
    def is_ready(self) -> bool:
        """True while the engine can serve recognize() calls."""
        return True


class TesseractRecognizer(TextRecognizer):
    """
    pytesseract backed recognizer.

    Example:
        >>> engine = TesseractRecognizer(lang="eng")
        >>> engine.initialize()
        >>> engine.recognize(image)
        'SIA LICENCE 1017 0487 7704 8490'
    """

    def __init__(
        self,
        lang: str = "eng",
        config: str = "",
        tesseract_cmd: Optional[str] = None
    ) -> None:
        self._lang = lang
        self._config = config
        self._tesseract_cmd = tesseract_cmd
        self._ready = False

    def initialize(self) -> None:
        if self._ready:
            return

        if self._tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = self._tesseract_cmd

        try:
            version = pytesseract.get_tesseract_version()
        except pytesseract.TesseractNotFoundError as e:
            raise exceptions.recognition_failed(f"tesseract not installed: {e}")

        self._ready = True
        logger.info(f"🔤 Tesseract {version} ready (lang={self._lang})")

    def recognize(self, image: np.ndarray) -> str:
        if not self._ready:
            self.initialize()

        try:
            return pytesseract.image_to_string(image, lang=self._lang, config=self._config)
        except (pytesseract.TesseractError, RuntimeError) as e:
            raise exceptions.recognition_failed(str(e))

    def terminate(self) -> None:
        if self._ready:
            self._ready = False
            logger.debug("Tesseract engine released")

    @property
    def is_ready(self) -> bool:
        """True once initialize() succeeded."""
        return self._ready
