"""
==============================================================================
Candidate Extractor Module
==============================================================================

Recovers a badge identity number from noisy OCR or barcode text.

Normalization:
--------------
Common OCR confusions are substituted before matching:

    O, o -> 0      I, l -> 1      S -> 5      Z -> 2      B -> 8      G -> 6

Only O and I are matched in both cases; S, Z, B and G are uppercase only.
Lowercase s/z/b/g are left alone so that ordinary words are not turned into
digits.

Pattern Cascade (first match wins):
-----------------------------------
1. 4x4 digit groups with optional space/dash separators (16 digits)
2. Any run of 12-16 consecutive digits
3. 4 groups of 3-4 digits with optional separators, 12-16 digits total
4. The longest digit run in the text, if at least 10 digits
5. No candidate

==============================================================================
"""

from __future__ import annotations

import logging
import re
from typing import Optional

from .models import CandidateExtractionResult, SourceChannel


# Module logger
logger = logging.getLogger(__name__)


class CandidateExtractor:
    """
    Pure, deterministic text-to-candidate extraction.

    Example:
        >>> extractor = CandidateExtractor()
        >>> extractor.extract_id("Io17 O487 77o4 849o")
        '1017048777048490'
        >>> extractor.extract_id("no number here") is None
        True
    """

    # Ordered substitution table
    SUBSTITUTIONS = (
        ("O", "0"),
        ("o", "0"),
        ("I", "1"),
        ("l", "1"),
        ("S", "5"),
        ("Z", "2"),
        ("B", "8"),
        ("G", "6"),
    )

    GROUPED_16 = re.compile(r"\d{4}[\s-]?\d{4}[\s-]?\d{4}[\s-]?\d{4}", re.ASCII)
    DIGIT_RUN_12_16 = re.compile(r"\d{12,16}", re.ASCII)
    FLEXIBLE_GROUPS = re.compile(r"\d{3,4}[\s-]?\d{3,4}[\s-]?\d{3,4}[\s-]?\d{3,4}", re.ASCII)
    DIGIT_RUN = re.compile(r"\d+", re.ASCII)
    SEPARATORS = re.compile(r"[\s-]")
    NON_DIGITS = re.compile(r"\D", re.ASCII)
    WHITESPACE = re.compile(r"\s")

    MIN_LENGTH = 12
    MAX_LENGTH = 16
    MIN_FALLBACK_LENGTH = 10

    # =========================================================================
    # NORMALIZATION
    # =========================================================================

    @classmethod
    def normalize(cls, text: str) -> str:
        """Apply the OCR substitution table in order."""
        for source, target in cls.SUBSTITUTIONS:
            text = text.replace(source, target)
        return text

    # =========================================================================
    # CASCADE
    # =========================================================================

    def extract_id(self, text: str) -> Optional[str]:
        """
        Normalize text and run the pattern cascade.

        Args:
            text: Raw recognized text

        Returns:
            Candidate digit string, or None when nothing qualifies
        """
        return self._cascade(self.normalize(text))

    def _cascade(self, normalized: str) -> Optional[str]:
        match = self.GROUPED_16.search(normalized)
        if match:
            number = self._strip(match.group(0))
            if len(number) == 16:
                logger.debug(f"Tier 1 candidate: {number}")
                return number

        match = self.DIGIT_RUN_12_16.search(normalized)
        if match:
            logger.debug(f"Tier 2 candidate: {match.group(0)}")
            return match.group(0)

        match = self.FLEXIBLE_GROUPS.search(normalized)
        if match:
            number = self._strip(match.group(0))
            if self.MIN_LENGTH <= len(number) <= self.MAX_LENGTH:
                logger.debug(f"Tier 3 candidate: {number}")
                return number

        runs = self.DIGIT_RUN.findall(normalized)
        if runs:
            longest = max(runs, key=len)
            if len(longest) >= self.MIN_FALLBACK_LENGTH:
                logger.debug(f"Tier 4 candidate: {longest}")
                return longest

        return None

    # =========================================================================
    # CHANNEL ENTRY POINTS
    # =========================================================================

    def from_ocr(self, raw_text: str) -> CandidateExtractionResult:
        """Extract a candidate from recognition engine output."""
        normalized = self.normalize(raw_text)
        return CandidateExtractionResult(
            raw_text=raw_text,
            normalized_text=normalized,
            extracted_id=self._cascade(normalized),
            source_channel=SourceChannel.OCR,
        )

    def from_barcode(self, raw_text: str) -> CandidateExtractionResult:
        """
        Extract a candidate from decoded barcode text.

        A payload that is 12-16 digits once non-digits are removed is used
        directly; anything else goes through the full cascade.
        """
        digits = self.NON_DIGITS.sub("", raw_text)
        if self.MIN_LENGTH <= len(digits) <= self.MAX_LENGTH:
            return CandidateExtractionResult(
                raw_text=raw_text,
                normalized_text=digits,
                extracted_id=digits,
                source_channel=SourceChannel.BARCODE,
            )

        normalized = self.normalize(raw_text)
        return CandidateExtractionResult(
            raw_text=raw_text,
            normalized_text=normalized,
            extracted_id=self._cascade(normalized),
            source_channel=SourceChannel.BARCODE,
        )

    def from_manual(self, raw_text: str) -> CandidateExtractionResult:
        """Operator input: strip whitespace, no substitution or cascade."""
        cleaned = self.WHITESPACE.sub("", raw_text)
        return CandidateExtractionResult(
            raw_text=raw_text,
            normalized_text=cleaned,
            extracted_id=cleaned or None,
            source_channel=SourceChannel.MANUAL,
        )

    @classmethod
    def _strip(cls, value: str) -> str:
        return cls.SEPARATORS.sub("", value)
