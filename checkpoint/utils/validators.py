"""
==============================================================================
Validation Utilities Module
==============================================================================

Validation for operator input.

Manual badge numbers are trusted structured input: whitespace is removed
and the value is forwarded as typed. Only blank and oversized values are
rejected.

==============================================================================
"""

from __future__ import annotations

import re
from typing import Optional, Tuple


class ManualEntryValidator:
    """
    Validator for manually typed badge numbers.

    Example:
        >>> validator = ManualEntryValidator()
        >>> validator.validate(" 1017 0487 7704 8490 ")
        (True, '1017048777048490', None)
    """

    WHITESPACE = re.compile(r"\s")
    MAX_LENGTH = 64

    def validate(self, value: str) -> Tuple[bool, Optional[str], Optional[str]]:
        """
        Validate and clean a manual entry.

        Returns:
            Tuple of (is_valid, cleaned_value, error_message)
        """
        if not value:
            return False, None, "Badge number is required"

        cleaned = self.WHITESPACE.sub("", value)

        if not cleaned:
            return False, None, "Badge number cannot be blank"

        if len(cleaned) > self.MAX_LENGTH:
            return False, None, f"Badge number must be at most {self.MAX_LENGTH} characters"

        return True, cleaned, None

    def is_valid(self, value: str) -> bool:
        """Quick validation check."""
        is_valid, _, _ = self.validate(value)
        return is_valid
