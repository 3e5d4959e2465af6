"""
==============================================================================
Utilities Package
==============================================================================

Utility classes and functions for the application.

Modules:
--------
- validators: Manual entry validation
- scan_history: Bounded recent-scan history

==============================================================================
"""

from .validators import ManualEntryValidator
from .scan_history import ScanHistory

__all__ = [
    "ManualEntryValidator",
    "ScanHistory",
]
