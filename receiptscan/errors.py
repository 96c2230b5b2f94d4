# receiptscan/errors.py
"""
Failures scoped to a single receipt scan.

Extraction misses are not errors: extractors return None (or today's date)
and the caller asks the user to fill the gap.
"""

from __future__ import annotations


class ReceiptScanError(Exception):
    """Base class for anything that aborts one scan attempt."""


class PreprocessingError(ReceiptScanError):
    """The photo could not be decoded or the working bitmap could not be built."""


class RecognitionError(ReceiptScanError):
    """The OCR engine failed or timed out. Retryable by re-scanning."""


class ScanCancelledError(ReceiptScanError):
    """The scan was cancelled while recognition was in flight."""


class ScanInProgressError(ReceiptScanError):
    """A second scan was started on a session that is still busy."""
