"""
Scan pipeline failures.

Raised by pipeline stages and mapped by the session to a ``failed``
transition plus an ``on_error`` callback; they never escape to the host.
"""

from typing import Optional

from .models import ScanErrorKind


class ScanFailure(Exception):
    """Failure of one scan pipeline stage, tagged with its error kind."""

    kind: ScanErrorKind = ScanErrorKind.SCAN_ERROR

    def __init__(self, message: str, kind: Optional[ScanErrorKind] = None):
        self.message = message
        if kind is not None:
            self.kind = kind
        super().__init__(message)


class SurfaceActivationError(ScanFailure):
    kind = ScanErrorKind.ACTIVATION_FAILED


class DecodeError(ScanFailure):
    kind = ScanErrorKind.SCAN_ERROR
