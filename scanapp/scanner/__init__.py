"""
==============================================================================
Scanner Package - Scan Session Lifecycle
==============================================================================

Camera scan sessions shared by every scanning strategy.

Classes:
--------
- ScanSession: State machine driving probe, permission, surface and decode
- CapabilityProbe: Memoized, fail-closed support check
- PermissionNegotiator: Platform permission vocabulary -> granted/denied
- CameraSurfaceController: Guaranteed release of the camera surface
- ScannerPlatform: Interface implemented by every strategy

==============================================================================
"""

from .models import (
    BarcodeFormat,
    Candidate,
    ScanConfig,
    ScanErrorInfo,
    ScanErrorKind,
    ScanPayload,
    ScanPhase,
    SessionSnapshot,
)
from .errors import ScanFailure
from .platform import ScannerPlatform
from .capability import CapabilityProbe
from .permission import PermissionNegotiator, normalize_permission
from .surface import CameraSurfaceController, HostView
from .session import ScanSession

__all__ = [
    "BarcodeFormat",
    "Candidate",
    "ScanConfig",
    "ScanErrorInfo",
    "ScanErrorKind",
    "ScanPayload",
    "ScanPhase",
    "SessionSnapshot",
    "ScanFailure",
    "ScannerPlatform",
    "CapabilityProbe",
    "PermissionNegotiator",
    "normalize_permission",
    "CameraSurfaceController",
    "HostView",
    "ScanSession",
]
