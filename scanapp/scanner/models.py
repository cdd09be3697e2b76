"""
==============================================================================
Scan Session Models Module
==============================================================================

Enumerations and Pydantic models shared by the scan session components.

Types:
------
- ScanPhase: Lifecycle phase of a scan session
- ScanErrorKind: Error taxonomy surfaced to the host UI
- BarcodeFormat: Symbology identifiers understood by the decoders
- Candidate: One barcode returned by a platform decode call
- ScanPayload: Accepted decode result (raw value + format)
- ScanErrorInfo: Error descriptor (kind + message)
- ScanConfig: Per-scan configuration (formats, optional timeout)
- SessionSnapshot: Serializable view of a session for the host adapter

==============================================================================
"""

from __future__ import annotations

import enum
from typing import Iterable, Optional, Set

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ScanPhase(str, enum.Enum):
    """Phases of the scan session state machine."""
    IDLE = "idle"
    PROBING_CAPABILITY = "probing_capability"
    REQUESTING_PERMISSION = "requesting_permission"
    SCANNING = "scanning"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CLOSED = "closed"


class ScanErrorKind(str, enum.Enum):
    """
    Error kinds reported through ``on_error``.

    Only UNSUPPORTED is terminal for a session; the others are
    retryable with another ``start_scan``.
    """
    UNSUPPORTED = "unsupported"
    PERMISSION_DENIED = "permission_denied"
    ACTIVATION_FAILED = "activation_failed"
    SCAN_ERROR = "scan_error"

    @property
    def retryable(self) -> bool:
        return self is not ScanErrorKind.UNSUPPORTED


class BarcodeFormat(str, enum.Enum):
    """Barcode symbologies a decode call can be configured to recognize."""
    QR_CODE = "QR_CODE"
    AZTEC = "AZTEC"
    CODABAR = "CODABAR"
    CODE_39 = "CODE_39"
    CODE_93 = "CODE_93"
    CODE_128 = "CODE_128"
    DATA_MATRIX = "DATA_MATRIX"
    EAN_8 = "EAN_8"
    EAN_13 = "EAN_13"
    ITF = "ITF"
    PDF_417 = "PDF_417"
    UPC_A = "UPC_A"
    UPC_E = "UPC_E"

    @classmethod
    def parse(cls, value: str) -> Optional["BarcodeFormat"]:
        """
        Resolve a symbology identifier leniently.

        Accepts canonical names ("QR_CODE") as well as the spellings used
        by native plugins ("QrCode", "qr-code", "ean13").

        Returns:
            Matching format, or None when the identifier is unknown
        """
        if isinstance(value, cls):
            return value

        key = "".join(ch for ch in str(value).upper() if ch.isalnum())
        return _FORMAT_ALIASES.get(key)


_FORMAT_ALIASES = {
    "".join(ch for ch in fmt.value if ch.isalnum()): fmt for fmt in BarcodeFormat
}
_FORMAT_ALIASES.update({
    "QR": BarcodeFormat.QR_CODE,
    "QRCODE": BarcodeFormat.QR_CODE,
    "CODE39": BarcodeFormat.CODE_39,
    "CODE93": BarcodeFormat.CODE_93,
    "CODE128": BarcodeFormat.CODE_128,
    "I25": BarcodeFormat.ITF,
    "PDF417": BarcodeFormat.PDF_417,
    "UPCA": BarcodeFormat.UPC_A,
    "UPCE": BarcodeFormat.UPC_E,
    "EAN8": BarcodeFormat.EAN_8,
    "EAN13": BarcodeFormat.EAN_13,
})


DEFAULT_FORMATS: frozenset = frozenset({BarcodeFormat.QR_CODE})


class Candidate(BaseModel):
    """
    A single barcode returned by the platform decode call.

    ``format`` stays a plain string because platforms may report
    symbologies this package does not know; those are ignored by the
    session rather than rejected.
    """

    model_config = ConfigDict(frozen=True)

    raw_value: str = Field(..., description="Decoded barcode content")
    format: str = Field(default=BarcodeFormat.QR_CODE.value, description="Reported symbology")

    @property
    def barcode_format(self) -> Optional[BarcodeFormat]:
        return BarcodeFormat.parse(self.format)


class ScanPayload(BaseModel):
    """Decoded payload owned by a session once a scan succeeds."""

    model_config = ConfigDict(frozen=True)

    raw_value: str
    format: BarcodeFormat


class ScanErrorInfo(BaseModel):
    """Error descriptor owned by a session once a scan fails."""

    model_config = ConfigDict(frozen=True)

    kind: ScanErrorKind
    message: str


class ScanConfig(BaseModel):
    """
    Configuration for one ``start_scan`` call.

    Attributes:
        formats: Symbologies to recognize (QR only by default)
        timeout: Optional decode timeout in seconds, handed to the platform
    """

    formats: Set[BarcodeFormat] = Field(default_factory=lambda: set(DEFAULT_FORMATS))
    timeout: Optional[float] = Field(default=None, gt=0)

    @field_validator("formats", mode="before")
    @classmethod
    def validate_formats(cls, value):
        """Normalize identifiers, dropping unknown ones."""
        if value is None:
            return set(DEFAULT_FORMATS)
        if isinstance(value, str):
            value = [part for part in value.split(",") if part.strip()]

        formats = {BarcodeFormat.parse(item) for item in value}
        formats.discard(None)

        if not formats:
            raise ValueError("At least one supported barcode format is required")
        return formats

    @classmethod
    def from_formats(cls, formats: Iterable[str], timeout: Optional[float] = None) -> "ScanConfig":
        return cls(formats=list(formats), timeout=timeout)

    def accepts(self, candidate: Candidate) -> bool:
        """Check whether a candidate's format is part of this configuration."""
        return candidate.barcode_format in self.formats


class SessionSnapshot(BaseModel):
    """Serializable state of a session, sent to the host adapter."""

    phase: ScanPhase
    supported: Optional[bool] = None
    permission_granted: Optional[bool] = None
    surface_active: bool = False
    result: Optional[ScanPayload] = None
    error: Optional[ScanErrorInfo] = None
