"""
==============================================================================
Frame Decoder Module
==============================================================================

Barcode decoding of camera frames with OpenCV and pyzbar.

Features:
---------
- Symbology mapping between pyzbar/ZBar names and BarcodeFormat
- Symbol restriction so ZBar only looks for configured formats
- Candidate order preserved exactly as ZBar reports it
- Bounding box overlay for the webcam preview window

==============================================================================
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional

import cv2
import numpy as np
from pyzbar.pyzbar import ZBarSymbol, decode

from .models import BarcodeFormat, Candidate


# Module logger
logger = logging.getLogger(__name__)


# ZBar type name -> BarcodeFormat
ZBAR_FORMATS = {
    "QRCODE": BarcodeFormat.QR_CODE,
    "EAN13": BarcodeFormat.EAN_13,
    "EAN8": BarcodeFormat.EAN_8,
    "UPCA": BarcodeFormat.UPC_A,
    "UPCE": BarcodeFormat.UPC_E,
    "CODE128": BarcodeFormat.CODE_128,
    "CODE39": BarcodeFormat.CODE_39,
    "CODE93": BarcodeFormat.CODE_93,
    "I25": BarcodeFormat.ITF,
    "PDF417": BarcodeFormat.PDF_417,
    "CODABAR": BarcodeFormat.CODABAR,
}


class OverlayColors:
    """BGR colors for the preview overlay."""
    GREEN = (0, 255, 0)
    TEXT_BLACK = (0, 0, 0)


class FrameDecoder:
    """
    Decodes barcodes from frames into ordered candidates.

    Example:
        >>> decoder = FrameDecoder({BarcodeFormat.QR_CODE})
        >>> decoder.decode_frame(frame)
        [Candidate(raw_value='ABC123', format='QR_CODE')]
    """

    def __init__(self, formats: Optional[Iterable[BarcodeFormat]] = None) -> None:
        self._formats = set(formats) if formats else {BarcodeFormat.QR_CODE}
        self._symbols = self._symbols_for(self._formats)

    @property
    def formats(self) -> set:
        return set(self._formats)

    @staticmethod
    def _symbols_for(formats: Iterable[BarcodeFormat]) -> Optional[List[ZBarSymbol]]:
        """
        Restrict ZBar to the configured formats.

        Returns:
            ZBar symbols to scan for, or None (scan everything) when a
            configured format has no ZBar equivalent
        """
        wanted = set(formats)
        symbols = [
            ZBarSymbol[name] for name, fmt in ZBAR_FORMATS.items()
            if fmt in wanted
        ]
        return symbols or None

    @staticmethod
    def to_candidate(barcode) -> Optional[Candidate]:
        """Convert a pyzbar result into a Candidate (None if undecodable)."""
        try:
            raw_value = barcode.data.decode("utf-8")
        except UnicodeDecodeError:
            logger.warning(f"Skipping non UTF-8 {barcode.type} payload")
            return None

        fmt = ZBAR_FORMATS.get(barcode.type)
        return Candidate(raw_value=raw_value, format=fmt.value if fmt else barcode.type)

    def detect(self, frame: np.ndarray) -> list:
        """Run ZBar on a frame, returning raw pyzbar results."""
        if frame is None or frame.size == 0:
            return []

        if self._symbols:
            return decode(frame, symbols=self._symbols)
        return decode(frame)

    def decode_frame(self, frame: np.ndarray) -> List[Candidate]:
        """
        Decode all barcodes in a frame.

        Args:
            frame: OpenCV image (numpy array)

        Returns:
            Candidates in ZBar order
        """
        candidates = []
        for barcode in self.detect(frame):
            candidate = self.to_candidate(barcode)
            if candidate is not None:
                candidates.append(candidate)
        return candidates

    @staticmethod
    def draw_detections(frame: np.ndarray, barcodes: list) -> None:
        """Draw a labelled box around each detected barcode."""
        font = cv2.FONT_HERSHEY_SIMPLEX

        for barcode in barcodes:
            x, y, w, h = barcode.rect
            cv2.rectangle(frame, (x, y), (x + w, y + h), OverlayColors.GREEN, 3)

            label = barcode.type
            label_size, _ = cv2.getTextSize(label, font, 0.6, 2)
            label_y = y - 10 if y - 10 > label_size[1] else y + h + label_size[1] + 10

            cv2.rectangle(
                frame,
                (x, label_y - label_size[1] - 5),
                (x + label_size[0] + 10, label_y + 5),
                OverlayColors.GREEN,
                -1
            )
            cv2.putText(frame, label, (x + 5, label_y), font, 0.6, OverlayColors.TEXT_BLACK, 2)
