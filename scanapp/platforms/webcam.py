"""
==============================================================================
Webcam Scanning Strategy
==============================================================================

Web-camera fallback built on OpenCV capture and pyzbar decoding.

Behavior:
---------
- probe: the configured camera device can be opened
- request_permission: a frame can actually be read ("granted"), which is
  how a desktop OS refusal shows up
- activate: opens the capture and, when enabled, a full-screen preview
  window that acts as the isolated camera view
- decode: reads frames in a worker thread until a barcode is found, the
  optional timeout elapses (empty result) or a stop is requested
- deactivate: stops the worker, releases the camera, closes the window

==============================================================================
"""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from typing import Callable, List, Optional

import cv2

from scanapp.scanner.decoder import FrameDecoder
from scanapp.scanner.models import Candidate, ScanConfig
from scanapp.scanner.platform import ScannerPlatform


# Module logger
logger = logging.getLogger(__name__)


class WebcamPlatform(ScannerPlatform):
    """
    OpenCV/pyzbar scanner for devices without a native plugin.

    Attributes:
        camera_index: Camera device index (0 = default)
        show_preview: Show the live feed in a full-screen window

    Example:
        >>> platform = WebcamPlatform(camera_index=0, show_preview=True)
        >>> session = ScanSession(platform)
    """

    name = "webcam"

    def __init__(
        self,
        camera_index: int = 0,
        show_preview: bool = False,
        window_name: str = "Barcode Scanner",
        frame_interval_ms: int = 30,
        capture_factory: Callable[[int], "cv2.VideoCapture"] = cv2.VideoCapture,
    ) -> None:
        self.camera_index = camera_index
        self.show_preview = show_preview
        self._window_name = window_name
        self._frame_interval = frame_interval_ms / 1000.0
        self._capture_factory = capture_factory

        self._cap = None
        self._stop = threading.Event()
        self._worker: Optional[asyncio.Future] = None

        logger.debug(f"Webcam platform created (camera {camera_index})")

    # =========================================================================
    # CAPABILITY / PERMISSION
    # =========================================================================

    async def probe(self) -> bool:
        return await asyncio.to_thread(self._probe_device)

    def _probe_device(self) -> bool:
        cap = self._capture_factory(self.camera_index)
        try:
            return bool(cap.isOpened())
        finally:
            cap.release()

    async def request_permission(self) -> str:
        return await asyncio.to_thread(self._check_access)

    def _check_access(self) -> str:
        cap = self._capture_factory(self.camera_index)
        try:
            if not cap.isOpened():
                return "denied"
            ok, _ = cap.read()
            return "granted" if ok else "denied"
        finally:
            cap.release()

    # =========================================================================
    # SURFACE
    # =========================================================================

    async def activate(self) -> None:
        await asyncio.to_thread(self._open)

    def _open(self) -> None:
        self._cap = self._capture_factory(self.camera_index)

        if not self._cap.isOpened():
            raise RuntimeError(f"Cannot open camera {self.camera_index}")

        if self.show_preview:
            cv2.namedWindow(self._window_name, cv2.WINDOW_NORMAL)
            cv2.setWindowProperty(self._window_name, cv2.WND_PROP_FULLSCREEN, cv2.WINDOW_FULLSCREEN)

        logger.info(f"📷 Camera {self.camera_index} opened")

    async def deactivate(self) -> None:
        self._stop.set()

        worker = self._worker
        if worker is not None and not worker.done():
            await asyncio.wait({worker})
        self._worker = None

        await asyncio.to_thread(self._release)

    def _release(self) -> None:
        if self._cap is not None:
            self._cap.release()
            self._cap = None

        if self.show_preview:
            cv2.destroyWindow(self._window_name)

        # A stop requested before this release must not outlive it
        self._stop.clear()

        logger.debug(f"Camera {self.camera_index} released")

    # =========================================================================
    # DECODE
    # =========================================================================

    async def decode(self, config: ScanConfig) -> List[Candidate]:
        decoder = FrameDecoder(config.formats)
        self._worker = asyncio.ensure_future(
            asyncio.to_thread(self._scan_loop, decoder, config.timeout)
        )
        # The worker thread is stopped through the stop flag, never cancelled
        return await asyncio.shield(self._worker)

    async def stop(self) -> None:
        self._stop.set()

    def _scan_loop(self, decoder: FrameDecoder, timeout: Optional[float]) -> List[Candidate]:
        if self._cap is None:
            raise RuntimeError("Camera is not active")

        deadline = time.monotonic() + timeout if timeout else None

        while not self._stop.is_set():
            ok, frame = self._cap.read()
            if not ok:
                raise RuntimeError("Failed to read frame")

            barcodes = decoder.detect(frame)
            candidates = [c for c in map(decoder.to_candidate, barcodes) if c is not None]

            if self.show_preview:
                decoder.draw_detections(frame, barcodes)
                cv2.imshow(self._window_name, frame)
                if cv2.waitKey(1) & 0xFF == ord("q"):
                    logger.info("User pressed 'q' - scan cancelled")
                    return []

            if candidates:
                return candidates

            if deadline is not None and time.monotonic() >= deadline:
                logger.info(f"No barcode within {timeout}s")
                return []

            self._stop.wait(self._frame_interval)

        logger.debug("Scan loop stopped")
        return []
