"""
==============================================================================
Webcam Platform Tests
==============================================================================

Tests for the OpenCV/pyzbar fallback using a fake capture device.

==============================================================================
"""

import asyncio
from collections import namedtuple
from typing import List

import pytest

np = pytest.importorskip("numpy")
pytest.importorskip("cv2")
pytest.importorskip("pyzbar.pyzbar")

from scanapp.platforms.webcam import WebcamPlatform  # noqa: E402
from scanapp.scanner import (  # noqa: E402
    BarcodeFormat,
    Candidate,
    ScanConfig,
    ScanErrorKind,
    ScanPhase,
    ScanSession,
)
from scanapp.scanner.decoder import FrameDecoder  # noqa: E402


FakeBarcode = namedtuple("FakeBarcode", ["data", "type", "rect"])
Rect = namedtuple("Rect", ["left", "top", "width", "height"])


class FakeCapture:
    """Stand-in for cv2.VideoCapture producing blank frames."""

    def __init__(self, opened: bool = True, readable: bool = True):
        self.opened = opened
        self.readable = readable
        self.reads = 0
        self.released = False

    def isOpened(self):
        return self.opened

    def read(self):
        self.reads += 1
        if not self.readable:
            return False, None
        return True, np.zeros((120, 160, 3), dtype=np.uint8)

    def release(self):
        self.released = True


class CaptureFactory:
    """Records every capture the platform opens."""

    def __init__(self, **kwargs):
        self.kwargs = kwargs
        self.captures: List[FakeCapture] = []

    def __call__(self, index):
        capture = FakeCapture(**self.kwargs)
        self.captures.append(capture)
        return capture


def make_platform(**kwargs) -> WebcamPlatform:
    factory = CaptureFactory(**kwargs)
    platform = WebcamPlatform(frame_interval_ms=1, capture_factory=factory)
    platform.factory = factory
    return platform


@pytest.fixture
def qr_in_frame(monkeypatch):
    """Make every frame contain one QR code."""
    barcode = FakeBarcode(data=b"WEBCAM-QR", type="QRCODE", rect=Rect(10, 10, 50, 50))
    monkeypatch.setattr(FrameDecoder, "detect", lambda self, frame: [barcode])
    return barcode


# =============================================================================
# FRAME DECODER
# =============================================================================

class TestFrameDecoder:
    """pyzbar result conversion."""

    def test_blank_frame_has_no_candidates(self):
        decoder = FrameDecoder({BarcodeFormat.QR_CODE})

        assert decoder.decode_frame(np.zeros((120, 160, 3), dtype=np.uint8)) == []

    def test_empty_frame(self):
        assert FrameDecoder().detect(None) == []

    def test_to_candidate_maps_zbar_names(self):
        candidate = FrameDecoder.to_candidate(FakeBarcode(b"4006381333931", "EAN13", Rect(0, 0, 1, 1)))

        assert candidate == Candidate(raw_value="4006381333931", format="EAN_13")

    def test_to_candidate_keeps_unknown_type(self):
        candidate = FrameDecoder.to_candidate(FakeBarcode(b"x", "DATABAR", Rect(0, 0, 1, 1)))

        assert candidate.format == "DATABAR"
        assert candidate.barcode_format is None

    def test_to_candidate_skips_binary_payload(self):
        assert FrameDecoder.to_candidate(FakeBarcode(b"\xff\xfe", "QRCODE", Rect(0, 0, 1, 1))) is None

    def test_symbols_restricted_to_formats(self):
        decoder = FrameDecoder({BarcodeFormat.QR_CODE, BarcodeFormat.EAN_13})

        assert {symbol.name for symbol in decoder._symbols} == {"QRCODE", "EAN13"}

    def test_symbols_unrestricted_without_zbar_equivalent(self):
        assert FrameDecoder({BarcodeFormat.AZTEC})._symbols is None

    def test_draw_detections(self, qr_in_frame):
        frame = np.zeros((120, 160, 3), dtype=np.uint8)

        FrameDecoder.draw_detections(frame, [qr_in_frame])

        assert frame.any()


# =============================================================================
# WEBCAM PLATFORM
# =============================================================================

class TestWebcamPlatform:
    """Camera lifecycle and scan loop."""

    @pytest.mark.asyncio
    async def test_probe(self):
        assert await make_platform().probe() is True
        assert await make_platform(opened=False).probe() is False

    @pytest.mark.asyncio
    async def test_probe_releases_device(self):
        platform = make_platform()

        await platform.probe()

        assert platform.factory.captures[0].released

    @pytest.mark.asyncio
    async def test_permission_from_frame_read(self):
        assert await make_platform().request_permission() == "granted"
        assert await make_platform(readable=False).request_permission() == "denied"
        assert await make_platform(opened=False).request_permission() == "denied"

    @pytest.mark.asyncio
    async def test_activate_fails_when_device_closed(self):
        platform = make_platform(opened=False)

        with pytest.raises(RuntimeError):
            await platform.activate()

    @pytest.mark.asyncio
    async def test_decode_returns_candidates(self, qr_in_frame):
        platform = make_platform()
        await platform.activate()

        candidates = await platform.decode(ScanConfig())
        await platform.deactivate()

        assert candidates == [Candidate(raw_value="WEBCAM-QR", format="QR_CODE")]
        assert platform.factory.captures[-1].released

    @pytest.mark.asyncio
    async def test_timeout_returns_empty(self):
        platform = make_platform()
        await platform.activate()

        candidates = await platform.decode(ScanConfig(timeout=0.05))
        await platform.deactivate()

        assert candidates == []

    @pytest.mark.asyncio
    async def test_read_failure_raises(self):
        platform = make_platform(readable=False)
        await platform.activate()

        with pytest.raises(RuntimeError):
            await platform.decode(ScanConfig())
        await platform.deactivate()

    @pytest.mark.asyncio
    async def test_decode_without_activation_raises(self):
        with pytest.raises(RuntimeError):
            await make_platform().decode(ScanConfig())

    @pytest.mark.asyncio
    async def test_stop_ends_scan_loop(self):
        platform = make_platform()
        await platform.activate()

        task = asyncio.create_task(platform.decode(ScanConfig()))
        await asyncio.sleep(0.05)
        await platform.stop()

        assert await asyncio.wait_for(task, timeout=2) == []
        await platform.deactivate()

    @pytest.mark.asyncio
    async def test_stop_before_activation_is_kept(self):
        platform = make_platform()

        await platform.stop()
        await platform.activate()

        assert await asyncio.wait_for(platform.decode(ScanConfig()), timeout=2) == []
        await platform.deactivate()

    @pytest.mark.asyncio
    async def test_stop_cleared_after_release(self, qr_in_frame):
        platform = make_platform()
        await platform.stop()
        await platform.activate()
        await platform.deactivate()

        await platform.activate()
        candidates = await platform.decode(ScanConfig())
        await platform.deactivate()

        assert candidates == [Candidate(raw_value="WEBCAM-QR", format="QR_CODE")]

    @pytest.mark.asyncio
    async def test_deactivate_waits_for_worker(self):
        platform = make_platform()
        await platform.activate()

        task = asyncio.create_task(platform.decode(ScanConfig()))
        await asyncio.sleep(0.02)
        await asyncio.wait_for(platform.deactivate(), timeout=2)

        assert platform.factory.captures[-1].released
        assert await task == []


class TestWebcamSession:
    """Scan session running on the webcam platform."""

    @pytest.mark.asyncio
    async def test_successful_scan(self, qr_in_frame):
        results = []
        session = ScanSession(make_platform(), on_result=lambda value, fmt: results.append((value, fmt)))

        await session.start_scan()

        assert session.phase == ScanPhase.SUCCEEDED
        assert results == [("WEBCAM-QR", BarcodeFormat.QR_CODE)]
        assert not session.surface_active

    @pytest.mark.asyncio
    async def test_closed_device_is_unsupported(self):
        session = ScanSession(make_platform(opened=False))

        await session.start_scan()

        assert session.last_error.kind == ScanErrorKind.UNSUPPORTED

    @pytest.mark.asyncio
    async def test_timeout_returns_to_idle(self):
        errors = []
        session = ScanSession(make_platform(), on_error=lambda kind, message: errors.append(kind))

        await session.start_scan({"formats": ["QR_CODE"], "timeout": 0.05})

        assert session.phase == ScanPhase.IDLE
        assert errors == []
        assert not session.surface_active

    @pytest.mark.asyncio
    async def test_lost_camera_is_scan_error(self, monkeypatch):
        platform = make_platform()
        session = ScanSession(platform)

        def broken_loop(decoder, timeout):
            raise RuntimeError("Failed to read frame")

        monkeypatch.setattr(platform, "_scan_loop", broken_loop)
        await session.start_scan()

        assert session.last_error.kind == ScanErrorKind.SCAN_ERROR
        assert platform.factory.captures[-1].released

    @pytest.mark.asyncio
    async def test_close_during_scan(self):
        closed = []
        platform = make_platform()
        session = ScanSession(platform, on_closed=lambda: closed.append(True))

        task = asyncio.create_task(session.start_scan())
        for _ in range(100):
            if session.phase == ScanPhase.SCANNING:
                break
            await asyncio.sleep(0.01)
        await asyncio.sleep(0.02)

        await asyncio.wait_for(session.close(), timeout=2)

        assert session.phase == ScanPhase.CLOSED
        assert closed == [True]
        assert await asyncio.wait_for(task, timeout=2) is None
        assert platform.factory.captures[-1].released
