"""
==============================================================================
Scan Session State Machine
==============================================================================

Orchestrates one open/close cycle of the scanner for a host UI.

Transitions:
------------
    idle ──start_scan──▶ probing_capability
    probing_capability ──unsupported──▶ failed(unsupported)
    probing_capability ──supported──▶ requesting_permission
    requesting_permission ──denied──▶ failed(permission_denied)
    requesting_permission ──granted──▶ scanning          [surface.activate]
    scanning ──payload──▶ succeeded                      [surface.deactivate]
    scanning ──empty / cancelled──▶ idle                 [surface.deactivate]
    scanning ──activation or decode error──▶ failed      [surface.deactivate]
    succeeded | failed ──reset──▶ idle
    succeeded | failed ──start_scan──▶ probing_capability (cached probe)
    any ──close──▶ closed                                [surface.deactivate]

Closed is sticky: a decode that settles after ``close()`` is absorbed and
produces no callback.

==============================================================================
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Callable, Mapping, Optional, Union

from .capability import CapabilityProbe
from .errors import DecodeError, ScanFailure
from .models import (
    BarcodeFormat,
    ScanConfig,
    ScanErrorInfo,
    ScanErrorKind,
    ScanPayload,
    ScanPhase,
    SessionSnapshot,
)
from .permission import PermissionNegotiator
from .platform import ScannerPlatform
from .surface import CameraSurfaceController


# Module logger
logger = logging.getLogger(__name__)


ResultCallback = Callable[[str, BarcodeFormat], Any]
ErrorCallback = Callable[[ScanErrorKind, str], Any]
ClosedCallback = Callable[[], Any]


UNSUPPORTED_MESSAGE = "Barcode scanning is not supported on this device"
PERMISSION_MESSAGE = "Camera permission is required to scan barcodes"


class ScanSession:
    """
    Scan session for a single host UI instance.

    Sequences the capability probe, permission negotiator and camera
    surface around the platform decode call, and reports to the host
    through ``on_result``, ``on_error`` and ``on_closed`` (plain or
    async callables).

    Attributes:
        phase: Current ScanPhase
        supported: Memoized capability (None until probed)
        permission_granted: Outcome of the latest permission request
        last_result: Payload of a successful scan
        last_error: Descriptor of a failed scan
        surface_active: Whether the camera surface is engaged

    Example:
        >>> session = ScanSession(platform, on_result=print)
        >>> await session.start_scan()
        >>> session.phase
        <ScanPhase.SUCCEEDED: 'succeeded'>
        >>> await session.close()
    """

    def __init__(
        self,
        platform: ScannerPlatform,
        on_result: Optional[ResultCallback] = None,
        on_error: Optional[ErrorCallback] = None,
        on_closed: Optional[ClosedCallback] = None,
        config: Optional[ScanConfig] = None,
        install_module: bool = True,
    ) -> None:
        self._platform = platform
        self._on_result = on_result
        self._on_error = on_error
        self._on_closed = on_closed
        self._config = config or ScanConfig()

        self._probe = CapabilityProbe(platform, install_module=install_module)
        self._permissions = PermissionNegotiator(platform)
        self._surface = CameraSurfaceController(platform)

        self._phase = ScanPhase.IDLE
        self._permission_granted: Optional[bool] = None
        self._result: Optional[ScanPayload] = None
        self._error: Optional[ScanErrorInfo] = None

        self._running = False
        self._closing = False
        self._closed_event = asyncio.Event()

        logger.debug(f"Scan session created ({platform.name})")

    # =========================================================================
    # STATE
    # =========================================================================

    @property
    def phase(self) -> ScanPhase:
        return self._phase

    @property
    def supported(self) -> Optional[bool]:
        return self._probe.supported

    @property
    def permission_granted(self) -> Optional[bool]:
        return self._permission_granted

    @property
    def last_result(self) -> Optional[ScanPayload]:
        return self._result

    @property
    def last_error(self) -> Optional[ScanErrorInfo]:
        return self._error

    @property
    def surface_active(self) -> bool:
        return self._surface.is_active

    @property
    def surface(self) -> CameraSurfaceController:
        return self._surface

    @property
    def capability(self) -> CapabilityProbe:
        return self._probe

    @property
    def config(self) -> ScanConfig:
        return self._config

    @property
    def is_running(self) -> bool:
        """True while a start_scan pipeline is outstanding."""
        return self._running

    @property
    def is_closed(self) -> bool:
        return self._closing

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            phase=self._phase,
            supported=self.supported,
            permission_granted=self._permission_granted,
            surface_active=self.surface_active,
            result=self._result,
            error=self._error,
        )

    # =========================================================================
    # OPERATIONS
    # =========================================================================

    async def start_scan(
        self,
        config: Optional[Union[ScanConfig, Mapping[str, Any]]] = None
    ) -> Optional[ScanPayload]:
        """
        Run the probe → permission → activate+decode pipeline.

        Ignored while another scan is outstanding or once the session is
        closed. Every negative outcome short-circuits the remaining stages.

        Args:
            config: Scan configuration (defaults to the session config)

        Returns:
            The accepted payload, or None if the scan did not succeed
        """
        if self._closing:
            logger.debug("start_scan ignored: session closed")
            return None

        if self._running:
            logger.debug(f"start_scan ignored: scan already in progress ({self._phase.value})")
            return None

        if config is None:
            config = self._config
        elif not isinstance(config, ScanConfig):
            config = ScanConfig.model_validate(config)

        self._running = True
        self._clear()
        try:
            await self._run_pipeline(config)
        finally:
            self._running = False

        return self._result

    def reset(self) -> bool:
        """
        Clear the outcome of the last scan and return to idle.

        Only valid from succeeded or failed; anywhere else the call is
        rejected so a running scan is never abandoned with its surface up.

        Returns:
            True if the session was reset
        """
        if self._phase not in (ScanPhase.SUCCEEDED, ScanPhase.FAILED):
            logger.warning(f"⚠️ reset rejected in phase {self._phase.value}")
            return False

        self._clear()
        self._set_phase(ScanPhase.IDLE)
        return True

    async def close(self) -> None:
        """
        Close the session for good.

        Releases the camera surface if it is engaged (asking the platform
        to stop an in-flight decode first), then moves to closed and fires
        ``on_closed`` once. Calling it again waits for the first call.
        """
        if self._closing:
            await self._closed_event.wait()
            return

        self._closing = True
        logger.info("🛑 Closing scan session")

        try:
            if self._surface.is_active:
                await self._stop_platform()
                await self._surface.deactivate()
        finally:
            self._clear()
            self._set_phase(ScanPhase.CLOSED)
            self._closed_event.set()

        await self._emit(self._on_closed)

    # =========================================================================
    # PIPELINE
    # =========================================================================

    async def _run_pipeline(self, config: ScanConfig) -> None:
        self._set_phase(ScanPhase.PROBING_CAPABILITY)
        supported = await self._probe.probe()
        if self._closing:
            return

        if not supported:
            await self._fail(ScanErrorKind.UNSUPPORTED, UNSUPPORTED_MESSAGE)
            return

        self._set_phase(ScanPhase.REQUESTING_PERMISSION)
        granted = await self._permissions.request_permission()
        if self._closing:
            return

        self._permission_granted = granted
        if not granted:
            await self._fail(ScanErrorKind.PERMISSION_DENIED, PERMISSION_MESSAGE)
            return

        self._set_phase(ScanPhase.SCANNING)
        candidates = []
        try:
            async with self._surface.engaged():
                # close() may have landed while the platform was activating
                if not self._closing:
                    candidates = await self._decode(config)
        except ScanFailure as e:
            if not self._closing:
                await self._fail(e.kind, e.message)
            return
        except asyncio.CancelledError:
            if not self._closing:
                logger.info("Scan cancelled")
                self._set_phase(ScanPhase.IDLE)
            raise

        if self._closing:
            logger.debug("Decode settled after close, result discarded")
            return

        accepted = [c for c in candidates if config.accepts(c)]
        ignored = len(candidates) - len(accepted)
        if ignored:
            logger.debug(f"Ignored {ignored} candidate(s) outside configured formats")

        if not accepted:
            logger.info("No barcode scanned")
            self._set_phase(ScanPhase.IDLE)
            return

        # First match wins; no ranking across codes in frame
        first = accepted[0]
        self._result = ScanPayload(raw_value=first.raw_value, format=first.barcode_format)
        self._set_phase(ScanPhase.SUCCEEDED)
        logger.info(f"✅ Scanned {self._result.format.value}: {self._result.raw_value}")

        await self._emit(self._on_result, self._result.raw_value, self._result.format)

    async def _decode(self, config: ScanConfig):
        try:
            candidates = await self._platform.decode(config)
        except ScanFailure:
            raise
        except Exception as e:
            logger.error(f"❌ Scan error: {e}")
            raise DecodeError(f"Scan failed: {e}") from e

        return list(candidates or [])

    async def _stop_platform(self) -> None:
        try:
            await self._platform.stop()
        except Exception as e:
            logger.warning(f"⚠️ Platform stop failed: {e}")

    async def _fail(self, kind: ScanErrorKind, message: str) -> None:
        self._result = None
        self._error = ScanErrorInfo(kind=kind, message=message)
        self._set_phase(ScanPhase.FAILED)
        logger.warning(f"⚠️ Scan failed [{kind.value}]: {message}")

        await self._emit(self._on_error, kind, message)

    # =========================================================================
    # HELPERS
    # =========================================================================

    def _clear(self) -> None:
        self._result = None
        self._error = None

    def _set_phase(self, phase: ScanPhase) -> None:
        if phase is self._phase:
            return
        logger.debug(f"Phase {self._phase.value} → {phase.value}")
        self._phase = phase

    async def _emit(self, callback: Optional[Callable[..., Any]], *args: Any) -> None:
        if callback is None:
            return
        try:
            outcome = callback(*args)
            if inspect.isawaitable(outcome):
                await outcome
        except Exception as e:
            logger.error(f"❌ Host callback {getattr(callback, '__name__', callback)!r} failed: {e}")

    def __repr__(self) -> str:
        return (
            f"ScanSession(platform={self._platform.name!r}, "
            f"phase={self._phase.value!r}, "
            f"supported={self.supported})"
        )
