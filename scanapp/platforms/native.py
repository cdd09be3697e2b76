"""
==============================================================================
Native Scanning Strategies
==============================================================================

Platforms backed by a native scanner plugin reached through a bridge.

Strategies:
-----------
- OverlayPlatform: the plugin owns an isolated full-screen camera view
  (ML Kit style: support check, on-demand module install, permission
  states "granted"/"limited"/"denied", multi-barcode scan result)
- PassThroughPlatform: the plugin renders the camera beneath the host
  page, which is made transparent for the duration of the scan
  (community plugin style: boolean permission, hide/show background,
  single content result, stop on teardown)

The bridge objects are supplied by the host shell; any awaitable-returning
implementation of the protocols below works.

==============================================================================
"""

from __future__ import annotations

import logging
from typing import Any, List, Mapping, Optional, Protocol, Sequence

from scanapp.scanner.models import BarcodeFormat, Candidate, ScanConfig
from scanapp.scanner.platform import ScannerPlatform
from scanapp.scanner.surface import HostView


# Module logger
logger = logging.getLogger(__name__)


def _format_names(config: ScanConfig) -> List[str]:
    return sorted(fmt.value for fmt in config.formats)


# =============================================================================
# BRIDGE PROTOCOLS
# =============================================================================

class OverlayBridge(Protocol):
    async def is_supported(self) -> Any: ...

    async def install_module(self) -> None: ...

    async def request_permissions(self) -> Any: ...

    async def open_view(self) -> None: ...

    async def close_view(self) -> None: ...

    async def scan(self, formats: Sequence[str], timeout: Optional[float] = None) -> Any: ...

    async def stop_scan(self) -> None: ...


class PassThroughBridge(Protocol):
    async def is_available(self) -> Any: ...

    async def check_permission(self, force: bool = False) -> Any: ...

    async def hide_background(self) -> None: ...

    async def show_background(self) -> None: ...

    async def start_scan(self, formats: Sequence[str], timeout: Optional[float] = None) -> Any: ...

    async def stop_scan(self) -> None: ...


# =============================================================================
# OVERLAY STRATEGY
# =============================================================================

class OverlayPlatform(ScannerPlatform):
    """
    Modal overlay scanner.

    Example:
        >>> platform = OverlayPlatform(bridge)
        >>> session = ScanSession(platform)
    """

    name = "overlay"

    def __init__(self, bridge: OverlayBridge) -> None:
        self._bridge = bridge

    async def probe(self) -> bool:
        response = await self._bridge.is_supported()
        if isinstance(response, Mapping):
            return bool(response.get("supported", False))
        return bool(response)

    async def install_module(self) -> None:
        await self._bridge.install_module()

    async def request_permission(self) -> Any:
        return await self._bridge.request_permissions()

    async def activate(self) -> None:
        await self._bridge.open_view()

    async def deactivate(self) -> None:
        await self._bridge.close_view()

    async def decode(self, config: ScanConfig) -> List[Candidate]:
        response = await self._bridge.scan(_format_names(config), timeout=config.timeout)

        if isinstance(response, Mapping):
            barcodes = response.get("barcodes") or []
        else:
            barcodes = response or []

        return [self._to_candidate(barcode) for barcode in barcodes]

    async def stop(self) -> None:
        await self._bridge.stop_scan()

    @staticmethod
    def _to_candidate(barcode: Any) -> Candidate:
        if isinstance(barcode, Candidate):
            return barcode
        if isinstance(barcode, str):
            return Candidate(raw_value=barcode)

        raw_value = barcode.get("raw_value", barcode.get("rawValue", ""))
        fmt = barcode.get("format") or BarcodeFormat.QR_CODE.value
        return Candidate(raw_value=raw_value, format=str(fmt))


# =============================================================================
# PASS-THROUGH STRATEGY
# =============================================================================

class PassThroughPlatform(ScannerPlatform):
    """
    Background pass-through scanner.

    While active the host view is transparent and tagged with the
    ``scanner-active`` class; deactivation stops the native scan and
    restores both the native background and the host view, even when
    the bridge calls fail.
    """

    name = "passthrough"

    def __init__(self, bridge: PassThroughBridge, host_view: Optional[HostView] = None) -> None:
        self._bridge = bridge
        self.host_view = host_view or HostView()

    async def probe(self) -> bool:
        return bool(await self._bridge.is_available())

    async def request_permission(self) -> Any:
        return await self._bridge.check_permission(force=True)

    async def activate(self) -> None:
        await self._bridge.hide_background()
        self.host_view.make_transparent()

    async def deactivate(self) -> None:
        try:
            await self._bridge.stop_scan()
        finally:
            try:
                await self._bridge.show_background()
            finally:
                self.host_view.restore()

    async def decode(self, config: ScanConfig) -> List[Candidate]:
        response = await self._bridge.start_scan(_format_names(config), timeout=config.timeout)

        if not isinstance(response, Mapping) or not response.get("has_content"):
            return []

        fmt = response.get("format") or BarcodeFormat.QR_CODE.value
        return [Candidate(raw_value=response.get("content", ""), format=str(fmt))]

    async def stop(self) -> None:
        await self._bridge.stop_scan()
