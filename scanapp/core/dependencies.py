"""
==============================================================================
FastAPI Dependencies Module
==============================================================================

Dependency injection for the scanner platform.

Every scan session WebSocket builds its own platform through the factory
returned by ``get_platform_factory``; tests override that dependency with
scripted platforms.

Usage Examples:
--------------
    # Host shell registering its native bridge at startup
    provider = get_platform_provider()
    provider.register_bridge(bridge, host_view)

    @router.websocket("/ws/scan")
    async def ws(websocket: WebSocket, factory=Depends(get_platform_factory)):
        platform = factory()

==============================================================================
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any, Callable, Optional

from scanapp.config import get_settings
from scanapp.scanner.platform import ScannerPlatform
from scanapp.scanner.surface import HostView


# Module logger
logger = logging.getLogger(__name__)


PlatformFactory = Callable[[], ScannerPlatform]


class PlatformProvider:
    """
    Builds scanner platforms for the configured strategy.

    Native strategies need a bridge supplied by the host shell; it is
    registered once and shared by every session built afterwards.
    """

    def __init__(self) -> None:
        self._bridge: Any = None
        self._host_view: Optional[HostView] = None

    @property
    def has_bridge(self) -> bool:
        return self._bridge is not None

    def register_bridge(self, bridge: Any, host_view: Optional[HostView] = None) -> None:
        """Register the native bridge (and host view for pass-through)."""
        self._bridge = bridge
        self._host_view = host_view
        logger.info(f"🔌 Native bridge registered: {type(bridge).__name__}")

    def create(self) -> ScannerPlatform:
        from scanapp.platforms import create_platform

        return create_platform(get_settings(), self._bridge, self._host_view)


@lru_cache(maxsize=1)
def get_platform_provider() -> PlatformProvider:
    """Get the global PlatformProvider instance."""
    return PlatformProvider()


def get_platform_factory() -> PlatformFactory:
    """FastAPI dependency returning a zero-argument platform factory."""
    return get_platform_provider().create
