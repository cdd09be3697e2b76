"""
==============================================================================
Platforms Package - Scanning Strategies
==============================================================================

Concrete ScannerPlatform implementations, selected by configuration.

Classes:
--------
- OverlayPlatform: Native scanner with its own full-screen view
- PassThroughPlatform: Native camera beneath a transparent host view
- WebcamPlatform: OpenCV/pyzbar fallback (scanapp.platforms.webcam)

==============================================================================
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from scanapp.config import Settings, get_settings
from scanapp.core.exceptions import platform_not_configured
from scanapp.scanner.platform import ScannerPlatform
from scanapp.scanner.surface import HostView

from .native import OverlayPlatform, PassThroughPlatform


# Module logger
logger = logging.getLogger(__name__)


def create_platform(
    settings: Optional[Settings] = None,
    bridge: Any = None,
    host_view: Optional[HostView] = None,
) -> ScannerPlatform:
    """
    Build the platform for the configured scanner strategy.

    Args:
        settings: Settings to read the strategy from (global if None)
        bridge: Native bridge, required by overlay and passthrough
        host_view: Host view repurposed by the passthrough strategy

    Returns:
        ScannerPlatform instance

    Raises:
        AppException: If a native strategy is configured without a bridge
    """
    settings = settings or get_settings()
    strategy = settings.scanner_strategy

    if strategy == "webcam":
        # OpenCV and libzbar are only loaded for the webcam strategy
        from .webcam import WebcamPlatform

        platform = WebcamPlatform(
            camera_index=settings.camera_index,
            show_preview=settings.camera_show_preview,
            frame_interval_ms=settings.frame_interval_ms,
        )
    elif bridge is None:
        raise platform_not_configured(strategy)
    elif strategy == "overlay":
        platform = OverlayPlatform(bridge)
    else:
        platform = PassThroughPlatform(bridge, host_view)

    logger.debug(f"Scanner platform: {platform.name}")
    return platform


__all__ = [
    "OverlayPlatform",
    "PassThroughPlatform",
    "create_platform",
]
