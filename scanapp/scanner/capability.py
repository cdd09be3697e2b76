"""
Capability probe.

Determines once per session whether scanning is usable and, when it is,
kicks off the platform's module installation in the background.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from .platform import ScannerPlatform


# Module logger
logger = logging.getLogger(__name__)


class CapabilityProbe:
    """
    Memoized, fail-closed capability check.

    Attributes:
        supported: None until probed, then True/False for the session lifetime

    Example:
        >>> probe = CapabilityProbe(platform)
        >>> await probe.probe()
        True
    """

    def __init__(self, platform: ScannerPlatform, install_module: bool = True) -> None:
        self._platform = platform
        self._install_module = install_module
        self._supported: Optional[bool] = None
        self._install_task: Optional[asyncio.Task] = None

    @property
    def supported(self) -> Optional[bool]:
        return self._supported

    @property
    def install_task(self) -> Optional[asyncio.Task]:
        return self._install_task

    async def probe(self) -> bool:
        """
        Probe the platform, reusing the cached answer after the first call.

        Returns:
            True if scanning is supported
        """
        if self._supported is not None:
            logger.debug(f"Capability cached: supported={self._supported}")
            return self._supported

        try:
            supported = bool(await self._platform.probe())
        except Exception as e:
            logger.warning(f"⚠️ Capability probe failed on {self._platform.name}: {e}")
            supported = False

        self._supported = supported
        logger.info(f"🔎 Scanner {'supported' if supported else 'unsupported'} ({self._platform.name})")

        if supported and self._install_module:
            self._schedule_install()

        return supported

    def _schedule_install(self) -> None:
        if self._install_task is not None:
            return
        self._install_task = asyncio.ensure_future(self._install())

    async def _install(self) -> None:
        # Installation may still finish later on the device; never surfaced.
        try:
            await self._platform.install_module()
            logger.debug("Scanner module installation requested")
        except Exception as e:
            logger.warning(f"⚠️ Scanner module installation failed: {e}")
