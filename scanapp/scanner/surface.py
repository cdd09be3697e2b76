"""
==============================================================================
Camera Surface Module
==============================================================================

Activation and guaranteed restoration of the camera surface.

Classes:
--------
- HostView: Visual state of the host page (background + document classes),
  repurposed as the viewfinder by the pass-through strategy
- CameraSurfaceController: Exclusive activate/deactivate discipline around
  the platform, with an ``engaged()`` async context manager that releases
  the surface on every exit path

==============================================================================
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional, Set

from .errors import SurfaceActivationError
from .platform import ScannerPlatform


# Module logger
logger = logging.getLogger(__name__)


SCANNER_ACTIVE_CLASS = "scanner-active"
TRANSPARENT = "transparent"


class HostView:
    """
    Host document visual state.

    The pass-through strategy makes the background transparent so the OS
    camera layer shows through, and tags the document so the host stops
    painting its own background. ``restore`` puts back exactly what was
    there before.
    """

    def __init__(self, background: str = "#ffffff", classes: Optional[Set[str]] = None) -> None:
        self.background = background
        self.classes: Set[str] = set(classes or ())
        self._saved_background: Optional[str] = None

    @property
    def is_transparent(self) -> bool:
        return self._saved_background is not None

    def make_transparent(self) -> None:
        if self._saved_background is None:
            self._saved_background = self.background
        self.background = TRANSPARENT
        self.classes.add(SCANNER_ACTIVE_CLASS)

    def restore(self) -> None:
        if self._saved_background is not None:
            self.background = self._saved_background
            self._saved_background = None
        self.classes.discard(SCANNER_ACTIVE_CLASS)

    def __repr__(self) -> str:
        return f"HostView(background={self.background!r}, classes={sorted(self.classes)!r})"


class CameraSurfaceController:
    """
    Owns the camera surface for one session.

    ``is_active`` turns True when activation starts and False only once
    deactivation has finished, so it never disagrees with a session that
    is still in its scanning phase. Deactivation runs at most once per
    activation; extra calls are no-ops.

    Example:
        >>> surface = CameraSurfaceController(platform)
        >>> async with surface.engaged():
        ...     candidates = await platform.decode(config)
    """

    def __init__(self, platform: ScannerPlatform) -> None:
        self._platform = platform
        self._active = False
        self._releasing = False
        self._released: Optional[asyncio.Event] = None
        self._activated: Optional[asyncio.Event] = None
        self.activations = 0
        self.deactivations = 0

    @property
    def is_active(self) -> bool:
        return self._active

    async def activate(self) -> None:
        """
        Engage the camera surface.

        Raises:
            SurfaceActivationError: If the platform could not engage the
                surface; the controller stays active until ``deactivate``
        """
        if self._active:
            logger.debug("Surface already active")
            return

        self._active = True
        self.activations += 1
        self._activated = asyncio.Event()
        logger.debug(f"📷 Activating camera surface ({self._platform.name})")

        try:
            await self._platform.activate()
        except Exception as e:
            logger.error(f"❌ Camera surface activation failed: {e}")
            raise SurfaceActivationError(f"Camera could not be started: {e}") from e
        finally:
            self._activated.set()

    async def deactivate(self) -> bool:
        """
        Restore the pre-activation visual state.

        A call that arrives while another one is releasing waits for it
        to finish instead of touching the platform again. A call that
        arrives while the platform is still activating waits for the
        activation to settle, so the platform always sees deactivate
        after activate.

        Returns:
            True if this call performed the deactivation
        """
        if not self._active:
            return False

        if self._releasing:
            await self._released.wait()
            return False

        self._releasing = True
        self._released = asyncio.Event()
        try:
            if self._activated is not None:
                await self._activated.wait()
            await self._platform.deactivate()
        except Exception as e:
            logger.error(f"❌ Camera surface restore failed: {e}")
        finally:
            self._active = False
            self._releasing = False
            self.deactivations += 1
            self._released.set()

        logger.debug("📷 Camera surface released")
        return True

    @asynccontextmanager
    async def engaged(self) -> AsyncIterator["CameraSurfaceController"]:
        """Activate for the duration of the block, releasing on any exit."""
        try:
            await self.activate()
            yield self
        finally:
            await self.deactivate()
