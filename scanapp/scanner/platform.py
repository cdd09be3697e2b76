"""
==============================================================================
Scanner Platform Interface
==============================================================================

Abstract capability every scanning strategy implements.

The session only ever talks to this interface; overlay, pass-through and
webcam strategies are interchangeable implementations selected by
configuration (see ``scanapp.platforms.create_platform``).

Raw vocabularies:
-----------------
``request_permission`` returns whatever the platform speaks natively
(a string such as "granted"/"limited"/"denied", a boolean, or a mapping
wrapping one of those). Normalization happens in PermissionNegotiator.

==============================================================================
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, List

from .models import Candidate, ScanConfig


class ScannerPlatform(ABC):
    """
    Native (or fallback) scanning capability.

    Implementations may raise any exception from any method; each
    collaborator catches at its own stage boundary.
    """

    #: Human-readable strategy name, used in logs and health output
    name: str = "platform"

    @abstractmethod
    async def probe(self) -> bool:
        """Report whether scanning is usable on this device."""

    async def install_module(self) -> None:
        """Install a scanning module on demand (no-op by default)."""

    @abstractmethod
    async def request_permission(self) -> Any:
        """Ask for camera access, returning the platform's raw grant state."""

    @abstractmethod
    async def activate(self) -> None:
        """Make the camera surface visible and ready for a decode."""

    @abstractmethod
    async def deactivate(self) -> None:
        """Restore the visual state that preceded ``activate``."""

    @abstractmethod
    async def decode(self, config: ScanConfig) -> List[Candidate]:
        """
        Run one decode operation.

        Args:
            config: Formats to recognize and optional timeout

        Returns:
            Candidate barcodes in the order the native layer reports them
            (empty when the user cancelled or nothing was found)
        """

    async def stop(self) -> None:
        """Ask an in-flight decode to finish early (best effort, no-op by default)."""
