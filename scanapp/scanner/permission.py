"""
Permission negotiator.

Requests camera access on every attempt and reduces the platform's grant
vocabulary to a plain granted/denied decision.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

from .platform import ScannerPlatform


# Module logger
logger = logging.getLogger(__name__)


# Partial access is still usable for scanning
GRANTED_STATES = frozenset({"granted", "limited"})

# Keys native plugins use to wrap the grant state
_STATE_KEYS = ("camera", "granted", "state", "status")


def normalize_permission(state: Any) -> bool:
    """
    Map a raw platform permission state onto granted/denied.

    Accepts booleans, state strings ("granted", "limited", "denied",
    "prompt", ...) and mappings such as ``{"camera": "limited"}`` or
    ``{"granted": True}``. Anything unrecognized is denied.

    Args:
        state: Raw value returned by the platform

    Returns:
        True when scanning may proceed
    """
    if isinstance(state, bool):
        return state

    if isinstance(state, str):
        return state.strip().lower() in GRANTED_STATES

    if isinstance(state, Mapping):
        for key in _STATE_KEYS:
            if key in state:
                return normalize_permission(state[key])
        return False

    return False


class PermissionNegotiator:
    """
    Fail-closed camera permission request.

    Not cached: grants can be revoked between attempts, so every call
    goes back to the platform.
    """

    def __init__(self, platform: ScannerPlatform) -> None:
        self._platform = platform

    async def request_permission(self) -> bool:
        try:
            raw_state = await self._platform.request_permission()
        except Exception as e:
            logger.warning(f"⚠️ Permission request failed: {e}")
            raw_state = None

        granted = normalize_permission(raw_state)

        if granted:
            logger.info(f"🔓 Camera permission granted ({raw_state!r})")
        else:
            logger.info(f"🔒 Camera permission denied ({raw_state!r})")

        return granted
