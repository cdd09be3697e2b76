"""
==============================================================================
WebSocket Package
==============================================================================

Real-time WebSocket handlers.

Handlers:
---------
- scan_session: Host UI adapter driving one scan session per connection

==============================================================================
"""

from .scan_session import router as scan_session_router

__all__ = ["scan_session_router"]
