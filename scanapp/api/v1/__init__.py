"""
==============================================================================
API v1 Endpoints
==============================================================================

Version 1 of the REST API.

Routers:
--------
- health: Health check endpoints
- scanner: Scanner formats and capability probe

==============================================================================
"""

from . import health, scanner

__all__ = ["health", "scanner"]
