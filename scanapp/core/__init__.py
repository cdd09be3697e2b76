"""
==============================================================================
Core Package
==============================================================================

Core utilities and infrastructure for the application.

Modules:
--------
- exceptions: AppException class and error factory functions
- dependencies: Scanner platform provider and FastAPI dependencies

Usage:
------
    from scanapp.core import exceptions
    raise exceptions.invalid_transition("reset", "scanning")

==============================================================================
"""

from .exceptions import (
    AppException,
    register_exception_handlers,
)
from .dependencies import (
    PlatformProvider,
    get_platform_factory,
    get_platform_provider,
)

__all__ = [
    # Exceptions
    "AppException",
    "register_exception_handlers",
    # Dependencies
    "PlatformProvider",
    "get_platform_factory",
    "get_platform_provider",
]
