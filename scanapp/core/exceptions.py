"""
Application Exception Handling

Single AppException class for host-facing errors with FastAPI integration.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse


class AppException(Exception):
    """
    Unified application exception for host-facing error scenarios.

    Provides consistent error response format across the API and the
    scan session WebSocket.

    Usage:
        raise AppException("Unknown message type", "INVALID_MESSAGE", 400)
        raise AppException("Reset not allowed", "INVALID_TRANSITION", 409, {"phase": "scanning"})

    Error Codes:
        Session:
            - SESSION_CLOSED (409)
            - INVALID_TRANSITION (409)
            - SCAN_IN_PROGRESS (409)

        Adapter:
            - INVALID_MESSAGE (400)
            - INVALID_SCAN_CONFIG (422)

        General:
            - PLATFORM_NOT_CONFIGURED (500)
    """

    def __init__(
        self,
        message: str,
        code: str,
        status_code: int = 400,
        details: Optional[Dict[str, Any]] = None
    ):
        """
        Initialize application exception.

        Args:
            message: Human-readable error message
            code: Machine-readable error code (e.g., "INVALID_TRANSITION")
            status_code: HTTP status code (default: 400)
            details: Additional error context (optional)
        """
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}
        self.timestamp = datetime.utcnow().isoformat()
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for JSON response."""
        error_dict = {
            "success": False,
            "error": {
                "code": self.code,
                "message": self.message,
                "timestamp": self.timestamp
            }
        }

        if self.details:
            error_dict["error"]["details"] = self.details

        return error_dict


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """
    FastAPI exception handler for AppException.

    Converts AppException to consistent JSON error response.
    """
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict()
    )


def register_exception_handlers(app: FastAPI) -> None:
    """
    Register all exception handlers with FastAPI app.

    Args:
        app: FastAPI application instance
    """
    app.add_exception_handler(AppException, app_exception_handler)


# ============================================
# CONVENIENCE FACTORY FUNCTIONS
# ============================================

def session_closed() -> AppException:
    """Create session closed exception."""
    return AppException("Scan session is closed", "SESSION_CLOSED", 409)


def invalid_transition(operation: str, phase: str) -> AppException:
    """Create invalid state transition exception."""
    return AppException(
        f"Cannot {operation} while session is {phase}",
        "INVALID_TRANSITION",
        409,
        {"operation": operation, "phase": phase}
    )


def scan_in_progress() -> AppException:
    """Create scan already running exception."""
    return AppException("A scan is already in progress", "SCAN_IN_PROGRESS", 409)


def invalid_message(message_type: Optional[str]) -> AppException:
    """Create invalid adapter message exception."""
    return AppException(
        f"Unknown message type: {message_type!r}",
        "INVALID_MESSAGE",
        400,
        {"type": message_type}
    )


def invalid_scan_config(reason: str) -> AppException:
    """Create invalid scan configuration exception."""
    return AppException(
        f"Invalid scan configuration: {reason}",
        "INVALID_SCAN_CONFIG",
        422,
        {"reason": reason}
    )


def platform_not_configured(strategy: str) -> AppException:
    """Create missing platform collaborator exception."""
    return AppException(
        f"Scanner strategy '{strategy}' requires a native bridge",
        "PLATFORM_NOT_CONFIGURED",
        500,
        {"strategy": strategy}
    )
