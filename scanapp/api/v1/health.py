"""
==============================================================================
Health Check Endpoints
==============================================================================

System health status endpoints for monitoring and orchestration.

==============================================================================
"""

from fastapi import APIRouter

from scanapp.config import get_settings
from scanapp.core.dependencies import get_platform_provider


router = APIRouter(prefix="/health", tags=["Health"])


class HealthController:
    """Controller for health check operations."""

    def __init__(self):
        self._settings = get_settings()
        self._provider = get_platform_provider()

    def check_scanner(self) -> str:
        """Check that the configured strategy can build a platform."""
        if self._settings.scanner_strategy == "webcam":
            return "healthy"
        return "healthy" if self._provider.has_bridge else "not_configured"

    def get_health(self) -> dict:
        """Get full health status."""
        scanner_status = self.check_scanner()

        overall = "healthy" if scanner_status == "healthy" else "degraded"

        return {
            "status": overall,
            "components": {
                "api": "healthy",
                "scanner": scanner_status
            },
            "details": {
                "strategy": self._settings.scanner_strategy
            }
        }


@router.get("")
async def health_check():
    """
    Health check endpoint.

    Returns system status including API and scanner platform.
    """
    controller = HealthController()
    return controller.get_health()


@router.get("/ready")
async def readiness_check():
    """Readiness probe for container orchestration."""
    return {"ready": True}


@router.get("/live")
async def liveness_check():
    """Liveness probe for container orchestration."""
    return {"alive": True}
