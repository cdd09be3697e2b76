"""
==============================================================================
Scanner Endpoints
==============================================================================

Read-only scanner information for host UIs deciding whether to show the
scan button.

Endpoints:
----------
- GET /scanner/formats: supported symbologies and the configured defaults
- GET /scanner/capabilities: probe the configured strategy once

==============================================================================
"""

from fastapi import APIRouter, Depends

from scanapp.config import get_settings
from scanapp.core.dependencies import PlatformFactory, get_platform_factory
from scanapp.scanner import BarcodeFormat, CapabilityProbe


router = APIRouter(prefix="/scanner", tags=["Scanner"])


@router.get("/formats")
async def list_formats():
    """List barcode formats a scan can be configured with."""
    settings = get_settings()
    return {
        "success": True,
        "formats": [fmt.value for fmt in BarcodeFormat],
        "default": [fmt.value for fmt in settings.default_formats]
    }


@router.get("/capabilities")
async def get_capabilities(platform_factory: PlatformFactory = Depends(get_platform_factory)):
    """
    Probe the configured scanner strategy.

    Uses a throwaway probe, so no module installation is triggered and
    no session state is touched.
    """
    platform = platform_factory()
    probe = CapabilityProbe(platform, install_module=False)
    supported = await probe.probe()

    return {
        "success": True,
        "strategy": platform.name,
        "supported": supported
    }
