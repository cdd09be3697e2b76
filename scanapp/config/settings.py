"""
==============================================================================
Application Settings Module
==============================================================================

Configuration management using Pydantic Settings.

This module implements the Singleton pattern to ensure a single global
configuration instance throughout the application lifecycle.

Configuration Priority (highest to lowest):
------------------------------------------
1. Environment variables
2. .env file
3. Default values

Scanner Settings:
-----------------
- SCANNER_STRATEGY: webcam | overlay | passthrough
- SCANNER_FORMATS: comma-separated symbologies (default QR_CODE)
- DECODE_TIMEOUT_SECONDS: optional timeout handed to the platform decode

==============================================================================
"""

from __future__ import annotations

import json
import logging
from functools import lru_cache
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from scanapp.scanner.models import BarcodeFormat, ScanConfig


# Module logger
logger = logging.getLogger(__name__)


SCANNER_STRATEGIES = ("webcam", "overlay", "passthrough")


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Attributes:
        app_name: Display name for the application
        app_env: Environment mode (development/staging/production)
        debug: Enable debug mode for verbose logging
        host: Server bind address
        port: Server port number
        cors_origins: Allowed CORS origins (JSON array string)
        scanner_strategy: Scanning strategy selected for this deployment
        scanner_formats: Default symbologies (comma-separated)
        decode_timeout_seconds: Optional decode timeout passed to the platform
        camera_index: Webcam device index
        camera_show_preview: Show the webcam preview window
        frame_interval_ms: Delay between webcam frames
        install_scanner_module: Request native module install after probing

    Example:
        >>> settings = Settings()
        >>> settings.scanner_strategy
        'webcam'
        >>> settings.default_scan_config.formats
        {<BarcodeFormat.QR_CODE: 'QR_CODE'>}
    """

    # =========================================================================
    # PYDANTIC SETTINGS CONFIGURATION
    # =========================================================================
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        validate_default=True,
    )

    # =========================================================================
    # APPLICATION SETTINGS
    # =========================================================================
    app_name: str = Field(
        default="Scan Session Service",
        description="Display name for the application"
    )

    app_env: str = Field(
        default="development",
        description="Environment mode: development, staging, production"
    )

    debug: bool = Field(
        default=False,
        description="Enable debug mode for verbose logging"
    )

    # =========================================================================
    # SERVER SETTINGS
    # =========================================================================
    host: str = Field(
        default="0.0.0.0",
        description="Server bind address"
    )

    port: int = Field(
        default=8000,
        ge=1,
        le=65535,
        description="Server port number"
    )

    cors_origins: str = Field(
        default='["*"]',
        description="Allowed CORS origins as JSON array string"
    )

    # =========================================================================
    # SCANNER SETTINGS
    # =========================================================================
    scanner_strategy: str = Field(
        default="webcam",
        description="Scanning strategy: webcam, overlay, passthrough"
    )

    scanner_formats: str = Field(
        default=BarcodeFormat.QR_CODE.value,
        description="Default barcode symbologies, comma-separated"
    )

    decode_timeout_seconds: Optional[float] = Field(
        default=None,
        gt=0,
        le=600,
        description="Decode timeout handed to the platform (None = no timeout)"
    )

    camera_index: int = Field(
        default=0,
        ge=0,
        description="Webcam device index"
    )

    camera_show_preview: bool = Field(
        default=False,
        description="Show the webcam feed in a full-screen window"
    )

    frame_interval_ms: int = Field(
        default=30,
        ge=0,
        le=1000,
        description="Delay between webcam frames in milliseconds"
    )

    install_scanner_module: bool = Field(
        default=True,
        description="Request native scanner module installation after a supported probe"
    )

    # =========================================================================
    # VALIDATORS
    # =========================================================================
    @field_validator("app_env")
    @classmethod
    def validate_app_env(cls, value: str) -> str:
        """Normalize the environment name, falling back to development."""
        valid_envs = {"development", "staging", "production"}
        normalized = value.lower().strip()

        if normalized not in valid_envs:
            logger.warning(
                f"Unknown environment '{value}', defaulting to 'development'"
            )
            return "development"

        return normalized

    @field_validator("scanner_strategy")
    @classmethod
    def validate_scanner_strategy(cls, value: str) -> str:
        """
        Validate the scanning strategy name.

        Raises:
            ValueError: If the strategy is not recognized
        """
        normalized = value.lower().strip().replace("-", "")

        if normalized not in SCANNER_STRATEGIES:
            raise ValueError(
                f"Unsupported scanner strategy: {value}. "
                f"Supported: {', '.join(SCANNER_STRATEGIES)}"
            )

        return normalized

    @field_validator("scanner_formats")
    @classmethod
    def validate_scanner_formats(cls, value: str) -> str:
        """
        Validate that at least one configured symbology is known.

        Unknown entries are dropped with a warning.
        """
        parts = [part.strip() for part in value.split(",") if part.strip()]
        known = [BarcodeFormat.parse(part) for part in parts]

        for part, fmt in zip(parts, known):
            if fmt is None:
                logger.warning(f"Ignoring unknown barcode format '{part}'")

        resolved = [fmt.value for fmt in known if fmt is not None]
        if not resolved:
            raise ValueError(f"No supported barcode format in '{value}'")

        return ",".join(dict.fromkeys(resolved))

    # =========================================================================
    # COMPUTED PROPERTIES
    # =========================================================================
    @property
    def is_development(self) -> bool:
        return self.app_env == "development"

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"

    @property
    def cors_origins_list(self) -> List[str]:
        """
        Parse CORS origins from JSON string to list.

        Returns:
            List of allowed origin strings
        """
        try:
            origins = json.loads(self.cors_origins)
            if isinstance(origins, list):
                return origins
            return ["*"]
        except json.JSONDecodeError:
            logger.warning(
                f"Invalid CORS origins JSON: {self.cors_origins}, "
                "defaulting to ['*']"
            )
            return ["*"]

    @property
    def default_formats(self) -> List[BarcodeFormat]:
        return [BarcodeFormat(part) for part in self.scanner_formats.split(",")]

    @property
    def default_scan_config(self) -> ScanConfig:
        """Scan configuration used when the host does not send one."""
        return ScanConfig(
            formats=self.default_formats,
            timeout=self.decode_timeout_seconds,
        )

    def __repr__(self) -> str:
        return (
            f"Settings(app_name={self.app_name!r}, "
            f"app_env={self.app_env!r}, "
            f"scanner_strategy={self.scanner_strategy!r})"
        )


# =============================================================================
# SINGLETON INSTANCE MANAGEMENT
# =============================================================================

@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Get the global Settings instance (singleton pattern).

    Returns:
        Global Settings instance
    """
    settings = Settings()

    if settings.debug:
        logger.info(f"Configuration loaded: {settings}")

    return settings
