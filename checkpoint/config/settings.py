"""
==============================================================================
Application Settings Module
==============================================================================

Configuration for the check-in badge capture service using Pydantic Settings.

Features:
---------
- Environment variable loading with type validation
- .env file support for local development
- Computed properties for scheduler timings (ms -> seconds)
- Cached singleton accessor

Configuration Priority (highest to lowest):
------------------------------------------
1. Environment variables
2. .env file
3. Default values

==============================================================================
"""

from __future__ import annotations

import json
import logging
from functools import lru_cache
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# Module logger
logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Attributes:
        app_name: Display name for the application
        app_env: Environment mode (development/staging/production)
        debug: Enable debug mode for verbose logging
        host: Server bind address
        port: Server port number
        camera_index: Default capture device index
        camera_device_scan_limit: Number of device indices probed when listing cameras
        capture_width: Requested native capture width
        capture_height: Requested native capture height
        display_width: Default displayed viewport width
        display_height: Default displayed viewport height
        require_secure_transport: Refuse sessions opened over plain HTTP from remote hosts
        barcode_fps: Barcode decode attempts per second
        ocr_interval_ms: Recognition sampling period
        cooldown_ms: Quiet period after each processed candidate
        tesseract_cmd: Optional path to the tesseract binary
        tesseract_lang: Tesseract language pack
        tesseract_config: Extra tesseract CLI flags
        verification_gateway_url: Base URL of the verification service
        verification_timeout_seconds: Gateway request timeout
        recent_scans_limit: Number of results kept in session history
        cors_origins: Allowed CORS origins (JSON array string)

    Example:
        >>> settings = Settings()
        >>> settings.cooldown_seconds
        2.0
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
        default="Checkpoint Badge Scanner",
        description="Display name for the application"
    )

    app_env: str = Field(
        default="development",
        description="Environment mode: development, staging, production"
    )

    debug: bool = Field(
        default=True,
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

    # =========================================================================
    # CAMERA SETTINGS
    # =========================================================================
    camera_index: int = Field(
        default=0,
        ge=0,
        description="Default capture device index"
    )

    camera_device_scan_limit: int = Field(
        default=4,
        ge=1,
        le=32,
        description="Number of device indices probed when listing cameras"
    )

    capture_width: int = Field(
        default=1280,
        ge=160,
        le=7680,
        description="Requested native capture width"
    )

    capture_height: int = Field(
        default=720,
        ge=120,
        le=4320,
        description="Requested native capture height"
    )

    display_width: int = Field(
        default=640,
        ge=0,
        description="Displayed viewport width until the client reports one"
    )

    display_height: int = Field(
        default=360,
        ge=0,
        description="Displayed viewport height until the client reports one"
    )

    require_secure_transport: bool = Field(
        default=False,
        description="Only open sessions over HTTPS or from localhost"
    )

    # =========================================================================
    # SCAN TIMING SETTINGS
    # =========================================================================
    barcode_fps: int = Field(
        default=10,
        ge=1,
        le=60,
        description="Barcode decode attempts per second"
    )

    ocr_interval_ms: int = Field(
        default=3000,
        ge=100,
        le=60000,
        description="Recognition sampling period in milliseconds"
    )

    cooldown_ms: int = Field(
        default=2000,
        ge=0,
        le=60000,
        description="Quiet period after each processed candidate"
    )

    # =========================================================================
    # RECOGNITION ENGINE SETTINGS
    # =========================================================================
    tesseract_cmd: Optional[str] = Field(
        default=None,
        description="Path to the tesseract binary (uses PATH when unset)"
    )

    tesseract_lang: str = Field(
        default="eng",
        description="Tesseract language pack"
    )

    tesseract_config: str = Field(
        default="--oem 1 --psm 6",
        description="Extra tesseract CLI flags"
    )

    # =========================================================================
    # VERIFICATION GATEWAY SETTINGS
    # =========================================================================
    verification_gateway_url: str = Field(
        default="http://127.0.0.1:9000",
        description="Base URL of the verification service"
    )

    verification_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        le=120,
        description="Gateway request timeout"
    )

    # =========================================================================
    # HISTORY SETTINGS
    # =========================================================================
    recent_scans_limit: int = Field(
        default=10,
        ge=1,
        le=200,
        description="Number of results kept in session history"
    )

    # =========================================================================
    # CORS SETTINGS
    # =========================================================================
    cors_origins: str = Field(
        default='["*"]',
        description="Allowed CORS origins as JSON array string"
    )

    # =========================================================================
    # VALIDATORS
    # =========================================================================
    @field_validator("app_env")
    @classmethod
    def validate_app_env(cls, value: str) -> str:
        """
        Validate and normalize application environment.

        Args:
            value: Raw environment value

        Returns:
            Lowercase normalized environment name
        """
        valid_envs = {"development", "staging", "production"}
        normalized = value.lower().strip()

        if normalized not in valid_envs:
            logger.warning(
                f"Unknown environment '{value}', defaulting to 'development'"
            )
            return "development"

        return normalized

    @field_validator("verification_gateway_url")
    @classmethod
    def strip_trailing_slash(cls, value: str) -> str:
        """Normalize the gateway base URL."""
        return value.strip().rstrip("/")

    # =========================================================================
    # COMPUTED PROPERTIES
    # =========================================================================
    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.app_env == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.app_env == "production"

    @property
    def barcode_interval_seconds(self) -> float:
        """Delay between barcode decode attempts."""
        return 1.0 / self.barcode_fps

    @property
    def ocr_interval_seconds(self) -> float:
        """Recognition sampling period in seconds."""
        return self.ocr_interval_ms / 1000.0

    @property
    def cooldown_seconds(self) -> float:
        """Cooldown in seconds."""
        return self.cooldown_ms / 1000.0

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

    def __repr__(self) -> str:
        """String representation for debugging."""
        return (
            f"Settings(app_name={self.app_name!r}, "
            f"app_env={self.app_env!r}, "
            f"camera_index={self.camera_index}, "
            f"debug={self.debug})"
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
