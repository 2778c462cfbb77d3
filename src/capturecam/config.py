"""
CaptureCam Configuration
========================

This module handles configuration loading for the capture service.

Configuration Sources (in order of precedence):
    1. Environment variables (highest priority)
    2. config.yaml file
    3. Default values (lowest priority)

Environment Variable Mapping:
    CAPTURECAM_CAMERA_BACKEND   -> camera.backend
    CAPTURECAM_CAMERA_INDEX     -> camera.device_index
    CAPTURECAM_STREAM_URL       -> camera.stream_url
    CAPTURECAM_BRIGHTNESS_FLOOR -> brightness.floor
    CAPTURECAM_BLUR_FLOOR       -> sharpness.floor
    CAPTURECAM_UPLOADS_DIR      -> storage.uploads_dir
    CAPTURECAM_LEADS_DB         -> storage.leads_db_path
    CAPTURECAM_PORT             -> server.port
    CAPTURECAM_LOG_LEVEL        -> logging.level
    PORT                        -> server.port (Cloud Run)

Example:
    from capturecam.config import settings

    print(settings.brightness.floor)
    print(settings.output.width, settings.output.height)
"""

import os
import logging
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field


logger = logging.getLogger(__name__)


# =============================================================================
# Configuration Models
# =============================================================================

class AppConfig(BaseModel):
    """Service identification configuration."""

    name: str = Field(default="capturecam", description="Service name")
    version: str = Field(default="v0.1.0", description="Service version")


class CameraConfig(BaseModel):
    """Live video source configuration."""

    backend: str = Field(
        default="mock",
        description="Video source backend: 'mock', 'opencv' or 'stream'",
    )
    device_index: int = Field(default=0, ge=0, description="OpenCV device index")
    width: int = Field(default=1920, ge=1, description="Requested capture width")
    height: int = Field(default=1080, ge=1, description="Requested capture height")
    stream_url: str = Field(
        default="ws://localhost:8000/ws/camera",
        description="WebSocket URL for the 'stream' backend",
    )
    reconnect_backoff_ms: int = Field(
        default=500,
        ge=100,
        description="Backoff in milliseconds between reconnect attempts",
    )
    max_queue_size: int = Field(
        default=8,
        ge=1,
        description="Maximum size of internal frame buffer",
    )
    max_frame_age_ms: int = Field(
        default=2000,
        ge=1,
        description="Stream frames older than this are treated as unavailable",
    )


class BrightnessConfig(BaseModel):
    """Live-frame brightness gate."""

    floor: float = Field(
        default=25.0,
        ge=0,
        le=255,
        description="Capture is disabled below this mean luminance",
    )
    dim_below: float = Field(
        default=80.0,
        ge=0,
        le=255,
        description="Status is reported as 'dim' below this luminance",
    )
    poll_interval_ms: int = Field(
        default=500,
        ge=10,
        description="Brightness polling cadence while live",
    )
    sample_width: int = Field(default=64, ge=1, description="Sample width in pixels")
    sample_height: int = Field(default=48, ge=1, description="Sample height in pixels")


class SharpnessConfig(BaseModel):
    """Still-frame blur gate."""

    floor: float = Field(
        default=5.0,
        ge=0,
        description="Laplacian variance below this is rejected as blurry",
    )
    sample_width: int = Field(
        default=160,
        ge=3,
        description="Width the still is downscaled to before scoring",
    )


class OutputConfig(BaseModel):
    """Normalized artifact dimensions."""

    width: int = Field(default=1024, ge=1, description="Artifact width")
    height: int = Field(default=585, ge=1, description="Artifact height")


class StorageConfig(BaseModel):
    """Upload, gallery and lead storage configuration."""

    uploads_dir: str = Field(
        default="./public/uploads",
        description="Directory uploaded images are written to",
    )
    url_prefix: str = Field(
        default="/uploads",
        description="Public URL prefix for uploaded images",
    )
    max_upload_bytes: int = Field(
        default=10 * 1024 * 1024,
        ge=1,
        description="Maximum accepted upload size",
    )
    leads_db_path: str = Field(
        default="./data/leads.db",
        description="SQLite database file for lead records",
    )


class ServerConfig(BaseModel):
    """Server configuration."""

    host: str = Field(default="0.0.0.0", description="Bind host")
    port: int = Field(default=8001, ge=1, le=65535, description="Bind port")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO", description="Log level")
    format: str = Field(default="json", description="Log format: json or text")


class Settings(BaseModel):
    """
    Main settings class for CaptureCam.

    Loads configuration from YAML file and environment variables.
    Environment variables take precedence over file values.
    """

    app: AppConfig = Field(default_factory=AppConfig)
    camera: CameraConfig = Field(default_factory=CameraConfig)
    brightness: BrightnessConfig = Field(default_factory=BrightnessConfig)
    sharpness: SharpnessConfig = Field(default_factory=SharpnessConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


# =============================================================================
# Configuration Loading
# =============================================================================

def load_config(config_path: Optional[str] = None) -> Settings:
    """
    Load configuration from YAML file and environment variables.

    Priority (highest to lowest):
        1. Environment variables
        2. YAML config file
        3. Default values

    Args:
        config_path: Path to config.yaml. If None, searches common locations.

    Returns:
        Settings: Loaded configuration
    """
    if config_path is None:
        search_paths = [
            Path("config.yaml"),
            Path("config.yml"),
            Path("/app/config.yaml"),
            Path(__file__).parent.parent.parent / "config.yaml",
        ]
        for path in search_paths:
            if path.exists():
                config_path = str(path)
                break

    config_data = {}
    if config_path and Path(config_path).exists():
        logger.info(f"Loading config from: {config_path}")
        with open(config_path, "r") as f:
            config_data = yaml.safe_load(f) or {}
    else:
        logger.warning("No config file found, using defaults and environment variables")

    _apply_env_overrides(config_data)

    return Settings.model_validate(config_data)


def _apply_env_overrides(config_data: dict) -> None:
    """Apply environment variable overrides to config data."""

    # Camera settings
    if env_backend := os.environ.get("CAPTURECAM_CAMERA_BACKEND"):
        config_data.setdefault("camera", {})["backend"] = env_backend
    if env_index := os.environ.get("CAPTURECAM_CAMERA_INDEX"):
        config_data.setdefault("camera", {})["device_index"] = int(env_index)
    if env_url := os.environ.get("CAPTURECAM_STREAM_URL"):
        config_data.setdefault("camera", {})["stream_url"] = env_url

    # Quality gates
    if env_bright := os.environ.get("CAPTURECAM_BRIGHTNESS_FLOOR"):
        config_data.setdefault("brightness", {})["floor"] = float(env_bright)
    if env_blur := os.environ.get("CAPTURECAM_BLUR_FLOOR"):
        config_data.setdefault("sharpness", {})["floor"] = float(env_blur)

    # Storage settings
    if env_uploads := os.environ.get("CAPTURECAM_UPLOADS_DIR"):
        config_data.setdefault("storage", {})["uploads_dir"] = env_uploads
    if env_db := os.environ.get("CAPTURECAM_LEADS_DB"):
        config_data.setdefault("storage", {})["leads_db_path"] = env_db

    # Server settings (Cloud Run uses PORT env var)
    if env_port := os.environ.get("PORT"):
        config_data.setdefault("server", {})["port"] = int(env_port)
    elif env_port := os.environ.get("CAPTURECAM_PORT"):
        config_data.setdefault("server", {})["port"] = int(env_port)

    # Logging settings
    if env_log := os.environ.get("CAPTURECAM_LOG_LEVEL"):
        config_data.setdefault("logging", {})["level"] = env_log


def setup_logging(settings: Settings) -> None:
    """Configure logging based on settings."""
    log_level = getattr(logging, settings.logging.level.upper(), logging.INFO)

    if settings.logging.format == "json":
        log_format = '{"time": "%(asctime)s", "level": "%(levelname)s", "module": "%(name)s", "message": "%(message)s"}'
    else:
        log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    logging.basicConfig(
        level=log_level,
        format=log_format,
        datefmt="%Y-%m-%dT%H:%M:%S",
    )


# =============================================================================
# Global Settings Instance
# =============================================================================

# Global settings instance - loaded on import
settings = load_config()
setup_logging(settings)
