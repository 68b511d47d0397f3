"""Centralized constants and configuration loader.

This module provides access to configuration values and sensible defaults
for the matching thresholds, enrollment rules, storage location and API
settings. Values are loaded from config/config.yaml when available,
otherwise defaults are used.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

logger = logging.getLogger(__name__)

# Path to the default configuration file
DEFAULT_CONFIG_PATH = Path(__file__).parent.parent.parent / "config" / "config.yaml"


def load_config(config_path: Optional[Path] = None) -> Dict[str, Any]:
    """Load configuration from YAML file.

    Args:
        config_path: Path to config file. Uses default if None.

    Returns:
        Configuration dictionary.
    """
    path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH

    try:
        if path.exists():
            with open(path, "r") as f:
                return yaml.safe_load(f) or {}
    except Exception as e:
        logger.warning(f"Failed to load config from {path}: {e}")

    return {}


def _get_nested(config: Dict, *keys: str, default: Any = None) -> Any:
    """Get nested config value with default fallback."""
    value = config
    for key in keys:
        if isinstance(value, dict):
            value = value.get(key)
        else:
            return default
        if value is None:
            return default
    return value


# ============================================================
# Matching Constants
# ============================================================

@dataclass
class MatchingConfig:
    """Similarity scoring and threshold policy constants."""
    # Landmark displacement (pixels) at which similarity drops to 50
    distance_scale: float = 100.0
    # Minimum similarity to accept a gallery match during recognition
    recognition_threshold: float = 65.0
    # Minimum similarity between old and new photo to accept an update
    update_threshold: float = 70.0

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "MatchingConfig":
        """Create from config dictionary."""
        m = _get_nested(config, "matching") or {}
        thresholds = m.get("thresholds", {})

        return cls(
            distance_scale=float(m.get("distance_scale", 100.0)),
            recognition_threshold=float(thresholds.get("recognition", 65.0)),
            update_threshold=float(thresholds.get("update", 70.0)),
        )


# ============================================================
# Enrollment Constants
# ============================================================

@dataclass
class EnrollmentConfig:
    """Rules applied when enrolling a new identity."""
    # Identifiers are national ID numbers: exactly 8 digits
    identifier_pattern: str = r"^\d{8}$"
    # Human readable form of the pattern, used in error messages
    identifier_hint: str = "exactly 8 digits"

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "EnrollmentConfig":
        """Create from config dictionary."""
        e = _get_nested(config, "enrollment") or {}

        return cls(
            identifier_pattern=e.get("identifier_pattern", r"^\d{8}$"),
            identifier_hint=e.get("identifier_hint", "exactly 8 digits"),
        )


# ============================================================
# Storage Constants
# ============================================================

@dataclass
class StorageConfig:
    """Face database location."""
    database_path: str = "data/faces.db"

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "StorageConfig":
        """Create from config dictionary."""
        s = _get_nested(config, "storage") or {}
        return cls(database_path=s.get("database_path", "data/faces.db"))


# ============================================================
# API Constants
# ============================================================

@dataclass
class ApiConfig:
    """HTTP API settings."""
    host: str = "0.0.0.0"
    port: int = 8000
    cors_origins: List[str] = field(default_factory=lambda: ["*"])

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "ApiConfig":
        """Create from config dictionary."""
        a = _get_nested(config, "api") or {}

        return cls(
            host=a.get("host", "0.0.0.0"),
            port=int(a.get("port", 8000)),
            cors_origins=list(a.get("cors_origins", ["*"])),
        )


# ============================================================
# Global Config Instance (lazy loaded)
# ============================================================

class Config:
    """Global configuration singleton."""

    _instance: Optional["Config"] = None
    _config: Dict[str, Any] = {}

    def __new__(cls) -> "Config":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._load()
        return cls._instance

    def _load(self, config_path: Optional[Path] = None) -> None:
        """Load configuration from file."""
        self._config = load_config(config_path)
        self._matching: Optional[MatchingConfig] = None
        self._enrollment: Optional[EnrollmentConfig] = None
        self._storage: Optional[StorageConfig] = None
        self._api: Optional[ApiConfig] = None

    def reload(self, config_path: Optional[Path] = None) -> None:
        """Reload configuration from file and reset cached sections."""
        self._load(config_path)

    @property
    def matching(self) -> MatchingConfig:
        """Get matching config."""
        if self._matching is None:
            self._matching = MatchingConfig.from_config(self._config)
        return self._matching

    @property
    def enrollment(self) -> EnrollmentConfig:
        """Get enrollment config."""
        if self._enrollment is None:
            self._enrollment = EnrollmentConfig.from_config(self._config)
        return self._enrollment

    @property
    def storage(self) -> StorageConfig:
        """Get storage config."""
        if self._storage is None:
            self._storage = StorageConfig.from_config(self._config)
        return self._storage

    @property
    def api(self) -> ApiConfig:
        """Get API config."""
        if self._api is None:
            self._api = ApiConfig.from_config(self._config)
        return self._api

    def get(self, *keys: str, default: Any = None) -> Any:
        """Get a config value by key path."""
        return _get_nested(self._config, *keys, default=default)


def get_config() -> Config:
    """Get the global configuration instance."""
    return Config()


# Convenience accessors
def get_matching_config() -> MatchingConfig:
    """Get matching configuration."""
    return get_config().matching


def get_enrollment_config() -> EnrollmentConfig:
    """Get enrollment configuration."""
    return get_config().enrollment


def get_storage_config() -> StorageConfig:
    """Get storage configuration."""
    return get_config().storage


def get_api_config() -> ApiConfig:
    """Get API configuration."""
    return get_config().api
