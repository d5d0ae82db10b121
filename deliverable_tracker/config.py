"""
Configuration loader for the Deliverable Tracker.

Loads settings from deliverable_tracker.yaml and provides typed access
to all configuration sections.
"""
from pathlib import Path
from typing import Any, Optional
from functools import lru_cache

import yaml


# Default config path relative to project root
DEFAULT_CONFIG_PATH = Path(__file__).parent.parent / "deliverable_tracker.yaml"

DEFAULT_ALWAYS_READ_ONLY = [
    "booking_code",
    "internal_document_number",
    "client_number",
    "project_number",
    "total_hours",
]


class ConfigurationError(Exception):
    """Raised when configuration loading or validation fails."""
    pass


class TrackerConfig:
    """
    Configuration manager for the Deliverable Tracker.

    Loads YAML configuration and provides typed access to all sections.
    Use get_config() to obtain the singleton instance.
    """

    def __init__(self, config_path: Optional[Path] = None):
        self._config_path = config_path or DEFAULT_CONFIG_PATH
        self._config: dict = {}
        self._load()

    def _load(self) -> None:
        """Load configuration from YAML file."""
        if not self._config_path.exists():
            raise ConfigurationError(f"Config file not found: {self._config_path}")

        try:
            with open(self._config_path, 'r') as f:
                self._config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in config file: {e}")

        if not isinstance(self._config, dict):
            raise ConfigurationError("Config file must contain a YAML mapping")

    def reload(self) -> None:
        """Reload configuration from disk."""
        self._load()
        get_config.cache_clear()

    @property
    def version(self) -> str:
        """Configuration file version."""
        return self._config.get("version", "unknown")

    # =========================================================================
    # Database
    # =========================================================================

    @property
    def database(self) -> dict:
        return self._config.get("database", {})

    @property
    def database_url(self) -> str:
        return self.database.get("url", "sqlite:///./deliverables.db")

    # =========================================================================
    # Logging
    # =========================================================================

    @property
    def logging(self) -> dict:
        return self._config.get("logging", {})

    @property
    def log_level(self) -> str:
        return str(self.logging.get("level", "INFO")).upper()

    @property
    def log_format(self) -> str:
        return self.logging.get(
            "format", "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )

    # =========================================================================
    # Validation
    # =========================================================================

    @property
    def validation(self) -> dict:
        return self._config.get("validation", {})

    @property
    def cell_edit_key_threshold(self) -> int:
        """
        Deltas with fewer keys than this are treated as cell edits when the
        caller does not say which fields changed.
        """
        return int(self.validation.get("cell_edit_key_threshold", 5))

    # =========================================================================
    # Deliverables
    # =========================================================================

    @property
    def deliverables(self) -> dict:
        return self._config.get("deliverables", {})

    @property
    def always_read_only_fields(self) -> frozenset:
        """Fields calculated by the data service and never user-editable."""
        return frozenset(self.deliverables.get("always_read_only", DEFAULT_ALWAYS_READ_ONLY))

    # =========================================================================
    # Numbering
    # =========================================================================

    @property
    def numbering(self) -> dict:
        """Auto-increment numbering schemes keyed by scheme name."""
        return self._config.get("numbering", {})

    def get_numbering_scheme(self, scheme: str) -> dict:
        """
        Get an auto-increment scheme.

        Args:
            scheme: One of 'project', 'variation', 'area'

        Returns:
            Dict with field, pad_length, start_from and optional scope_field

        Raises:
            ConfigurationError: If the scheme is not configured
        """
        if scheme not in self.numbering:
            raise ConfigurationError(f"Unknown numbering scheme: {scheme}")
        definition = self.numbering[scheme]
        return {
            "field": definition["field"],
            "pad_length": int(definition.get("pad_length", 2)),
            "start_from": str(definition.get("start_from", "01")),
            "scope_field": definition.get("scope_field"),
        }

    # =========================================================================
    # Gates
    # =========================================================================

    @property
    def gates(self) -> list:
        """Seed list of deliverable gates."""
        return self._config.get("gates", [])

    # =========================================================================
    # Raw Access
    # =========================================================================

    def get(self, key: str, default: Any = None) -> Any:
        """Get a top-level config value by key."""
        return self._config.get(key, default)

    def __getitem__(self, key: str) -> Any:
        """Dictionary-style access to config."""
        return self._config[key]

    def __contains__(self, key: str) -> bool:
        """Check if key exists in config."""
        return key in self._config


@lru_cache(maxsize=1)
def get_config(config_path: Optional[str] = None) -> TrackerConfig:
    """
    Get the singleton configuration instance.

    Args:
        config_path: Optional path to config file. Only used on first call.

    Returns:
        TrackerConfig singleton instance
    """
    path = Path(config_path) if config_path else None
    return TrackerConfig(path)


def reload_config() -> TrackerConfig:
    """Reload configuration from disk and return new instance."""
    get_config.cache_clear()
    return get_config()
