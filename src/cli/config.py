"""Configuration loading and management."""

from pathlib import Path
from typing import Optional

import yaml

from .config_models import OracleConfig


class ConfigError(ValueError):
    """Configuration is missing or invalid."""


def find_config() -> Optional[Path]:
    """Find config file in standard locations."""
    locations = [
        Path.cwd() / "config.yaml",
        Path.home() / ".flight-oracle" / "config.yaml",
    ]
    for loc in locations:
        if loc.exists():
            return loc
    return None


def load_config_model(config_path: Optional[Path] = None) -> OracleConfig:
    """Load configuration as Pydantic model with validation."""
    base_config = {}

    path = config_path or find_config()
    if path and path.exists():
        try:
            with open(path) as f:
                base_config = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in config file: {e}")

    try:
        return OracleConfig.from_dict(base_config)
    except Exception as e:
        raise ConfigError(f"Config validation failed: {e}")


def require_credentials(config: OracleConfig) -> None:
    """Refuse to start without the settings a live oracle cannot run without."""
    missing = []
    if not config.flightstats.app_id:
        missing.append("flightstats.app_id")
    if not config.flightstats.app_key:
        missing.append("flightstats.app_key")
    if config.email.enabled and not (config.email.admin_email and config.email.from_email):
        missing.append("email.admin_email/email.from_email")
    if missing:
        raise ConfigError(f"Please specify {', '.join(missing)} in your config.yaml")
