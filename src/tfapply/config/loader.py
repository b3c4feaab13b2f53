"""
Provider configuration file loading.

Search order:
1. Explicit path (--config flag)
2. .tfapply/config.yaml (project root)
3. ~/.tfapply/config.yaml (user home)
4. Empty configuration

The file holds the process-wide registry credentials and extra files shared by
every operation:

    registry:
      - host: app.terraform.io
        token: ...
    extra_file:
      - path: providers.tf
        content: |
          provider "aws" {}
        force: true
        cleanup: true
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import structlog
import yaml

from tfapply.core.errors import ConfigurationError, ValidationError
from tfapply.models import ProviderConfig

logger = structlog.get_logger()

CONFIG_DIR = ".tfapply"
CONFIG_FILE = "config.yaml"


def get_config_path(explicit_path: str | Path | None = None) -> Path | None:
    """
    Find the configuration file to use.

    An explicit path must exist; otherwise the project and home locations are
    tried in order.

    Returns:
        Path to config file or None if not found
    """
    if explicit_path:
        path = Path(explicit_path)
        if not path.exists():
            raise ConfigurationError(f"config file not found: {path}", {"path": str(path)})
        return path

    cwd_config = Path.cwd() / CONFIG_DIR / CONFIG_FILE
    if cwd_config.exists():
        return cwd_config

    home_config = Path.home() / CONFIG_DIR / CONFIG_FILE
    if home_config.exists():
        return home_config

    return None


def read_yaml(path: Path) -> dict[str, Any]:
    """Read a YAML mapping, raising ConfigurationError on unreadable files."""
    try:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError(f"cannot read {path}: {e}", {"path": str(path)}) from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"{path} must contain a mapping", {"path": str(path)})
    return data


class ConfigLoader:
    """Loads the provider configuration from a YAML file."""

    def __init__(self, config_path: Path | None = None):
        self.config_path = config_path

    def load(self) -> ProviderConfig:
        if self.config_path is None:
            logger.debug("no_config_file")
            return ProviderConfig()

        data = read_yaml(self.config_path)
        try:
            config = ProviderConfig.from_dict(data)
        except ValidationError as e:
            raise ConfigurationError(
                f"invalid config {self.config_path}: {e.message}",
                {"path": str(self.config_path)},
            ) from e

        logger.debug(
            "loaded_config",
            path=str(self.config_path),
            registry_hosts=[c.host for c in config.registry],
            extra_files=[f.path for f in config.extra_files],
        )
        return config


def load_config(path: str | Path | None = None) -> ProviderConfig:
    """
    Convenience function to load the provider configuration.

    Args:
        path: Optional explicit config file path

    Returns:
        ProviderConfig instance
    """
    return ConfigLoader(get_config_path(path)).load()
