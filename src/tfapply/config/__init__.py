"""
tfapply configuration.

- Pydantic-based settings (environment variables, .env files)
- Provider config file with registry credentials and shared extra files
"""

from tfapply.config.loader import ConfigLoader, get_config_path, load_config
from tfapply.config.settings import Settings, get_settings

__all__ = [
    "Settings",
    "get_settings",
    "ConfigLoader",
    "load_config",
    "get_config_path",
]
