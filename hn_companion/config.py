import copy
import os
from pathlib import Path
from typing import Any, Dict

import toml
from loguru import logger

DEFAULT_CONFIG: Dict[str, Dict[str, Any]] = {
    "api": {
        "base_url": "https://hacker-news.firebaseio.com/v0",
        "request_delay": 0.0,
        "timeout": 10.0,
        "concurrent_comments": False,
    },
    "feed": {"default": "top", "limit": 30},
    "events": {
        "enabled": True,
        "directory": "~/.hackernews-companion/logs",
    },
    "logging": {
        "level": "INFO",
        "path": "~/.hackernews-companion/hn_companion.log",
    },
}


def find_config_file() -> str:
    """
    Find the configuration file in standard locations.

    Look for config in the following locations (in order):
    1. ./hn_companion.toml (current directory)
    2. ~/.config/hn_companion/config.toml (user config directory)
    3. /etc/hn_companion/config.toml (system config directory)

    Returns:
        Path to the first config file found, or an empty string if none exists
    """
    # Check current directory
    current_dir = Path("./hn_companion.toml")
    if current_dir.exists():
        return str(current_dir)

    # Check user config directory
    user_config = Path.home() / ".config" / "hn_companion" / "config.toml"
    if user_config.exists():
        return str(user_config)

    # Check system config directory
    system_config = Path("/etc/hn_companion/config.toml")
    if system_config.exists():
        return str(system_config)

    return ""


def load_config(config_path: str = "") -> Dict[str, Any]:
    """
    Load configuration from a TOML file.

    Args:
        config_path: Path to the configuration file. If not provided,
                    the function will search for a config file in standard locations.

    Returns:
        Dictionary with configuration values
    """
    if not config_path:
        config_path = find_config_file()

    config = copy.deepcopy(DEFAULT_CONFIG)

    # If config file exists, load it and merge with defaults
    if config_path and os.path.exists(config_path):
        try:
            user_config = toml.load(config_path)
        except (OSError, toml.TomlDecodeError) as e:
            logger.warning("Error loading config file {}: {}", config_path, e)
            return config

        for section in config:
            if isinstance(user_config.get(section), dict):
                config[section].update(user_config[section])

    return config
