"""
Configuration Module for spike-mastodon.

This module provides configuration loading and management for the
spike-mastodon harness. Settings are loaded from config.yml, and the
per-user configuration folder (where credentials.toml lives) is resolved
with platformdirs so that it follows each OS's conventions.

Usage:
    >>> from config import load_config, config_folder
    >>> config = load_config()
    >>> folder = config_folder()
    >>> print(config["timeline"]["next_pages"])
"""
import copy
import os
import yaml
import logging
from pathlib import Path
from typing import Dict, Any, Optional

from platformdirs import user_config_dir


logger = logging.getLogger(__name__)

APP_NAME = "spike-mastodon"
CONFIG_DIR_ENV = "SPIKE_MASTODON_CONFIG_DIR"


class SpikeError(Exception):
    """Base class for every error spike-mastodon reports at the top level."""
    pass


class ConfigError(SpikeError):
    """Raised when configuration is unusable."""
    pass


def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """Load configuration from config.yml file.

    The file is merged over get_default_config(), so a config.yml only
    needs to carry the keys it changes.

    Args:
        config_path: Path to config.yml file. If None, looks in current directory
                    and parent directories.

    Returns:
        Dictionary containing configuration settings

    Example:
        >>> config = load_config()
        >>> scopes = config["mastodon"]["scopes"]
    """
    if config_path is None:
        # Try to find config.yml in current directory or parent directories
        current = Path.cwd()
        for parent in [current] + list(current.parents):
            candidate = parent / "config.yml"
            if candidate.exists():
                config_path = str(candidate)
                break

    if config_path is None:
        logger.info("config.yml not found, using default configuration")
        return get_default_config()

    try:
        with open(config_path, "r") as f:
            loaded = yaml.safe_load(f)
    except FileNotFoundError:
        logger.warning(f"Configuration file not found: {config_path}")
        return get_default_config()
    except yaml.YAMLError as e:
        logger.error(f"Error parsing configuration file: {e}")
        return get_default_config()

    if loaded is None:
        loaded = {}
    if not isinstance(loaded, dict):
        logger.warning("Configuration root must be a mapping, using default configuration")
        return get_default_config()

    config = _validate(_merge(get_default_config(), loaded))
    logger.info(f"Loaded configuration from {config_path}")
    return config


def get_default_config() -> Dict[str, Any]:
    """Return default configuration when config.yml is not available.

    Returns:
        Dictionary with default configuration values
    """
    return {
        "mastodon": {
            "server": "",
            "app_name": APP_NAME,
            "website": "https://github.com/joshka/spike-mastodon",
            "scopes": ["read"],
            "redirect_uri": "urn:ietf:wg:oauth:2.0:oob",
            "open_browser": True,
            "request_timeout": 30,
        },
        "timeline": {
            "next_pages": 3,
            "prev_pages": 1,
        },
        "logging": {
            "directory": ".",
            "filter": "urllib3=info,requests=info,mastodon_client=debug,info",
            "max_bytes": 10 * 1024 * 1024,  # 10MB
            "backup_count": 3,
        },
    }


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge override into a copy of base."""
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _is_int(value: Any, minimum: int) -> bool:
    # bool is an int subclass; "yes" is not a page count
    return isinstance(value, int) and not isinstance(value, bool) and value >= minimum


def _is_str_list(value: Any) -> bool:
    return isinstance(value, list) and all(isinstance(item, str) for item in value)


# (section, key) -> check for the value found in config.yml
_CHECKS = {
    ("mastodon", "server"): lambda v: isinstance(v, str),
    ("mastodon", "app_name"): lambda v: isinstance(v, str) and bool(v),
    ("mastodon", "website"): lambda v: v is None or isinstance(v, str),
    ("mastodon", "scopes"): lambda v: _is_str_list(v) and bool(v),
    ("mastodon", "redirect_uri"): lambda v: isinstance(v, str) and bool(v),
    ("mastodon", "open_browser"): lambda v: isinstance(v, bool),
    ("mastodon", "request_timeout"): lambda v: _is_int(v, 1),
    ("timeline", "next_pages"): lambda v: _is_int(v, 0),
    ("timeline", "prev_pages"): lambda v: _is_int(v, 0),
    ("logging", "directory"): lambda v: isinstance(v, str) and bool(v),
    ("logging", "filter"): lambda v: isinstance(v, str),
    ("logging", "max_bytes"): lambda v: _is_int(v, 0),
    ("logging", "backup_count"): lambda v: _is_int(v, 0),
}


def _validate(config: Dict[str, Any]) -> Dict[str, Any]:
    """Replace values of the wrong type with their defaults.

    Each replaced value is logged as a warning, so a typo in config.yml
    does not stop the run.
    """
    defaults = get_default_config()
    for section, default_section in defaults.items():
        if not isinstance(config.get(section), dict):
            logger.warning(
                f"Invalid '{section}' section: {config.get(section)!r}, using defaults"
            )
            config[section] = default_section
            continue
        for (check_section, key), check in _CHECKS.items():
            if check_section != section:
                continue
            value = config[section].get(key)
            if not check(value):
                default = default_section[key]
                logger.warning(
                    f"Invalid value for {section}.{key}: {value!r}, falling back to {default!r}"
                )
                config[section][key] = default
    return config


def config_folder() -> Path:
    """Return the per-user configuration folder for spike-mastodon.

    Resolution order:
    1. SPIKE_MASTODON_CONFIG_DIR environment variable
    2. platformdirs user_config_dir (e.g. ~/.config/spike-mastodon on Linux,
       ~/Library/Application Support/spike-mastodon on macOS)

    Returns:
        Path to the folder. It is not created here.

    Raises:
        ConfigError: If the folder cannot be determined
    """
    if env_dir := os.environ.get(CONFIG_DIR_ENV):
        return Path(env_dir).expanduser()

    try:
        folder = user_config_dir(APP_NAME, appauthor=False)
    except Exception as e:
        raise ConfigError("Couldn't determine config folder path") from e

    if not folder:
        raise ConfigError("Couldn't determine config folder path")
    return Path(folder)
