"""Configuration manager for loading and managing configuration.

This module provides the main configuration loading and management functionality,
including support for JSON configuration files, environment variable overrides,
and configuration validation.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv
from pydantic import ValidationError

from metadata_provisioner.config.defaults import DEFAULT_CONFIG, DEFAULT_CONFIG_PATH
from metadata_provisioner.config.schema import Config
from metadata_provisioner.utils.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

# Environment variable prefix for all configuration overrides
ENV_PREFIX = "MDP_"

# (environment suffix, section, field, converter)
_ENV_OVERRIDES = [
    ("METADATA_LOCATION", "metadata", "location", str),
    ("METADATA_CERT", "metadata", "certificate_path", str),
    ("ALLOW_LEGACY_ALGORITHMS", "metadata", "allow_legacy_algorithms", "bool"),
    ("CM_URL", "connection_manager", "url", str),
    ("CM_USERNAME", "connection_manager", "username", str),
    ("CM_PASSWORD", "connection_manager", "password", str),
    ("VERIFY_TLS", "connection_manager", "verify_tls", "bool"),
    ("TIMEOUT_CONNECT", "connection_manager", "timeout_connect", int),
    ("TIMEOUT_READ", "connection_manager", "timeout_read", int),
    ("SIGNING_KEY_FINGERPRINT", "connection", "signing_key_fingerprint", str),
    ("BASIC_AUTH_PASSWORD", "connection", "basic_auth_password", str),
    ("PREFERRED_PROTOCOL", "connection", "preferred_protocol", str),
    ("LOG_LEVEL", "logging", "level", str),
    ("LOG_FILE", "logging", "log_file", str),
    ("REDACT_SECRETS", "logging", "redact_secrets", "bool"),
]

_SENSITIVE_FIELDS = [
    ("connection_manager", "password", "CM_PASSWORD"),
    ("connection", "basic_auth_password", "BASIC_AUTH_PASSWORD"),
]


def load_config(config_path: Optional[Path] = None) -> Config:
    """Load configuration from file and environment variables.

    Configuration is loaded with the following precedence (highest to lowest):
    1. CLI arguments (handled by caller)
    2. Environment variables (MDP_* prefix)
    3. Configuration file (JSON)
    4. Default values

    Args:
        config_path: Path to configuration file. If None, uses ./config/config.json

    Returns:
        Validated Config instance

    Raises:
        ConfigurationError: If configuration is invalid or malformed

    Example:
        >>> config = load_config(Path("config/incommon.json"))
        >>> config.connection_manager.url
        'https://localhost:9999/pf-mgmt-ws/ws/ConnectionMigrationMgr'
    """
    # Load .env file if present in project root
    load_dotenv()

    if config_path is None:
        config_path = Path(DEFAULT_CONFIG_PATH)

    config_dict = _load_config_file(config_path)

    # Check for secrets before env overrides so only file values are reported
    _check_sensitive_values(config_dict)

    config_dict = _apply_env_overrides(config_dict)

    try:
        return Config(**config_dict)
    except ValidationError as e:
        raise ConfigurationError(
            f"Configuration validation failed:\n{e}\n\n"
            f"Fix: Check your configuration file at {config_path} and ensure all "
            f"values match the expected format."
        ) from e


def _load_config_file(config_path: Path) -> dict[str, Any]:
    """Load configuration file or return defaults.

    Values missing from the file fall back to the defaults section by section.

    Raises:
        ConfigurationError: If JSON is malformed or the file cannot be read
    """
    # Deep copy of defaults to avoid mutation
    defaults = json.loads(json.dumps(DEFAULT_CONFIG))

    if not config_path.exists():
        logger.info(
            f"Config file not found: {config_path}. Using default configuration."
        )
        return defaults

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            file_dict = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigurationError(
            f"Invalid JSON in config file: {config_path}\n"
            f"Error: {e}\n"
            f"Fix: Check JSON syntax at line {e.lineno}, column {e.colno}"
        ) from e
    except OSError as e:
        raise ConfigurationError(
            f"Failed to read config file: {config_path}\n"
            f"Error: {e}\n"
            f"Fix: Check file permissions and path"
        ) from e

    if not isinstance(file_dict, dict):
        raise ConfigurationError(
            f"Config file {config_path} must contain a JSON object at top level"
        )

    logger.info(f"Loaded configuration from {config_path}")
    return _merge(defaults, file_dict)


def _merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Merge override into base, one level of nested sections deep."""
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            section = dict(merged[key])
            section.update(value)
            merged[key] = section
        else:
            merged[key] = value
    return merged


def _apply_env_overrides(config_dict: dict[str, Any]) -> dict[str, Any]:
    """Apply environment variable overrides with MDP_ prefix.

    Environment variables follow the pattern: MDP_<NAME>
    For example: MDP_CM_PASSWORD, MDP_METADATA_LOCATION, MDP_LOG_LEVEL

    Raises:
        ConfigurationError: If a numeric override is not a number
    """
    for suffix, section, field_name, converter in _ENV_OVERRIDES:
        raw = os.getenv(f"{ENV_PREFIX}{suffix}")
        if not raw:
            continue
        if converter == "bool":
            value: Any = _parse_bool(raw)
        else:
            try:
                value = converter(raw)
            except ValueError as e:
                raise ConfigurationError(
                    f"Invalid value for {ENV_PREFIX}{suffix}: {raw!r} ({e})"
                ) from e
        config_dict.setdefault(section, {})[field_name] = value
        logger.debug(f"Override: {field_name} from environment")

    return config_dict


def _parse_bool(value: str) -> bool:
    """Parse boolean value from string (case-insensitive)."""
    return value.lower() in ("true", "1", "yes", "on")


def _check_sensitive_values(config_dict: dict[str, Any]) -> None:
    """Warn when passwords are stored in the configuration file.

    Passwords belong in environment variables (or a .env file), not in
    configuration files that end up in version control.
    """
    for section, field_name, env_suffix in _SENSITIVE_FIELDS:
        if config_dict.get(section, {}).get(field_name):
            logger.warning(
                f"WARNING: {section}.{field_name} found in configuration file! "
                f"Passwords should be stored in environment variables, not config files. "
                f"Use {ENV_PREFIX}{env_suffix} environment variable instead."
            )
