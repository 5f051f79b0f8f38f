"""Config module.

This module provides configuration management functionality.
"""

from metadata_provisioner.config.manager import load_config
from metadata_provisioner.config.schema import (
    AdapterConfig,
    AdaptersConfig,
    AttributeMapping,
    BindingsConfig,
    Config,
    ConnectionManagerConfig,
    ConnectionSettings,
    EntitySelectionConfig,
    LoggingConfig,
    MetadataConfig,
)

__all__ = [
    # Main configuration loading
    "load_config",
    # Configuration models
    "Config",
    "MetadataConfig",
    "ConnectionManagerConfig",
    "ConnectionSettings",
    "BindingsConfig",
    "AdapterConfig",
    "AdaptersConfig",
    "AttributeMapping",
    "EntitySelectionConfig",
    "LoggingConfig",
]
