"""Provisioning module.

This module provides entity selection, connection naming and the run
orchestration that pushes connections to the connection management service.
"""

from .entity_filter import skip_entity
from .naming import NameRegistry, friendly_base_name
from .orchestrator import MetadataProvisioner, ProvisioningContext, ProvisioningMode

__all__ = [
    "skip_entity",
    "NameRegistry",
    "friendly_base_name",
    "MetadataProvisioner",
    "ProvisioningContext",
    "ProvisioningMode",
]
