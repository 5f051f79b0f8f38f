"""Models module.

This module provides data models and dataclasses for the application.
"""

from metadata_provisioner.models.metadata import EntityDescriptor, Role, RoleDescriptor
from metadata_provisioner.models.responses import (
    ConnectionResponse,
    ConnectionStatus,
    ProvisioningReport,
)

__all__ = [
    "EntityDescriptor",
    "Role",
    "RoleDescriptor",
    "ConnectionResponse",
    "ConnectionStatus",
    "ProvisioningReport",
]
