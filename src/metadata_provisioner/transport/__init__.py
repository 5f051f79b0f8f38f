"""Transport module.

This module provides the connection management SOAP client and metadata
document retrieval.
"""

from .connection_manager import (
    DELETE_CONNECTION_OK,
    SAVE_CONNECTION_OK,
    ConnectionManagerClient,
    DryRunConnectionManager,
)
from .metadata_source import fetch_metadata

__all__ = [
    "ConnectionManagerClient",
    "DryRunConnectionManager",
    "SAVE_CONNECTION_OK",
    "DELETE_CONNECTION_OK",
    "fetch_metadata",
]
