"""Custom exception classes for the metadata provisioner.

All exceptions inherit from ProvisionerError to allow catching all custom exceptions.
Every one of them is fatal for a run: the orchestrator never continues with the
next entity once one has been raised.
"""

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from ..models.responses import ConnectionResponse


class ProvisionerError(Exception):
    """Base exception for all metadata provisioner custom exceptions."""

    pass


class ConfigurationError(ProvisionerError):
    """Raised when configuration loading or validation fails.

    Examples:
        - Missing required configuration
        - Invalid configuration file format
        - Configuration value out of range
    """

    pass


class MetadataError(ProvisionerError):
    """Raised when a metadata document cannot be processed.

    Examples:
        - Malformed XML
        - Root element is neither EntitiesDescriptor nor EntityDescriptor
        - Nested EntitiesDescriptor elements (unsupported)
    """

    pass


class MetadataRetrievalError(MetadataError):
    """Raised when the metadata document cannot be fetched.

    Examples:
        - Metadata URL unreachable
        - HTTP error status from the metadata server
        - Local metadata file not found
    """

    pass


class CertificateLoadError(ProvisionerError):
    """Raised when the metadata verification certificate cannot be loaded.

    Examples:
        - Certificate file not found
        - Invalid PEM format
    """

    pass


class VerificationError(ProvisionerError):
    """Raised when metadata signature verification fails.

    Examples:
        - Certificate supplied but document carries no signature
        - Digest mismatch (document modified after signing)
        - Signature value does not verify against the certificate
    """

    pass


class TransportError(ProvisionerError):
    """Raised when a connection management call is not acknowledged.

    Carries the ConnectionResponse of the failed call so the caller can
    report the raw response body.

    Examples:
        - Connection refused or timeout
        - Response body differs from the expected acknowledgement
    """

    def __init__(
        self,
        message: str,
        response: Optional["ConnectionResponse"] = None,
    ) -> None:
        super().__init__(message)
        self.response = response
