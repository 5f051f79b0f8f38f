"""Connection management response and run report data models.

This module defines data models for the results of saveConnection and
deleteConnection calls, and the summary of one provisioning run.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional

from .metadata import Role


class ConnectionOperation(Enum):
    """Connection management operations."""

    SAVE = "saveConnection"
    DELETE = "deleteConnection"


class ConnectionStatus(Enum):
    """Outcome of a connection management call."""

    SUCCESS = "SUCCESS"
    ERROR = "ERROR"
    NETWORK_ERROR = "NETWORK_ERROR"
    DRY_RUN = "DRY_RUN"


@dataclass
class ConnectionResponse:
    """Response from a connection management call.

    Attributes:
        operation: saveConnection or deleteConnection
        entity_id: Entity the call was made for
        role: Role of the connection
        status: Outcome of the call
        response_body: Raw response body (empty on network errors)
        status_code: HTTP status code, if a response was received
        response_timestamp: When the call completed
        error_message: Human-readable error, if any
        processing_time_ms: Round-trip latency in milliseconds

    Example:
        >>> response = ConnectionResponse(
        ...     operation=ConnectionOperation.SAVE,
        ...     entity_id="https://idp.example.org",
        ...     role=Role.IDP,
        ...     status=ConnectionStatus.SUCCESS,
        ...     response_body="<soapenv:Envelope ...>",
        ...     status_code=200,
        ... )
        >>> response.is_success
        True
    """

    operation: ConnectionOperation
    entity_id: str
    role: Optional[Role]
    status: ConnectionStatus
    response_body: str = ""
    status_code: Optional[int] = None
    response_timestamp: datetime = field(default_factory=datetime.now)
    error_message: Optional[str] = None
    processing_time_ms: int = 0

    @property
    def is_success(self) -> bool:
        """Check if the call was acknowledged.

        Returns:
            True if status is SUCCESS or DRY_RUN
        """
        return self.status in (ConnectionStatus.SUCCESS, ConnectionStatus.DRY_RUN)


@dataclass
class ConnectionRecord:
    """One connection saved or deleted during a run."""

    entity_id: str
    role: Role
    name: Optional[str] = None


@dataclass
class ProvisioningReport:
    """Summary of a provisioning run.

    Attributes:
        mode: "create" or "delete"
        entities_seen: Entities enumerated from the document
        entities_skipped: Entity IDs skipped by include/exclude selection
        connections: Connections saved or deleted, in call order
        signature_verified: Whether a certificate check was performed and passed
        started_at: Run start time
        finished_at: Run end time (None while running)
    """

    mode: str
    entities_seen: int = 0
    entities_skipped: List[str] = field(default_factory=list)
    connections: List[ConnectionRecord] = field(default_factory=list)
    signature_verified: bool = False
    started_at: datetime = field(default_factory=datetime.now)
    finished_at: Optional[datetime] = None

    @property
    def entities_processed(self) -> int:
        return self.entities_seen - len(self.entities_skipped)

    @property
    def connection_count(self) -> int:
        return len(self.connections)

    @property
    def duration_seconds(self) -> float:
        if self.finished_at is None:
            return 0.0
        return (self.finished_at - self.started_at).total_seconds()
