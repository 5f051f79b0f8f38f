"""Audit trail functionality for the metadata provisioner.

This module provides structured audit logging for connection changes pushed to
the connection management service. A run is not transactional, so the audit
trail is the record of what was applied before an abort.
"""

import time
import uuid
from typing import Any, Dict

from .logger import get_logger

logger = get_logger(__name__)


def log_audit_event(event_type: str, details: Dict[str, Any]) -> None:
    """Log an audit trail event.

    Creates a structured audit log entry with standard fields. Audit events
    are logged at INFO level for successful operations and ERROR level for
    failures.

    Args:
        event_type: Type of operation (e.g., "CONNECTION_SAVED",
                   "CONNECTION_DELETED", "METADATA_VERIFIED", "RUN_COMPLETED")
        details: Dictionary with event details. Common fields include:
                - status: "success" or "failure"
                - entity_id: Entity the event relates to
                - role: IDP or SP
                - name: Friendly connection name
                - duration: Operation duration in seconds
                - error_message: Error details (if status is failure)
                - correlation_id: Optional correlation ID for tracking related events

    Example:
        >>> log_audit_event("CONNECTION_SAVED", {
        ...     "entity_id": "https://idp.example.org/idp/shibboleth",
        ...     "role": "IDP",
        ...     "name": "[P] Example University",
        ...     "status": "success",
        ... })
    """
    details = dict(details)
    details.setdefault("timestamp", time.time())
    details.setdefault("correlation_id", str(uuid.uuid4()))

    message_parts = [f"AUDIT [{event_type}]"]

    field_order = [
        "status",
        "entity_id",
        "role",
        "name",
        "duration",
        "error_message",
        "correlation_id",
    ]

    for field in field_order:
        if field in details:
            value = details[field]
            if field == "duration" and isinstance(value, (int, float)):
                message_parts.append(f"{field}={value:.2f}s")
            else:
                message_parts.append(f"{field}={value}")

    for key, value in details.items():
        if key not in field_order and key != "timestamp":
            message_parts.append(f"{key}={value}")

    audit_message = " | ".join(message_parts)

    if details.get("status") == "failure":
        logger.error(audit_message)
    else:
        logger.info(audit_message)


def log_transaction(
    operation: str,
    request: str,
    response: str,
    status: str = "success",
) -> None:
    """Log a complete connection management call with request and response.

    The header line goes to INFO, the full SOAP bodies to DEBUG.

    Args:
        operation: Remote operation (e.g., "saveConnection", "deleteConnection")
        request: Full SOAP request envelope
        response: Full response body (empty on network errors)
        status: Call status ("success" or "failure")
    """
    correlation_id = str(uuid.uuid4())

    logger.info(
        f"TRANSACTION [{operation}] | "
        f"status={status} | "
        f"correlation_id={correlation_id} | "
        f"request_size={len(request)} bytes | "
        f"response_size={len(response)} bytes"
    )

    logger.debug(
        f"TRANSACTION REQUEST [{operation}] | "
        f"correlation_id={correlation_id}\n"
        f"{request}"
    )

    logger.debug(
        f"TRANSACTION RESPONSE [{operation}] | "
        f"correlation_id={correlation_id}\n"
        f"{response}"
    )
