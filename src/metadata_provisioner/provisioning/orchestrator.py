"""Provisioning run orchestration.

A run parses and verifies one metadata document, then walks its entities and
creates or deletes one connection per role (IDP first, then SP). The first
call the connection management service does not acknowledge aborts the run;
connections pushed before that point stay in place.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, Protocol, Union

from lxml import etree

from ..config.schema import Config
from ..logging_audit.audit import log_audit_event
from ..metadata.augmenter import build_connection_document, serialize_connection
from ..metadata.verifier import CertificateLike, MetadataVerifier
from ..metadata.walker import enumerate_entities, parse_metadata
from ..models.metadata import EntityDescriptor, Role
from ..models.responses import ConnectionRecord, ConnectionResponse, ProvisioningReport
from ..utils.exceptions import TransportError, VerificationError
from .entity_filter import skip_entity
from .naming import NameRegistry, friendly_base_name

logger = logging.getLogger(__name__)

DocumentLike = Union[etree._ElementTree, etree._Element]


class ProvisioningMode(str, Enum):
    """What a run does with the entities of a document."""

    CREATE = "create"
    DELETE = "delete"


class ConnectionClient(Protocol):
    """Interface shared by the live and dry-run connection management clients."""

    def save_connection(
        self, entity_xml: str, entity_id: str, role: Optional[Role] = None
    ) -> ConnectionResponse: ...

    def delete_connection(self, entity_id: str, role: Union[Role, str]) -> ConnectionResponse: ...


@dataclass
class ProvisioningContext:
    """State owned by one provisioning run.

    Attributes:
        config: Immutable run configuration
        registry: Connection name counters, fresh for every run
    """

    config: Config
    registry: NameRegistry = field(default_factory=NameRegistry)


class MetadataProvisioner:
    """Synchronize metadata entities into connection management.

    Attributes:
        context: Run configuration and name registry
        client: ConnectionManagerClient or DryRunConnectionManager

    Example:
        >>> client = ConnectionManagerClient(config.connection_manager)
        >>> provisioner = MetadataProvisioner(config, client)
        >>> report = provisioner.run("create", fetch_metadata(config.metadata.location))
        >>> print(f"{report.connection_count} connections saved")
    """

    def __init__(
        self,
        config: Config,
        client: ConnectionClient,
        registry: Optional[NameRegistry] = None,
    ) -> None:
        self.context = ProvisioningContext(config, registry or NameRegistry())
        self.client = client

    @property
    def config(self) -> Config:
        return self.context.config

    def run(
        self,
        mode: Union[ProvisioningMode, str],
        metadata_bytes: bytes,
        certificate: Optional[CertificateLike] = None,
    ) -> ProvisioningReport:
        """Parse, verify and provision a metadata document.

        Args:
            mode: "create" or "delete"
            metadata_bytes: Raw metadata document
            certificate: Certificate to verify the document signature against;
                None removes the signature without checking it

        Returns:
            Report of the entities seen and connections changed

        Raises:
            ValueError: If mode is not a ProvisioningMode
            MetadataError: If the document is malformed or unsupported
            VerificationError: If the signature does not verify
            TransportError: If a connection call is not acknowledged
        """
        mode = ProvisioningMode(mode)
        logger.info(f"Starting {mode.value} run")

        document = parse_metadata(metadata_bytes)

        verifier = MetadataVerifier(
            certificate,
            allow_legacy_algorithms=self.config.metadata.allow_legacy_algorithms,
        )
        if not verifier.verify(document):
            log_audit_event("METADATA_VERIFIED", {"status": "failure"})
            message = "Metadata signature verification failed; no connections were changed."
            if not self.config.metadata.allow_legacy_algorithms:
                message += " SHA-1 signed metadata requires metadata.allow_legacy_algorithms."
            raise VerificationError(message)
        if certificate is not None:
            log_audit_event("METADATA_VERIFIED", {"status": "success"})

        if mode is ProvisioningMode.CREATE:
            report = self.create(document)
        else:
            report = self.delete(document)
        report.signature_verified = certificate is not None
        return report

    def create(self, document: DocumentLike) -> ProvisioningReport:
        """Save one connection per role of every selected entity.

        Raises:
            MetadataError: If the document shape is unsupported
            TransportError: On the first unacknowledged saveConnection
        """
        report = ProvisioningReport(mode=ProvisioningMode.CREATE.value)

        for entity in self._selected_entities(document, report):
            base_name = friendly_base_name(entity, self.config.connection.name_prefix)
            for role in entity.present_roles:
                name = self.context.registry.generate(base_name, role)
                connection = build_connection_document(entity, role, name, self.config)
                logger.info(f"Saving {role.value} connection {name!r} for {entity.entity_id}")

                response = self.client.save_connection(
                    serialize_connection(connection), entity.entity_id, role
                )
                self._check(response, "CONNECTION_SAVED", name)
                report.connections.append(ConnectionRecord(entity.entity_id, role, name))

        return self._finish(report)

    def delete(self, document: DocumentLike) -> ProvisioningReport:
        """Delete the connection of every role of every selected entity.

        Raises:
            MetadataError: If the document shape is unsupported
            TransportError: On the first unacknowledged deleteConnection
        """
        report = ProvisioningReport(mode=ProvisioningMode.DELETE.value)

        for entity in self._selected_entities(document, report):
            for role in entity.present_roles:
                logger.info(f"Deleting {role.value} connection for {entity.entity_id}")
                response = self.client.delete_connection(entity.entity_id, role)
                self._check(response, "CONNECTION_DELETED")
                report.connections.append(ConnectionRecord(entity.entity_id, role))

        return self._finish(report)

    def _selected_entities(self, document: DocumentLike, report: ProvisioningReport):
        for entity in enumerate_entities(document):
            report.entities_seen += 1
            if skip_entity(entity.entity_id, self.config.entities):
                report.entities_skipped.append(entity.entity_id)
                continue
            if not entity.present_roles:
                logger.info(f"Entity {entity.entity_id} declares no IDP or SP role")
            yield entity

    def _check(
        self,
        response: ConnectionResponse,
        event_type: str,
        name: Optional[str] = None,
    ) -> None:
        details = {
            "entity_id": response.entity_id,
            "role": response.role.value if response.role else None,
            "duration": response.processing_time_ms / 1000,
        }
        if name is not None:
            details["name"] = name

        if response.is_success:
            log_audit_event(event_type, {"status": "success", **details})
            return

        log_audit_event(
            event_type,
            {"status": "failure", "error_message": response.error_message, **details},
        )
        raise TransportError(
            f"{response.operation.value} for {response.entity_id} failed: "
            f"{response.error_message or response.status.value}",
            response=response,
        )

    def _finish(self, report: ProvisioningReport) -> ProvisioningReport:
        report.finished_at = datetime.now()
        log_audit_event(
            "RUN_COMPLETED",
            {
                "status": "success",
                "mode": report.mode,
                "entities_seen": report.entities_seen,
                "entities_skipped": len(report.entities_skipped),
                "connections": report.connection_count,
                "duration": report.duration_seconds,
            },
        )
        return report


def describe_entity(entity: EntityDescriptor, config: Config) -> str:
    """One-line summary of an entity for listings."""
    roles = ",".join(role.value for role in entity.present_roles) or "-"
    skipped = " (skipped)" if skip_entity(entity.entity_id, config.entities) else ""
    return f"{entity.entity_id} [{roles}] {friendly_base_name(entity, config.connection.name_prefix)}{skipped}"
