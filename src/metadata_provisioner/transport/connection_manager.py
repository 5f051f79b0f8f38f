"""SOAP client for the connection management web service.

This module submits saveConnection and deleteConnection calls over SOAP 1.2
with HTTP basic authentication. The service acknowledges a call with a fixed
response document; any other response body is treated as a failure.
"""

import logging
import re
import time
from pathlib import Path
from typing import Optional, Union

import requests
from lxml import etree
from requests.auth import HTTPBasicAuth

from ..config.schema import ConnectionManagerConfig
from ..logging_audit.audit import log_transaction
from ..models.metadata import Role
from ..models.responses import ConnectionOperation, ConnectionResponse, ConnectionStatus
from ..utils.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

SOAP12_NS = "http://www.w3.org/2003/05/soap-envelope"

SAVE_CONNECTION_OK = (
    '<?xml version="1.0" encoding="UTF-8"?>'
    '<soapenv:Envelope xmlns:soapenv="http://www.w3.org/2003/05/soap-envelope" '
    'xmlns:xsd="http://www.w3.org/2001/XMLSchema" '
    'xmlns:xsi="http://www.w3.org/2001/XMLSchema-instance">'
    '<soapenv:Body><saveConnectionResponse '
    'soapenv:encodingStyle="http://www.w3.org/2003/05/soap-encoding"/>'
    '</soapenv:Body></soapenv:Envelope>'
)

DELETE_CONNECTION_OK = (
    '<?xml version="1.0" encoding="UTF-8"?>'
    '<soapenv:Envelope xmlns:soapenv="http://www.w3.org/2003/05/soap-envelope" '
    'xmlns:xsd="http://www.w3.org/2001/XMLSchema" '
    'xmlns:xsi="http://www.w3.org/2001/XMLSchema-instance">'
    '<soapenv:Body><deleteConnectionResponse '
    'soapenv:encodingStyle="http://www.w3.org/2003/05/soap-encoding"/>'
    '</soapenv:Body></soapenv:Envelope>'
)

EXPECTED_RESPONSES = {
    ConnectionOperation.SAVE: SAVE_CONNECTION_OK,
    ConnectionOperation.DELETE: DELETE_CONNECTION_OK,
}


def build_soap_envelope(operation: ConnectionOperation, param0: str, param1: str) -> str:
    """Build a SOAP 1.2 request envelope for a connection management operation.

    param0 is inserted as element text, so an XML document passed in it is
    escaped as character data.

    Args:
        operation: saveConnection or deleteConnection
        param0: First operation parameter
        param1: Second operation parameter

    Returns:
        Serialized envelope
    """
    envelope = etree.Element(f"{{{SOAP12_NS}}}Envelope", nsmap={"s": SOAP12_NS})
    etree.SubElement(envelope, f"{{{SOAP12_NS}}}Header")
    body = etree.SubElement(envelope, f"{{{SOAP12_NS}}}Body")
    call = etree.SubElement(body, operation.value)
    etree.SubElement(call, "param0").text = param0
    etree.SubElement(call, "param1").text = param1
    return etree.tostring(envelope, encoding="unicode")


class ConnectionManagerClient:
    """Client for saveConnection/deleteConnection calls.

    Calls are made once; there is no retry. A failed call is reported in the
    returned ConnectionResponse and it is up to the caller to abort.

    Attributes:
        config: Connection management endpoint configuration
        session: requests session with basic auth and TLS settings applied

    Example:
        >>> client = ConnectionManagerClient(config.connection_manager)
        >>> response = client.delete_connection("https://sp.example.org", Role.SP)
        >>> response.is_success
        True
    """

    def __init__(
        self,
        config: ConnectionManagerConfig,
        session: Optional[requests.Session] = None,
    ) -> None:
        if not config.url.startswith(("http://", "https://")):
            raise ConfigurationError(
                f"Invalid connection management URL: {config.url}. "
                "Must start with http:// or https://"
            )

        self.config = config
        self.timeout = (config.timeout_connect, config.timeout_read)

        if config.url.startswith("http://"):
            logger.warning(
                "SECURITY WARNING: Using HTTP transport (not HTTPS) for the connection "
                "management endpoint. Basic auth credentials are sent in clear text."
            )

        self.session = session or requests.Session()
        self.session.auth = HTTPBasicAuth(config.username, config.password)
        self.session.verify = config.verify_tls

        if not config.verify_tls:
            logger.warning(
                "TLS certificate verification is DISABLED. "
                "This should only be used for development with self-signed certificates."
            )

        logger.info(
            f"Connection management client initialized: endpoint={config.url}, "
            f"timeout={config.timeout_connect}s/{config.timeout_read}s"
        )

    def save_connection(
        self,
        entity_xml: str,
        entity_id: str,
        role: Optional[Role] = None,
    ) -> ConnectionResponse:
        """Create or replace a connection from an augmented EntityDescriptor.

        Args:
            entity_xml: Serialized connection document
            entity_id: entityID of the connection
            role: Role the document was built for

        Returns:
            ConnectionResponse; SUCCESS only for the exact acknowledgement
        """
        envelope = build_soap_envelope(ConnectionOperation.SAVE, entity_xml, "true")
        return self._call(ConnectionOperation.SAVE, envelope, entity_id, role)

    def delete_connection(self, entity_id: str, role: Union[Role, str]) -> ConnectionResponse:
        """Delete the connection for entity_id in the given role.

        Args:
            entity_id: entityID of the connection
            role: IDP or SP

        Returns:
            ConnectionResponse; SUCCESS only for the exact acknowledgement
        """
        role = Role.from_value(role)
        envelope = build_soap_envelope(ConnectionOperation.DELETE, entity_id, role.value)
        return self._call(ConnectionOperation.DELETE, envelope, entity_id, role)

    def _call(
        self,
        operation: ConnectionOperation,
        envelope: str,
        entity_id: str,
        role: Optional[Role],
    ) -> ConnectionResponse:
        start_time = time.time()
        logger.debug(f"Calling {operation.value} for {entity_id} ({role.value if role else '-'})")

        try:
            http_response = self.session.post(
                self.config.url,
                data=envelope.encode("utf-8"),
                headers={
                    "Content-Type": "application/soap+xml; charset=UTF-8",
                    "soapAction": self.config.url,
                },
                timeout=self.timeout,
            )
        except requests.exceptions.SSLError as e:
            return self._network_error(operation, envelope, entity_id, role, start_time, (
                f"SSL certificate validation failed for {self.config.url}. "
                f"Check server certificate or TLS configuration. Error: {e}"
            ))
        except requests.Timeout as e:
            return self._network_error(operation, envelope, entity_id, role, start_time, (
                f"Request timeout calling {operation.value} at {self.config.url} "
                f"(connect={self.config.timeout_connect}s, read={self.config.timeout_read}s). "
                f"Error: {e}"
            ))
        except requests.ConnectionError as e:
            return self._network_error(operation, envelope, entity_id, role, start_time, (
                f"Could not connect to connection management endpoint at {self.config.url}. "
                f"Check network connectivity and endpoint URL. Error: {e}"
            ))
        except requests.RequestException as e:
            return self._network_error(operation, envelope, entity_id, role, start_time, (
                f"{operation.value} request to {self.config.url} failed: "
                f"{type(e).__name__}: {e}"
            ))

        processing_time_ms = int((time.time() - start_time) * 1000)
        body = http_response.content.decode("utf-8", errors="replace")

        if body == EXPECTED_RESPONSES[operation]:
            status = ConnectionStatus.SUCCESS
            error_message = None
        else:
            status = ConnectionStatus.ERROR
            error_message = (
                f"{operation.value} for {entity_id} was not acknowledged "
                f"(HTTP {http_response.status_code})"
            )
            logger.error(f"{error_message}. Response body:\n{body}")

        log_transaction(
            operation.value,
            envelope,
            body,
            "success" if status is ConnectionStatus.SUCCESS else "failure",
        )

        return ConnectionResponse(
            operation=operation,
            entity_id=entity_id,
            role=role,
            status=status,
            response_body=body,
            status_code=http_response.status_code,
            error_message=error_message,
            processing_time_ms=processing_time_ms,
        )

    def _network_error(
        self,
        operation: ConnectionOperation,
        envelope: str,
        entity_id: str,
        role: Optional[Role],
        start_time: float,
        message: str,
    ) -> ConnectionResponse:
        logger.error(message)
        log_transaction(operation.value, envelope, "", "failure")
        return ConnectionResponse(
            operation=operation,
            entity_id=entity_id,
            role=role,
            status=ConnectionStatus.NETWORK_ERROR,
            error_message=message,
            processing_time_ms=int((time.time() - start_time) * 1000),
        )

    def close(self) -> None:
        self.session.close()


def _safe_filename(entity_id: str) -> str:
    return re.sub(r"[^A-Za-z0-9._-]+", "_", entity_id).strip("_") or "entity"


class DryRunConnectionManager:
    """Stand-in client that records connection calls instead of sending them.

    Each saved connection document is written to output_dir (when given) as
    ``<role>_<entityID>.xml``; deletions are only logged. Every call succeeds.

    Attributes:
        output_dir: Directory for connection documents, or None to only log
        saved: Number of saveConnection calls recorded
        deleted: Number of deleteConnection calls recorded
    """

    def __init__(self, output_dir: Optional[Path] = None) -> None:
        self.output_dir = output_dir
        self.saved = 0
        self.deleted = 0
        if output_dir is not None:
            output_dir.mkdir(parents=True, exist_ok=True)
        logger.info(
            f"Dry run: no calls will be made to the connection management service"
            f"{f'; documents written to {output_dir}' if output_dir else ''}"
        )

    def save_connection(
        self,
        entity_xml: str,
        entity_id: str,
        role: Optional[Role] = None,
    ) -> ConnectionResponse:
        self.saved += 1
        prefix = role.prefix if role else "connection"
        if self.output_dir is not None:
            path = self.output_dir / f"{prefix}_{_safe_filename(entity_id)}.xml"
            path.write_text(entity_xml, encoding="utf-8")
            logger.info(f"[dry-run] saveConnection {entity_id} ({prefix}) -> {path}")
        else:
            logger.info(f"[dry-run] saveConnection {entity_id} ({prefix})")
            logger.debug(entity_xml)

        return ConnectionResponse(
            operation=ConnectionOperation.SAVE,
            entity_id=entity_id,
            role=role,
            status=ConnectionStatus.DRY_RUN,
        )

    def delete_connection(self, entity_id: str, role: Union[Role, str]) -> ConnectionResponse:
        role = Role.from_value(role)
        self.deleted += 1
        logger.info(f"[dry-run] deleteConnection {entity_id} ({role.value})")
        return ConnectionResponse(
            operation=ConnectionOperation.DELETE,
            entity_id=entity_id,
            role=role,
            status=ConnectionStatus.DRY_RUN,
        )

    def close(self) -> None:
        pass
