"""Configuration schema models using pydantic.

This module defines the configuration structure and validation rules using pydantic.
All configuration values are validated according to the schema defined here.
"""

from pathlib import Path
from typing import List, Optional, Set

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..metadata.namespaces import PREFERRED_PROTOCOL_DEFAULT

VALID_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class MetadataConfig(BaseModel):
    """Configuration for the metadata source.

    Attributes:
        location: URL (http/https) or local file path of the metadata document
        certificate_path: PEM certificate to verify the document signature with.
            When absent the signature is removed without being checked.
        allow_legacy_algorithms: Accept SHA-1 based signatures and digests
    """

    model_config = ConfigDict(frozen=True)

    location: str = Field(..., description="Metadata URL or file path")
    certificate_path: Optional[Path] = None
    allow_legacy_algorithms: bool = False

    @field_validator("location")
    @classmethod
    def validate_location(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Metadata location must not be empty")
        return v.strip()


class ConnectionManagerConfig(BaseModel):
    """Configuration for the connection management web service.

    Attributes:
        url: Connection management endpoint URL
        username: HTTP basic auth username
        password: HTTP basic auth password
        verify_tls: Whether to verify the server TLS certificate
        timeout_connect: Connection timeout in seconds
        timeout_read: Read timeout in seconds
    """

    model_config = ConfigDict(frozen=True)

    url: str = Field(..., description="Connection management endpoint URL")
    username: str = Field(..., description="API username")
    password: str = Field(default="", description="API password")
    verify_tls: bool = True
    timeout_connect: int = Field(default=10, ge=1, description="Connection timeout in seconds")
    timeout_read: int = Field(default=120, ge=1, description="Read timeout in seconds")

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Validate URL is valid HTTP/HTTPS.

        Raises:
            ValueError: If URL does not start with http:// or https://
        """
        if not v.startswith(("http://", "https://")):
            raise ValueError(
                f"Invalid URL: {v}. Must start with http:// or https://"
            )
        return v


class BindingsConfig(BaseModel):
    """Incoming bindings allowed on provisioned connections.

    Field names match the IncomingBindings attribute names.
    """

    model_config = ConfigDict(frozen=True)

    Redirect: bool = True
    POST: bool = True
    SOAP: bool = True
    Artifact: bool = True

    def as_flags(self) -> dict[str, bool]:
        """Bindings in declaration order."""
        return {
            "Redirect": self.Redirect,
            "POST": self.POST,
            "SOAP": self.SOAP,
            "Artifact": self.Artifact,
        }


class ConnectionSettings(BaseModel):
    """Settings stamped onto every provisioned connection.

    Attributes:
        signing_key_fingerprint: MD5 fingerprint of the local signing key pair
        bindings: Allowed incoming bindings
        preferred_protocol: Protocol to keep when a role lists several
        default_target_resource: Legacy (SAML 1.1) default target resource for SP roles
        basic_auth_password: Shared backchannel basic auth password
        name_prefix: Prefix marking connections as provisioned
    """

    model_config = ConfigDict(frozen=True)

    signing_key_fingerprint: str = Field(..., description="Signing key MD5 fingerprint")
    bindings: BindingsConfig = BindingsConfig()
    preferred_protocol: str = PREFERRED_PROTOCOL_DEFAULT
    default_target_resource: str = "http://dummy"
    basic_auth_password: str = Field(default="", description="Backchannel password")
    name_prefix: str = "[P] "

    @field_validator("signing_key_fingerprint")
    @classmethod
    def validate_fingerprint(cls, v: str) -> str:
        cleaned = v.replace(":", "").strip().upper()
        if not cleaned or any(c not in "0123456789ABCDEF" for c in cleaned):
            raise ValueError(
                f"Invalid signing_key_fingerprint: {v}. Must be a hex MD5 fingerprint"
            )
        return cleaned


class AttributeMapping(BaseModel):
    """One attribute map entry: source attribute fulfils target attribute."""

    model_config = ConfigDict(frozen=True)

    source: str
    target: str


class AdapterConfig(BaseModel):
    """Local adapter instance used to fulfil a connection's attribute contract.

    Attributes:
        instance_id: Adapter instance identifier
        attribute_map: Ordered (source, target) attribute pairs
    """

    model_config = ConfigDict(frozen=True)

    instance_id: str
    attribute_map: List[AttributeMapping] = Field(default_factory=list)


class AdaptersConfig(BaseModel):
    """Adapter instances per local role.

    Attributes:
        idp: Local IDP adapter, referenced by SP connections
            (maps adapter attribute to assertion attribute)
        sp: Local SP adapter, referenced by IDP connections
            (maps assertion attribute to adapter attribute)
    """

    model_config = ConfigDict(frozen=True)

    idp: AdapterConfig
    sp: AdapterConfig


class EntitySelectionConfig(BaseModel):
    """Include/exclude entity selection.

    An empty include set means every entity not excluded is processed.
    """

    model_config = ConfigDict(frozen=True)

    include: Set[str] = Field(default_factory=set)
    exclude: Set[str] = Field(default_factory=set)


class LoggingConfig(BaseModel):
    """Configuration for logging.

    Attributes:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Path to log file
        redact_secrets: Whether to mask passwords in logs
    """

    model_config = ConfigDict(frozen=True)

    level: str = Field(
        default="INFO",
        description="Log level: DEBUG, INFO, WARNING, ERROR, CRITICAL"
    )
    log_file: Path = Field(
        default=Path("logs/metadata-provisioner.log"),
        description="Log file path"
    )
    redact_secrets: bool = Field(
        default=True,
        description="Mask passwords and basic auth headers in logs"
    )

    @field_validator("level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level.

        Raises:
            ValueError: If log level is not valid
        """
        v_upper = v.upper()
        if v_upper not in VALID_LOG_LEVELS:
            raise ValueError(
                f"Invalid log level: {v}. Must be one of: {', '.join(VALID_LOG_LEVELS)}"
            )
        return v_upper


class Config(BaseModel):
    """Root configuration model.

    Attributes:
        metadata: Metadata source and verification settings
        connection_manager: Remote connection management endpoint
        connection: Settings stamped onto every connection
        adapters: Adapter instances and attribute maps
        entities: Include/exclude selection
        logging: Logging configuration

    Example:
        >>> config = Config(
        ...     metadata=MetadataConfig(location="metadata.xml"),
        ...     connection_manager=ConnectionManagerConfig(
        ...         url="https://localhost:9999/pf-mgmt-ws/ws/ConnectionMigrationMgr",
        ...         username="heuristics",
        ...     ),
        ...     connection=ConnectionSettings(signing_key_fingerprint="B12B687C1E6F3AB5"),
        ...     adapters=AdaptersConfig(
        ...         idp=AdapterConfig(instance_id="LDAPADAPTER0"),
        ...         sp=AdapterConfig(instance_id="OTKAPACHE0"),
        ...     ),
        ... )
        >>> config.entities.include
        set()
    """

    model_config = ConfigDict(frozen=True)

    metadata: MetadataConfig
    connection_manager: ConnectionManagerConfig
    connection: ConnectionSettings
    adapters: AdaptersConfig
    entities: EntitySelectionConfig = EntitySelectionConfig()
    logging: LoggingConfig = LoggingConfig()

    @property
    def include(self) -> Set[str]:
        return self.entities.include

    @property
    def exclude(self) -> Set[str]:
        return self.entities.exclude
