"""Data models for SAML metadata entities and roles.

This module defines the read-only view of an EntityDescriptor that the
provisioning pipeline works from. The lxml element is kept alongside the
extracted fields so augmentation can copy it; nothing in this module mutates it.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional, Tuple, Union

from lxml import etree

from ..metadata.namespaces import NSMAP, md


class Role(str, Enum):
    """Federation role an entity can be provisioned for.

    The value is the role name the connection management service expects
    (deleteConnection param1).

    Attributes:
        IDP: Identity provider (IDPSSODescriptor)
        SP: Service provider (SPSSODescriptor)
    """

    IDP = "IDP"
    SP = "SP"

    @property
    def prefix(self) -> str:
        """Lowercase tag used in backchannel usernames and name scoping."""
        return self.value.lower()

    @property
    def descriptor_tag(self) -> str:
        """Clark-notation tag of the role descriptor element."""
        return md(f"{self.value}SSODescriptor")

    @classmethod
    def from_value(cls, value: Union["Role", str]) -> "Role":
        """Resolve a Role from a Role instance or a case-insensitive name.

        Raises:
            ValueError: If value is not a known role
        """
        if isinstance(value, Role):
            return value
        try:
            return cls(str(value).upper())
        except ValueError:
            raise ValueError(
                f"Unknown role: {value}. Must be one of: idp, sp"
            ) from None


# Processing order: IDP connections are saved before SP connections.
ROLE_ORDER: Tuple[Role, ...] = (Role.IDP, Role.SP)


@dataclass(frozen=True)
class RoleDescriptor:
    """IDPSSODescriptor or SPSSODescriptor summary.

    Attributes:
        role: Which role this descriptor declares
        has_artifact_resolution: Whether an ArtifactResolutionService is declared
    """

    role: Role
    has_artifact_resolution: bool

    @classmethod
    def from_element(cls, role: Role, element: etree._Element) -> "RoleDescriptor":
        artifact = element.find("md:ArtifactResolutionService", NSMAP)
        return cls(
            role=role,
            has_artifact_resolution=artifact is not None,
        )


@dataclass(frozen=True)
class EntityDescriptor:
    """A single federation participant.

    Attributes:
        entity_id: entityID attribute
        organization_name: First Organization/OrganizationName text, if any
        contact_emails: All ContactPerson/EmailAddress values as found
        roles: Present SSO roles keyed by Role
        element: Source EntityDescriptor element (treated as read-only)
    """

    entity_id: str
    organization_name: Optional[str]
    contact_emails: Tuple[str, ...]
    roles: Dict[Role, RoleDescriptor] = field(default_factory=dict)
    element: Optional[etree._Element] = field(default=None, compare=False, repr=False)

    @classmethod
    def from_element(cls, element: etree._Element) -> "EntityDescriptor":
        """Build the view from an md:EntityDescriptor element."""
        org = element.find("md:Organization/md:OrganizationName", NSMAP)
        organization_name = None
        if org is not None and org.text and org.text.strip():
            organization_name = org.text.strip()

        emails = tuple(
            (address.text or "").strip()
            for address in element.iterfind("md:ContactPerson/md:EmailAddress", NSMAP)
        )

        roles: Dict[Role, RoleDescriptor] = {}
        for role in ROLE_ORDER:
            role_element = element.find(role.descriptor_tag)
            if role_element is not None:
                roles[role] = RoleDescriptor.from_element(role, role_element)

        return cls(
            entity_id=element.get("entityID", ""),
            organization_name=organization_name,
            contact_emails=emails,
            roles=roles,
            element=element,
        )

    @property
    def present_roles(self) -> Tuple[Role, ...]:
        """Present roles in processing order (IDP first)."""
        return tuple(role for role in ROLE_ORDER if role in self.roles)
