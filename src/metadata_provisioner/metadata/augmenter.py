"""Connection extension synthesis for SAML metadata entities.

Every function here takes lxml elements and returns new ones; inputs are never
modified, so the same source entity can be turned into an IDP and an SP
connection document independently.

Produced vocabulary (connection extension namespace, prefix ``urn``)::

    md:EntityDescriptor @urn:isActive @urn:name
      md:Extensions
        urn:EntityExtension
          urn:Dependencies
            urn:SigningKeyPairReference @MD5Fingerprint
            urn:SoapAuth
              soap:Incoming/soap:Basic @password @providerID @username
              soap:Outgoing/soap:Basic @password @providerID @username
      md:IDPSSODescriptor | md:SPSSODescriptor
        md:Extensions
          urn:RoleExtension
            urn:IncomingBindings @Redirect @POST @SOAP @Artifact
            urn:EnabledProfiles @SPInitiatedSSO @IDPInitiatedSSO ...
            urn:IDP/urn:TargetAttributeMapping/urn:AttributeMap*
            | urn:SP/urn:AdapterToAssertionMapping/urn:DefaultAttributeMapping/urn:AttributeMap*
"""

import logging
from copy import deepcopy
from typing import Dict, Union

from lxml import etree

from ..config.schema import Config
from ..models.metadata import EntityDescriptor, Role, RoleDescriptor
from .namespaces import (
    EXTENSIONS,
    NSMAP,
    PF_NS,
    SIGNATURE,
    SOAP_AUTH_NS,
    pf,
    soap_auth,
)

logger = logging.getLogger(__name__)

MAILTO_PREFIX = "mailto:"

ENABLED_PROFILES: Dict[str, str] = {
    "SPInitiatedSSO": "true",
    "IDPInitiatedSSO": "true",
    "SPInitiatedSLO": "false",
    "IDPInitiatedSLO": "false",
}

# Backchannel credentials apply to the local server, not to a named partner key
BACKCHANNEL_PROVIDER_ID = "this"


def _flag(value: bool) -> str:
    return "true" if value else "false"


def _copy_with_extension_prefix(element: etree._Element) -> etree._Element:
    """Deep copy of element that also declares the ``urn`` extension prefix."""
    nsmap = dict(element.nsmap)
    if "urn" not in nsmap:
        nsmap["urn"] = PF_NS
    copy = etree.Element(element.tag, attrib=dict(element.attrib), nsmap=nsmap)
    copy.text = element.text
    for child in element:
        copy.append(deepcopy(child))
    return copy


def _reset_extensions(element: etree._Element, owner: str) -> etree._Element:
    """Replace any md:Extensions of element with a fresh, empty one.

    Existing extensions (shibmd:Scope, mdui:UIInfo, ...) cannot be processed by
    the connection management service and are discarded.
    """
    existing = element.find(EXTENSIONS)
    if existing is not None:
        child_tags = ", ".join(
            etree.QName(child).localname for child in existing if isinstance(child.tag, str)
        )
        logger.warning(f"Ignoring unsupported extensions for {owner}: {child_tags or '(empty)'}")
        logger.debug(etree.tostring(existing, encoding="unicode"))
        element.remove(existing)

    extensions = etree.Element(EXTENSIONS)
    # Extensions must follow an enveloped ds:Signature, if one is present
    index = 1 if len(element) and element[0].tag == SIGNATURE else 0
    element.insert(index, extensions)
    return extensions


def strip_mailto(entity: etree._Element) -> etree._Element:
    """Return a copy of entity with ``mailto:`` removed from contact email addresses."""
    result = deepcopy(entity)
    for address in result.iterfind("md:ContactPerson/md:EmailAddress", NSMAP):
        text = (address.text or "").strip()
        if text.startswith(MAILTO_PREFIX):
            address.text = text[len(MAILTO_PREFIX):]
    return result


def narrow_protocol_support(protocols: str, preferred: str) -> str:
    """Collapse a protocolSupportEnumeration to the preferred protocol.

    The consumer picks the first listed protocol, so a role listing both
    SAML 1.1 and SAML 2.0 is narrowed to the preferred one.

    Example:
        >>> narrow_protocol_support("urn:A urn:B", "urn:B")
        'urn:B'
        >>> narrow_protocol_support("urn:A urn:B", "urn:C")
        'urn:A urn:B'
    """
    if preferred in protocols.split():
        return preferred
    return protocols


def prefer_protocol(role_element: etree._Element, preferred: str) -> etree._Element:
    """Return a copy of role_element with its protocols narrowed to preferred."""
    result = deepcopy(role_element)
    current = result.get("protocolSupportEnumeration")
    if current is not None:
        narrowed = narrow_protocol_support(current, preferred)
        if narrowed != current:
            logger.debug(f"Narrowed protocolSupportEnumeration {current!r} to {narrowed!r}")
        result.set("protocolSupportEnumeration", narrowed)
    return result


def build_entity_extension(
    entity: etree._Element,
    config: Config,
    role: Role,
) -> etree._Element:
    """Return a copy of entity carrying the entity-level connection extension.

    Args:
        entity: md:EntityDescriptor element
        config: Provisioning configuration (signing key, backchannel password)
        role: Role the connection is built for; determines the backchannel username

    Returns:
        New EntityDescriptor element
    """
    result = _copy_with_extension_prefix(entity)
    entity_id = result.get("entityID", "")
    settings = config.connection

    extensions = _reset_extensions(result, f"entity {entity_id!r}")
    entity_ext = etree.SubElement(extensions, pf("EntityExtension"))
    dependencies = etree.SubElement(entity_ext, pf("Dependencies"))
    etree.SubElement(
        dependencies,
        pf("SigningKeyPairReference"),
        attrib={"MD5Fingerprint": settings.signing_key_fingerprint},
    )

    # Needed for the artifact SOAP backchannel (incoming) and attribute query (outgoing)
    soap_auth_el = etree.SubElement(
        dependencies, pf("SoapAuth"), nsmap={"soap": SOAP_AUTH_NS}
    )
    username = f"{role.prefix}:{entity_id}"
    for direction in ("Incoming", "Outgoing"):
        direction_el = etree.SubElement(soap_auth_el, soap_auth(direction))
        etree.SubElement(
            direction_el,
            soap_auth("Basic"),
            attrib={
                "password": settings.basic_auth_password,
                "providerID": BACKCHANNEL_PROVIDER_ID,
                "username": username,
            },
        )

    return result


def build_role_extension(
    role_element: etree._Element,
    role: Role,
    config: Config,
    entity_id: str = "",
) -> etree._Element:
    """Return a copy of a role descriptor carrying the role-level connection extension.

    Args:
        role_element: md:IDPSSODescriptor or md:SPSSODescriptor element
        role: Role of role_element
        config: Provisioning configuration (bindings, adapters)
        entity_id: Owning entity, for log messages

    Returns:
        New role descriptor element
    """
    result = deepcopy(role_element)
    extensions = _reset_extensions(result, f"{role.value} role of entity {entity_id!r}")
    role_ext = etree.SubElement(extensions, pf("RoleExtension"))

    bindings = config.connection.bindings.as_flags()
    descriptor = RoleDescriptor.from_element(role, result)
    if not descriptor.has_artifact_resolution and bindings["Artifact"]:
        logger.info(
            f"No ArtifactResolutionService for {role.value} role of {entity_id!r}; "
            f"disabling Artifact binding"
        )
        bindings["Artifact"] = False
    etree.SubElement(
        role_ext,
        pf("IncomingBindings"),
        attrib={name: _flag(enabled) for name, enabled in bindings.items()},
    )
    etree.SubElement(role_ext, pf("EnabledProfiles"), attrib=ENABLED_PROFILES)

    if role is Role.IDP:
        # Partner IDP: assertion attributes fulfil the local SP adapter contract
        adapter = config.adapters.sp
        idp = etree.SubElement(role_ext, pf("IDP"))
        mapping = etree.SubElement(
            idp, pf("TargetAttributeMapping"), attrib={"AdapterInstanceId": adapter.instance_id}
        )
        source_type = "Assertion"
    else:
        # Partner SP: local IDP adapter attributes fulfil the assertion contract
        adapter = config.adapters.idp
        sp = etree.SubElement(
            role_ext,
            pf("SP"),
            attrib={"DefaultTargetResource": config.connection.default_target_resource},
        )
        adapter_mapping = etree.SubElement(
            sp, pf("AdapterToAssertionMapping"), attrib={"AdapterInstanceId": adapter.instance_id}
        )
        mapping = etree.SubElement(adapter_mapping, pf("DefaultAttributeMapping"))
        source_type = "Adapter"

    for entry in adapter.attribute_map:
        etree.SubElement(
            mapping,
            pf("AttributeMap"),
            attrib={"Value": entry.source, "Type": source_type, "Name": entry.target},
        )

    return result


def build_connection_document(
    entity: Union[EntityDescriptor, etree._Element],
    role: Role,
    friendly_name: str,
    config: Config,
) -> etree._Element:
    """Build the complete connection document for one role of an entity.

    The connection management service hosts one role per connection and only
    looks at the IDP descriptor when both are present, so the SP document is
    built without the IDP descriptor. The IDP document leaves an SP descriptor
    untouched.

    Args:
        entity: Source entity (view or element); not modified
        role: Role to build the connection for
        friendly_name: Deduplicated connection name
        config: Provisioning configuration

    Returns:
        New, augmented EntityDescriptor element

    Raises:
        ValueError: If the entity does not declare role
    """
    element = entity.element if isinstance(entity, EntityDescriptor) else entity
    entity_id = element.get("entityID", "")

    if element.find(role.descriptor_tag) is None:
        raise ValueError(f"Entity {entity_id!r} has no {role.value} role")

    document = build_entity_extension(strip_mailto(element), config, role)
    document.set(pf("isActive"), "true")
    document.set(pf("name"), friendly_name)

    if role is Role.SP:
        idp_element = document.find(Role.IDP.descriptor_tag)
        if idp_element is not None:
            document.remove(idp_element)

    role_element = document.find(role.descriptor_tag)
    augmented = build_role_extension(
        prefer_protocol(role_element, config.connection.preferred_protocol),
        role,
        config,
        entity_id,
    )
    document.replace(role_element, augmented)
    return document


def serialize_connection(document: etree._Element) -> str:
    """Serialize a connection document for the saveConnection call."""
    return etree.tostring(document, encoding="unicode", pretty_print=True)
