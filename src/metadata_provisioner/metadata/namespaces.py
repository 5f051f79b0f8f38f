"""XML namespaces and qualified names used when reading and augmenting metadata."""

# SAML 2.0 metadata
MD_NS = "urn:oasis:names:tc:SAML:2.0:metadata"

# XML Signature
DS_NS = "http://www.w3.org/2000/09/xmldsig#"

# Connection management extension vocabulary
PF_NS = "urn:sourceid.org:saml2:metadata-extension:v2"
SOAP_AUTH_NS = "http://www.sourceid.org/2004/04/soapauth"

NSMAP = {
    "md": MD_NS,
    "ds": DS_NS,
    "urn": PF_NS,
    "soap": SOAP_AUTH_NS,
}


def md(local_name: str) -> str:
    """Clark-notation name in the SAML metadata namespace."""
    return f"{{{MD_NS}}}{local_name}"


def pf(local_name: str) -> str:
    """Clark-notation name in the connection extension namespace."""
    return f"{{{PF_NS}}}{local_name}"


def soap_auth(local_name: str) -> str:
    return f"{{{SOAP_AUTH_NS}}}{local_name}"


ENTITIES_DESCRIPTOR = md("EntitiesDescriptor")
ENTITY_DESCRIPTOR = md("EntityDescriptor")
EXTENSIONS = md("Extensions")
SIGNATURE = f"{{{DS_NS}}}Signature"

PREFERRED_PROTOCOL_DEFAULT = "urn:oasis:names:tc:SAML:2.0:protocol"
