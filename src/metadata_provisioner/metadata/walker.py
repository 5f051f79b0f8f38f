"""Entity enumeration over the two supported metadata document shapes.

An aggregate document is rooted at md:EntitiesDescriptor and holds its entities
as direct children. A "flat" document is rooted at a single md:EntityDescriptor.
Nested EntitiesDescriptor groups are not supported and are rejected before any
entity is yielded, so they can never be half-processed.
"""

import logging
from typing import Iterator, List, Union

from lxml import etree

from ..models.metadata import EntityDescriptor
from ..utils.exceptions import MetadataError
from .namespaces import ENTITIES_DESCRIPTOR, ENTITY_DESCRIPTOR

logger = logging.getLogger(__name__)


def parse_metadata(data: bytes) -> etree._ElementTree:
    """Parse raw metadata bytes into an lxml tree.

    External entities and network access are disabled.

    Raises:
        MetadataError: If the document is not well-formed XML
    """
    parser = etree.XMLParser(
        resolve_entities=False,
        no_network=True,
        huge_tree=True,
        remove_comments=False,
    )
    try:
        root = etree.fromstring(data, parser)
    except etree.XMLSyntaxError as e:
        raise MetadataError(
            f"Metadata document is not well-formed XML at line {e.lineno}: {e.msg}"
        ) from e
    return root.getroottree()


def iter_entity_descriptors(
    document: Union[etree._ElementTree, etree._Element],
) -> Iterator[etree._Element]:
    """Yield the EntityDescriptor elements of a metadata document.

    Raises:
        MetadataError: If the root is not an EntitiesDescriptor or
            EntityDescriptor, or if an EntitiesDescriptor is nested
    """
    root = document.getroot() if isinstance(document, etree._ElementTree) else document

    if root.tag == ENTITIES_DESCRIPTOR:
        nested = root.find(f".//{ENTITIES_DESCRIPTOR}")
        if nested is not None:
            raise MetadataError(
                f"Nested EntitiesDescriptor (Name={nested.get('Name', '<unnamed>')!r}) "
                f"is not supported; flatten the aggregate before provisioning."
            )
        entities = root.findall(ENTITY_DESCRIPTOR)
        logger.info(f"Found EntitiesDescriptor with {len(entities)} EntityDescriptor(s)")
        yield from entities
    elif root.tag == ENTITY_DESCRIPTOR:
        logger.info("Found flat EntityDescriptor document")
        yield root
    else:
        raise MetadataError(
            f"Unsupported metadata root element {root.tag}; expected "
            f"EntitiesDescriptor or EntityDescriptor in the SAML 2.0 metadata namespace."
        )


def enumerate_entities(
    document: Union[etree._ElementTree, etree._Element],
) -> List[EntityDescriptor]:
    """Enumerate entities as EntityDescriptor views, in document order."""
    return [EntityDescriptor.from_element(el) for el in iter_entity_descriptors(document)]
