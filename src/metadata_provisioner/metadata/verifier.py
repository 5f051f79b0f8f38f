"""XML signature verification for federation metadata using the signxml library.

The verifier always removes the signature node from the document, whether or
not it was checked: the connection management service rejects documents that
still carry a ds:Signature, and the augmented entities would no longer match
the signed digest anyway.
"""

import logging
from typing import Optional, Union

from cryptography import x509
from lxml import etree
from signxml import DigestAlgorithm, SignatureConfiguration, SignatureMethod, XMLVerifier
from signxml.exceptions import InvalidDigest, InvalidInput, InvalidSignature

from .certificates import certificate_to_pem
from .namespaces import NSMAP, SIGNATURE

logger = logging.getLogger(__name__)

CertificateLike = Union[x509.Certificate, bytes, str]
DocumentLike = Union[etree._ElementTree, etree._Element]


def _document_root(document: DocumentLike) -> etree._Element:
    if isinstance(document, etree._ElementTree):
        return document.getroot()
    return document


def find_signature(root: etree._Element) -> Optional[etree._Element]:
    """Locate the document signature.

    The enveloped signature of an aggregate is a direct child of the root;
    otherwise the first ds:Signature anywhere in the document is used.
    """
    signature = root.find(SIGNATURE)
    if signature is None:
        signature = root.find(".//ds:Signature", NSMAP)
    return signature


def covers_document(signature: etree._Element, root_id: Optional[str]) -> bool:
    """Return True if the signature references the document root.

    Only a Reference URI of "" or "#<root ID>" digests the whole document; a
    signature over one inner EntityDescriptor says nothing about its siblings.
    """
    reference = signature.find("ds:SignedInfo/ds:Reference", NSMAP)
    if reference is None:
        return False
    uri = reference.get("URI")
    return uri == "" or (root_id is not None and uri == f"#{root_id}")


def _remove_node(node: etree._Element) -> None:
    parent = node.getparent()
    if parent is not None:
        parent.remove(node)


class MetadataVerifier:
    """Verify and strip the XML signature on a metadata document.

    Attributes:
        certificate: PEM text of the certificate to verify against, or None
            to skip the cryptographic check
        allow_legacy_algorithms: Accept SHA-1 signature and digest algorithms

    Example:
        >>> cert = load_pem_certificate(Path("certs/inc-md-cert.pem"))
        >>> verifier = MetadataVerifier(cert)
        >>> if not verifier.verify(tree):
        ...     raise VerificationError("metadata signature invalid")
    """

    def __init__(
        self,
        certificate: Optional[CertificateLike] = None,
        allow_legacy_algorithms: bool = False,
    ) -> None:
        if isinstance(certificate, x509.Certificate):
            self.certificate: Optional[str] = certificate_to_pem(certificate).decode("ascii")
        elif isinstance(certificate, bytes):
            self.certificate = certificate.decode("ascii")
        else:
            self.certificate = certificate
        self.allow_legacy_algorithms = allow_legacy_algorithms

        logger.debug(
            f"MetadataVerifier initialized "
            f"(certificate={'provided' if self.certificate else 'none, verification skipped'}, "
            f"legacy_algorithms={allow_legacy_algorithms})"
        )

    def verify(self, document: DocumentLike) -> bool:
        """Verify the document signature and remove the signature node.

        Args:
            document: Parsed metadata tree or its root element; modified in
                place (signature removed) regardless of the result

        Returns:
            True if the signature verified, or if no certificate was supplied.
            False if a certificate was supplied and the signature is missing,
            or its digest or signature value does not match.
        """
        root = _document_root(document)
        signature = find_signature(root)

        signed_xml: Optional[bytes] = None
        if signature is not None and self.certificate is not None:
            # Serialize before stripping: the check needs the signed form
            signed_xml = etree.tostring(root)

        if signature is not None:
            _remove_node(signature)

        if self.certificate is None:
            if signature is not None:
                logger.warning("Signature not verified but removed.")
            else:
                logger.warning("No certificate configured and no signature found in metadata.")
            return True

        if signed_xml is None:
            logger.warning("No signature found in metadata.")
            return False

        logger.info(
            "Canonicalizing and verifying metadata; this may take a while for large documents"
        )
        return self._check(signed_xml, root.get("ID"))

    def _check(self, signed_xml: bytes, root_id: Optional[str]) -> bool:
        kwargs = {"x509_cert": self.certificate}
        if self.allow_legacy_algorithms:
            kwargs["expect_config"] = SignatureConfiguration(
                signature_methods=frozenset(SignatureMethod),
                digest_algorithms=frozenset(DigestAlgorithm),
            )

        try:
            result = XMLVerifier().verify(signed_xml, **kwargs)
        except InvalidDigest as e:
            logger.warning(
                f"Metadata digest verification failed: {e}. "
                f"Document content has been modified after signing."
            )
            return False
        except InvalidSignature as e:
            logger.warning(
                f"Metadata signature verification failed: {e}. "
                f"Document may be tampered or signed with a different certificate."
            )
            return False
        except InvalidInput as e:
            logger.warning(f"Metadata signature could not be processed: {e}")
            if not self.allow_legacy_algorithms and "forbidden by configuration" in str(e):
                logger.warning(
                    "SHA-1 signed metadata is rejected unless "
                    "metadata.allow_legacy_algorithms is enabled."
                )
            return False

        if not covers_document(result.signature_xml, root_id):
            logger.warning(
                "Metadata signature is valid but does not cover the whole document; "
                "unsigned entities could be provisioned."
            )
            return False

        logger.info("Metadata signature verification OK.")
        return True


def verify_metadata(
    document: DocumentLike,
    certificate: Optional[CertificateLike] = None,
    allow_legacy_algorithms: bool = False,
) -> bool:
    """Convenience wrapper around MetadataVerifier.verify."""
    return MetadataVerifier(certificate, allow_legacy_algorithms).verify(document)
