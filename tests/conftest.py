"""
Shared pytest configuration and fixtures.

This module provides fixtures and configuration used across all test suites
(unit and integration tests): sample metadata documents, a self-signed
signing certificate and a baseline configuration.
"""

import copy
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, Tuple

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import NameOID
from lxml import etree
from signxml import DigestAlgorithm, SignatureMethod, XMLSigner

from metadata_provisioner.config.defaults import DEFAULT_CONFIG
from metadata_provisioner.config.schema import Config


@pytest.fixture
def project_root() -> Path:
    """
    Return the project root directory.

    Returns:
        Path: Absolute path to the project root directory.
    """
    return Path(__file__).parent.parent


@pytest.fixture
def fixtures_dir() -> Path:
    """
    Return the test fixtures directory path.

    Returns:
        Path: Absolute path to the test fixtures directory.
    """
    return Path(__file__).parent / "fixtures"


@pytest.fixture
def metadata_dir(fixtures_dir: Path) -> Path:
    return fixtures_dir / "metadata"


@pytest.fixture
def aggregate_xml(metadata_dir: Path) -> bytes:
    """EntitiesDescriptor with a dual-role entity, an IDP and an SP."""
    return (metadata_dir / "aggregate.xml").read_bytes()


@pytest.fixture
def flat_xml(metadata_dir: Path) -> bytes:
    """Single SP EntityDescriptor as document root."""
    return (metadata_dir / "flat.xml").read_bytes()


@pytest.fixture
def nested_xml(metadata_dir: Path) -> bytes:
    """EntitiesDescriptor containing a nested EntitiesDescriptor."""
    return (metadata_dir / "nested.xml").read_bytes()


def _generate_certificate(common_name: str) -> Tuple[x509.Certificate, rsa.RSAPrivateKey]:
    private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)

    subject = issuer = x509.Name([
        x509.NameAttribute(NameOID.ORGANIZATION_NAME, "Test Federation"),
        x509.NameAttribute(NameOID.COMMON_NAME, common_name),
    ])

    now = datetime.now(timezone.utc)
    # SKI/AKI extensions are required for signxml validation
    cert = x509.CertificateBuilder().subject_name(
        subject
    ).issuer_name(
        issuer
    ).public_key(
        private_key.public_key()
    ).serial_number(
        x509.random_serial_number()
    ).not_valid_before(
        now - timedelta(days=1)
    ).not_valid_after(
        now + timedelta(days=365)
    ).add_extension(
        x509.SubjectKeyIdentifier.from_public_key(private_key.public_key()),
        critical=False,
    ).add_extension(
        x509.AuthorityKeyIdentifier.from_issuer_public_key(private_key.public_key()),
        critical=False,
    ).sign(private_key, hashes.SHA256())

    return cert, private_key


@pytest.fixture(scope="session")
def signing_cert() -> Tuple[x509.Certificate, rsa.RSAPrivateKey]:
    """Self-signed federation metadata signing certificate and key."""
    return _generate_certificate("Test Metadata Signer")


@pytest.fixture(scope="session")
def other_cert() -> Tuple[x509.Certificate, rsa.RSAPrivateKey]:
    """Unrelated certificate, for wrong-key verification tests."""
    return _generate_certificate("Unrelated Signer")


@pytest.fixture
def signing_cert_pem(signing_cert) -> bytes:
    cert, _ = signing_cert
    return cert.public_bytes(serialization.Encoding.PEM)


@pytest.fixture
def signing_cert_file(tmp_path: Path, signing_cert_pem: bytes) -> Path:
    path = tmp_path / "md-signer.pem"
    path.write_bytes(signing_cert_pem)
    return path


@pytest.fixture
def sign_metadata(signing_cert) -> Callable[[bytes], bytes]:
    """Return a function that signs a metadata document (enveloped, RSA-SHA256)."""
    cert, key = signing_cert
    key_pem = key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )
    cert_pem = cert.public_bytes(serialization.Encoding.PEM)

    def _sign(document: bytes) -> bytes:
        root = etree.fromstring(document)
        signer = XMLSigner(
            signature_algorithm=SignatureMethod.RSA_SHA256,
            digest_algorithm=DigestAlgorithm.SHA256,
        )
        signed = signer.sign(root, key=key_pem, cert=cert_pem)
        return etree.tostring(signed, xml_declaration=True, encoding="UTF-8")

    return _sign


@pytest.fixture
def config_dict() -> dict:
    """Default configuration as a mutable dictionary."""
    data = copy.deepcopy(DEFAULT_CONFIG)
    data["metadata"]["location"] = "metadata.xml"
    data["connection_manager"]["password"] = "secret"
    data["connection"]["basic_auth_password"] = "backchannel"
    return data


@pytest.fixture
def config(config_dict: dict) -> Config:
    """Validated baseline configuration."""
    return Config(**config_dict)


@pytest.fixture
def make_config(config_dict: dict) -> Callable[..., Config]:
    """Build a Config with section overrides, e.g. make_config(entities={"exclude": [...]})."""

    def _make(**sections) -> Config:
        data = copy.deepcopy(config_dict)
        for section, values in sections.items():
            data.setdefault(section, {}).update(values)
        return Config(**data)

    return _make


@pytest.fixture(autouse=True)
def reset_logging():
    """Drop handlers installed by configure_logging() during a test."""
    import logging

    from metadata_provisioner.logging_audit import logger as logger_module

    root = logging.getLogger()
    before = list(root.handlers)
    yield
    for handler in list(root.handlers):
        if handler not in before:
            root.removeHandler(handler)
            handler.close()
    logger_module._logging_configured = False
