"""Certificate loading for metadata signature verification.

Federation operators publish the metadata signing certificate as a PEM file;
this module loads it with the cryptography library and reports on its validity.
"""

import logging
from datetime import datetime, timedelta, timezone
from pathlib import Path

from cryptography import x509
from cryptography.hazmat.primitives import serialization

from ..utils.exceptions import CertificateLoadError

logger = logging.getLogger(__name__)


def check_expiration_warning(cert: x509.Certificate, warning_days: int = 30) -> bool:
    """Check if certificate is expiring soon and log warning.

    Args:
        cert: X.509 certificate to check
        warning_days: Number of days before expiration to warn (default: 30)

    Returns:
        True if certificate expires within warning_days, False otherwise
    """
    now = datetime.now(timezone.utc)
    not_after = cert.not_valid_after_utc

    if not_after < now:
        logger.warning(
            f"Metadata signing certificate EXPIRED on {not_after.strftime('%Y-%m-%d')}: "
            f"{cert.subject.rfc4514_string()}"
        )
        return True

    if not_after - now <= timedelta(days=warning_days):
        days_left = (not_after - now).days
        logger.warning(
            f"Metadata signing certificate expires in {days_left} days "
            f"({not_after.strftime('%Y-%m-%d')}): {cert.subject.rfc4514_string()}"
        )
        return True

    return False


def load_pem_certificate_data(cert_data: bytes) -> x509.Certificate:
    """Load an X.509 certificate from PEM bytes.

    Raises:
        CertificateLoadError: If the data is not a PEM certificate
    """
    try:
        cert = x509.load_pem_x509_certificate(cert_data)
    except ValueError as e:
        raise CertificateLoadError(
            f"Failed to parse PEM certificate: {e}. Ensure data is valid PEM format."
        ) from e

    check_expiration_warning(cert)
    return cert


def load_pem_certificate(cert_path: Path) -> x509.Certificate:
    """Load X.509 certificate from PEM file.

    Args:
        cert_path: Path to PEM certificate file

    Returns:
        Loaded X.509 certificate

    Raises:
        CertificateLoadError: If certificate cannot be loaded

    Example:
        >>> cert = load_pem_certificate(Path("certs/inc-md-cert.pem"))
        >>> print(cert.subject.rfc4514_string())
    """
    if not cert_path.exists():
        raise CertificateLoadError(
            f"Certificate file not found: {cert_path}. "
            f"Ensure the file exists and path is correct."
        )

    try:
        cert_data = cert_path.read_bytes()
    except OSError as e:
        raise CertificateLoadError(
            f"Failed to read certificate file {cert_path}: {e}"
        ) from e

    cert = load_pem_certificate_data(cert_data)
    logger.info(f"Loaded metadata signing certificate: {cert.subject.rfc4514_string()}")
    logger.info(f"Certificate expires: {cert.not_valid_after_utc.strftime('%Y-%m-%d')}")
    return cert


def certificate_to_pem(cert: x509.Certificate) -> bytes:
    return cert.public_bytes(encoding=serialization.Encoding.PEM)
