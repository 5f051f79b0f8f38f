"""Retrieval of federation metadata documents.

Metadata is published by federation operators over HTTP(S); a local file path
(or file:// URL) is accepted as well, which is convenient for testing and for
pre-downloaded aggregates.
"""

import logging
from pathlib import Path
from typing import Tuple, Union
from urllib.parse import urlparse

import requests

from ..utils.exceptions import MetadataRetrievalError

logger = logging.getLogger(__name__)

Timeout = Union[float, Tuple[float, float]]

DEFAULT_TIMEOUT: Tuple[float, float] = (10, 300)


def fetch_metadata(
    location: str,
    timeout: Timeout = DEFAULT_TIMEOUT,
    verify_tls: bool = True,
) -> bytes:
    """Fetch a metadata document from a URL or local path.

    Args:
        location: http(s):// URL, file:// URL, or filesystem path
        timeout: requests timeout (seconds, or (connect, read) tuple)
        verify_tls: Whether to verify the server certificate for https

    Returns:
        Raw document bytes

    Raises:
        MetadataRetrievalError: If the document cannot be retrieved

    Example:
        >>> data = fetch_metadata("https://md.incommon.org/InCommon/InCommon-metadata.xml")
        >>> tree = parse_metadata(data)
    """
    scheme = urlparse(location).scheme.lower()

    if scheme in ("http", "https"):
        return _fetch_url(location, timeout, verify_tls)

    if scheme == "file":
        path = Path(urlparse(location).path)
    else:
        path = Path(location)
    return _read_file(path)


def _fetch_url(url: str, timeout: Timeout, verify_tls: bool) -> bytes:
    logger.info(f"Retrieving metadata from {url}")
    if not verify_tls:
        logger.warning("TLS certificate verification is DISABLED for metadata retrieval.")

    try:
        response = requests.get(url, timeout=timeout, verify=verify_tls)
        response.raise_for_status()
    except requests.HTTPError as e:
        raise MetadataRetrievalError(
            f"Metadata server returned HTTP {e.response.status_code} for {url}"
        ) from e
    except requests.RequestException as e:
        raise MetadataRetrievalError(
            f"Failed to retrieve metadata from {url}: {e}. "
            f"Check network connectivity and the metadata URL."
        ) from e

    logger.info(f"Retrieved {len(response.content)} bytes of metadata")
    return response.content


def _read_file(path: Path) -> bytes:
    logger.info(f"Reading metadata from {path}")
    if not path.exists():
        raise MetadataRetrievalError(
            f"Metadata file not found: {path}. "
            f"Ensure the file exists and path is correct."
        )
    try:
        return path.read_bytes()
    except OSError as e:
        raise MetadataRetrievalError(f"Failed to read metadata file {path}: {e}") from e
