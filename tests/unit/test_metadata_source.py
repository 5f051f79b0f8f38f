"""Unit tests for metadata document retrieval."""

from unittest.mock import Mock, patch

import pytest
import requests

from metadata_provisioner.transport.metadata_source import fetch_metadata
from metadata_provisioner.utils.exceptions import MetadataRetrievalError


class TestFetchMetadata:
    """Test fetch_metadata()."""

    def test_reads_local_file(self, tmp_path):
        path = tmp_path / "md.xml"
        path.write_bytes(b"<md/>")
        assert fetch_metadata(str(path)) == b"<md/>"

    def test_reads_file_url(self, tmp_path):
        path = tmp_path / "md.xml"
        path.write_bytes(b"<md/>")
        assert fetch_metadata(path.as_uri()) == b"<md/>"

    def test_missing_file(self, tmp_path):
        with pytest.raises(MetadataRetrievalError, match="not found"):
            fetch_metadata(str(tmp_path / "missing.xml"))

    @patch("metadata_provisioner.transport.metadata_source.requests.get")
    def test_http_download(self, mock_get):
        mock_get.return_value = Mock(content=b"<md/>", raise_for_status=Mock())

        data = fetch_metadata("https://md.example.org/metadata.xml", timeout=5, verify_tls=False)

        assert data == b"<md/>"
        mock_get.assert_called_once_with(
            "https://md.example.org/metadata.xml", timeout=5, verify=False
        )

    @patch("metadata_provisioner.transport.metadata_source.requests.get")
    def test_http_error_status(self, mock_get):
        error_response = Mock(status_code=404)
        mock_get.return_value = Mock(
            raise_for_status=Mock(side_effect=requests.HTTPError(response=error_response))
        )
        with pytest.raises(MetadataRetrievalError, match="HTTP 404"):
            fetch_metadata("https://md.example.org/metadata.xml")

    @patch("metadata_provisioner.transport.metadata_source.requests.get")
    def test_connection_failure(self, mock_get):
        mock_get.side_effect = requests.ConnectionError("unreachable")
        with pytest.raises(MetadataRetrievalError, match="Failed to retrieve"):
            fetch_metadata("http://md.example.org/metadata.xml")
