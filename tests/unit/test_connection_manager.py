"""Unit tests for the connection management SOAP client."""

import logging
from unittest.mock import Mock

import pytest
import requests
from lxml import etree
from requests.auth import HTTPBasicAuth
from requests.exceptions import (
    ChunkedEncodingError,
    ConnectionError,
    ContentDecodingError,
    InvalidURL,
    SSLError,
    Timeout,
    TooManyRedirects,
)

from metadata_provisioner.config.schema import ConnectionManagerConfig
from metadata_provisioner.models.metadata import Role
from metadata_provisioner.models.responses import ConnectionOperation, ConnectionStatus
from metadata_provisioner.transport.connection_manager import (
    DELETE_CONNECTION_OK,
    SAVE_CONNECTION_OK,
    SOAP12_NS,
    ConnectionManagerClient,
    DryRunConnectionManager,
    build_soap_envelope,
)

CM_URL = "https://localhost:9999/pf-mgmt-ws/ws/ConnectionMigrationMgr"


@pytest.fixture
def cm_config():
    return ConnectionManagerConfig(
        url=CM_URL,
        username="heuristics",
        password="secret",
        timeout_connect=5,
        timeout_read=60,
    )


def _http_response(body: str, status_code: int = 200) -> Mock:
    response = Mock()
    response.content = body.encode("utf-8")
    response.status_code = status_code
    return response


@pytest.fixture
def mock_session():
    session = Mock(spec=requests.Session)
    return session


@pytest.fixture
def client(cm_config, mock_session):
    return ConnectionManagerClient(cm_config, session=mock_session)


class TestBuildSoapEnvelope:
    """Test SOAP 1.2 envelope construction."""

    def test_save_envelope_escapes_document(self):
        entity_xml = '<md:EntityDescriptor entityID="a&amp;b"/>'
        envelope = build_soap_envelope(ConnectionOperation.SAVE, entity_xml, "true")

        root = etree.fromstring(envelope.encode())
        assert root.tag == f"{{{SOAP12_NS}}}Envelope"
        assert root.find(f"{{{SOAP12_NS}}}Header") is not None
        call = root.find(f"{{{SOAP12_NS}}}Body/saveConnection")
        assert call.findtext("param0") == entity_xml
        assert call.findtext("param1") == "true"
        assert "&lt;md:EntityDescriptor" in envelope

    def test_delete_envelope(self):
        envelope = build_soap_envelope(ConnectionOperation.DELETE, "https://sp.example.org", "SP")
        root = etree.fromstring(envelope.encode())
        call = root.find(f"{{{SOAP12_NS}}}Body/deleteConnection")
        assert call.findtext("param0") == "https://sp.example.org"
        assert call.findtext("param1") == "SP"


class TestClientInit:
    """Test ConnectionManagerClient initialization."""

    def test_session_configured(self, client, mock_session):
        assert isinstance(mock_session.auth, HTTPBasicAuth)
        assert mock_session.auth.username == "heuristics"
        assert mock_session.auth.password == "secret"
        assert mock_session.verify is True
        assert client.timeout == (5, 60)

    def test_http_url_warns(self, mock_session, caplog):
        config = ConnectionManagerConfig(url="http://localhost:9999/cm", username="u")
        with caplog.at_level(logging.WARNING):
            ConnectionManagerClient(config, session=mock_session)
        assert "SECURITY WARNING" in caplog.text

    def test_disabled_tls_verification_warns(self, mock_session, caplog):
        config = ConnectionManagerConfig(url=CM_URL, username="u", verify_tls=False)
        with caplog.at_level(logging.WARNING):
            ConnectionManagerClient(config, session=mock_session)
        assert mock_session.verify is False
        assert "verification is DISABLED" in caplog.text


class TestSaveConnection:
    """Test save_connection()."""

    def test_acknowledged_save(self, client, mock_session):
        mock_session.post.return_value = _http_response(SAVE_CONNECTION_OK)

        response = client.save_connection("<md:EntityDescriptor/>", "https://idp.example.org", Role.IDP)

        assert response.status == ConnectionStatus.SUCCESS
        assert response.is_success
        assert response.operation == ConnectionOperation.SAVE
        assert response.role == Role.IDP
        assert response.status_code == 200

    def test_request_format(self, client, mock_session):
        mock_session.post.return_value = _http_response(SAVE_CONNECTION_OK)

        client.save_connection("<md:EntityDescriptor/>", "https://idp.example.org")

        args, kwargs = mock_session.post.call_args
        assert args[0] == CM_URL
        assert kwargs["headers"] == {
            "Content-Type": "application/soap+xml; charset=UTF-8",
            "soapAction": CM_URL,
        }
        assert kwargs["timeout"] == (5, 60)
        body = etree.fromstring(kwargs["data"])
        assert body.findtext(f"{{{SOAP12_NS}}}Body/saveConnection/param0") == "<md:EntityDescriptor/>"

    def test_other_body_is_error(self, client, mock_session):
        mock_session.post.return_value = _http_response("<fault>duplicate name</fault>", 500)

        response = client.save_connection("<x/>", "https://idp.example.org", Role.IDP)

        assert response.status == ConnectionStatus.ERROR
        assert not response.is_success
        assert response.response_body == "<fault>duplicate name</fault>"
        assert response.status_code == 500
        assert "not acknowledged" in response.error_message

    def test_delete_acknowledgement_does_not_confirm_save(self, client, mock_session):
        mock_session.post.return_value = _http_response(DELETE_CONNECTION_OK)
        response = client.save_connection("<x/>", "https://idp.example.org")
        assert response.status == ConnectionStatus.ERROR

    def test_trailing_whitespace_is_not_acknowledgement(self, client, mock_session):
        mock_session.post.return_value = _http_response(SAVE_CONNECTION_OK + "\n")
        response = client.save_connection("<x/>", "https://idp.example.org")
        assert response.status == ConnectionStatus.ERROR

    @pytest.mark.parametrize(
        "exception",
        [
            ConnectionError("refused"),
            Timeout("slow"),
            SSLError("bad cert"),
            ChunkedEncodingError("connection broken mid-body"),
            ContentDecodingError("bad gzip"),
            TooManyRedirects("redirect loop"),
            InvalidURL("no host"),
        ],
    )
    def test_network_errors_become_responses(self, client, mock_session, exception):
        mock_session.post.side_effect = exception

        response = client.save_connection("<x/>", "https://idp.example.org", Role.IDP)

        assert response.status == ConnectionStatus.NETWORK_ERROR
        assert response.status_code is None
        assert response.response_body == ""
        assert response.error_message

    def test_no_retry(self, client, mock_session):
        mock_session.post.side_effect = ConnectionError("refused")
        client.save_connection("<x/>", "https://idp.example.org")
        assert mock_session.post.call_count == 1


class TestDeleteConnection:
    """Test delete_connection()."""

    def test_acknowledged_delete(self, client, mock_session):
        mock_session.post.return_value = _http_response(DELETE_CONNECTION_OK)

        response = client.delete_connection("https://sp.example.org", Role.SP)

        assert response.is_success
        assert response.operation == ConnectionOperation.DELETE
        body = etree.fromstring(mock_session.post.call_args.kwargs["data"])
        call = body.find(f"{{{SOAP12_NS}}}Body/deleteConnection")
        assert call.findtext("param0") == "https://sp.example.org"
        assert call.findtext("param1") == "SP"

    def test_role_name_accepted(self, client, mock_session):
        mock_session.post.return_value = _http_response(DELETE_CONNECTION_OK)
        response = client.delete_connection("https://idp.example.org", "idp")
        assert response.role == Role.IDP

    def test_save_acknowledgement_does_not_confirm_delete(self, client, mock_session):
        mock_session.post.return_value = _http_response(SAVE_CONNECTION_OK)
        response = client.delete_connection("https://sp.example.org", Role.SP)
        assert response.status == ConnectionStatus.ERROR


class TestDryRunConnectionManager:
    """Test DryRunConnectionManager."""

    def test_save_writes_document(self, tmp_path):
        manager = DryRunConnectionManager(tmp_path / "out")

        response = manager.save_connection("<doc/>", "https://idp.example.org/idp", Role.IDP)

        assert response.status == ConnectionStatus.DRY_RUN
        assert response.is_success
        written = list((tmp_path / "out").iterdir())
        assert len(written) == 1
        assert written[0].name.startswith("idp_")
        assert written[0].read_text() == "<doc/>"
        assert manager.saved == 1

    def test_save_without_output_dir(self):
        manager = DryRunConnectionManager()
        assert manager.save_connection("<doc/>", "https://sp.example.org", Role.SP).is_success

    def test_delete_always_succeeds(self):
        manager = DryRunConnectionManager()
        response = manager.delete_connection("https://sp.example.org", "sp")
        assert response.is_success
        assert response.role == Role.SP
        assert manager.deleted == 1
