"""
Tests for the WinRM session manager.
"""

import xml.etree.ElementTree as ET
from unittest.mock import MagicMock

import pytest
import requests
from winrm.exceptions import AuthenticationError, InvalidCredentialsError, WinRMError

from hypervvm.domain.errors import TransportError, TransportErrorKind
from hypervvm.domain.models import ConnectionConfig
from hypervvm.infrastructure.winrm import SessionHandle, SessionManager, translate_transport_error
from hypervvm.infrastructure.winrm.session import MAX_OPERATION_TIMEOUT_SEC, _ServerNameAdapter

from helpers import FakeProtocol


class TestProtocolOptions:
    """Mapping ConnectionConfig onto pywinrm Protocol arguments."""

    def test_password_options(self, config):
        options = SessionManager().protocol_options(config)

        assert options["endpoint"] == "http://hv01.example.test:5985/wsman"
        assert options["transport"] == "ntlm"
        assert options["username"] == "admin"
        assert options["password"] == "s3cret"
        assert options["server_cert_validation"] == "validate"
        assert "ca_trust_path" not in options
        assert "cert_pem" not in options

    def test_operation_timeout_is_capped(self):
        config = ConnectionConfig(host="hv01", username="admin", password="pw", timeout=600)
        options = SessionManager().protocol_options(config)

        assert options["operation_timeout_sec"] == MAX_OPERATION_TIMEOUT_SEC
        assert options["read_timeout_sec"] > options["operation_timeout_sec"]

    def test_short_timeout_used_directly(self):
        config = ConnectionConfig(host="hv01", username="admin", password="pw", timeout=5)
        options = SessionManager().protocol_options(config)

        assert options["operation_timeout_sec"] == 5
        assert options["read_timeout_sec"] == 15

    def test_insecure_skips_validation(self):
        config = ConnectionConfig(host="hv01", username="admin", password="pw", https=True, insecure=True)
        assert SessionManager().protocol_options(config)["server_cert_validation"] == "ignore"

    def test_ca_cert_and_client_certificate(self):
        config = ConnectionConfig(
            host="hv01",
            username="admin",
            https=True,
            auth_method="certificate",
            ca_cert="/etc/hv/ca.pem",
            cert="/etc/hv/client.pem",
            ca_key="/etc/hv/client.key",
        )
        options = SessionManager().protocol_options(config)

        assert options["transport"] == "certificate"
        assert options["ca_trust_path"] == "/etc/hv/ca.pem"
        assert options["cert_pem"] == "/etc/hv/client.pem"
        assert options["cert_key_pem"] == "/etc/hv/client.key"


class TestConnect:
    """Test cases for SessionManager.connect."""

    def test_connect_opens_utf8_shell(self, config, session_manager, fake_protocol):
        handle = session_manager.connect(config)

        assert isinstance(handle, SessionHandle)
        assert handle.shell_id == "shell-1"
        assert handle.endpoint == config.endpoint
        assert fake_protocol.codepage == 65001
        assert fake_protocol.options["username"] == "admin"
        assert not handle.closed

    def test_context_manager_closes_shell(self, config, session_manager, fake_protocol):
        with session_manager.connect(config) as handle:
            pass

        assert handle.closed
        assert fake_protocol.closed_shells == ["shell-1"]

    def test_close_is_idempotent(self, config, session_manager, fake_protocol):
        handle = session_manager.connect(config)
        handle.close()
        handle.close()

        assert fake_protocol.closed_shells == ["shell-1"]

    def test_close_failure_is_logged_not_raised(self, config, caplog):
        protocol = FakeProtocol()
        protocol.close_shell = MagicMock(side_effect=WinRMError("shell gone"))
        handle = SessionHandle(protocol, "shell-1", config.endpoint)

        handle.close()

        assert handle.closed
        assert "Failed to close shell" in caplog.text

    @pytest.mark.parametrize(
        "error, kind",
        [
            (InvalidCredentialsError("the specified credentials were rejected by the server"), TransportErrorKind.AUTH),
            (AuthenticationError("kerberos ticket expired"), TransportErrorKind.AUTH),
            (requests.exceptions.SSLError("certificate verify failed"), TransportErrorKind.TLS),
            (requests.exceptions.ConnectionError("Name or service not known"), TransportErrorKind.CONNECT),
            (requests.exceptions.ConnectTimeout("timed out"), TransportErrorKind.CONNECT),
            (WinRMError("unexpected SOAP fault"), TransportErrorKind.PROTOCOL),
            (ET.ParseError("not well-formed (invalid token): line 1, column 0"), TransportErrorKind.PROTOCOL),
            (KeyError("ShellId"), TransportErrorKind.PROTOCOL),
        ],
    )
    def test_open_shell_failures(self, config, error, kind):
        protocol = FakeProtocol(open_error=error)
        manager = SessionManager(protocol_factory=lambda **options: protocol)

        with pytest.raises(TransportError) as exc_info:
            manager.connect(config)

        assert exc_info.value.kind is kind
        assert exc_info.value.__cause__ is error
        assert config.host in str(exc_info.value)

    def test_password_never_in_error(self, config):
        protocol = FakeProtocol(open_error=InvalidCredentialsError("rejected"))
        manager = SessionManager(protocol_factory=lambda **options: protocol)

        with pytest.raises(TransportError) as exc_info:
            manager.connect(config)

        assert "s3cret" not in str(exc_info.value)

    def test_invalid_client_settings(self, config):
        def factory(**options):
            raise WinRMError("invalid transport")

        with pytest.raises(TransportError) as exc_info:
            SessionManager(protocol_factory=factory).connect(config)

        assert exc_info.value.kind is TransportErrorKind.PROTOCOL

    def test_tls_server_name_pinned(self):
        config = ConnectionConfig(
            host="10.0.0.5", username="admin", password="pw", https=True, tls_server_name="hv01.corp"
        )
        protocol = FakeProtocol()
        protocol.transport = MagicMock()
        manager = SessionManager(protocol_factory=lambda **options: protocol)

        manager.connect(config)

        prefix, adapter = protocol.transport.session.mount.call_args.args
        assert prefix == "https://"
        assert isinstance(adapter, _ServerNameAdapter)
        assert adapter.server_name == "hv01.corp"

    def test_tls_server_name_ignored_when_insecure(self):
        config = ConnectionConfig(
            host="10.0.0.5", username="admin", password="pw", https=True, insecure=True, tls_server_name="hv01.corp"
        )
        protocol = FakeProtocol()
        protocol.transport = MagicMock()

        SessionManager(protocol_factory=lambda **options: protocol).connect(config)

        protocol.transport.session.mount.assert_not_called()


class TestTranslateTransportError:
    """Network failures after dispatch mean the connection was lost."""

    def test_in_flight_connection_error(self):
        err = translate_transport_error(requests.exceptions.ReadTimeout("read timed out"), "exec", in_flight=True)
        assert err.kind is TransportErrorKind.CONNECTION_LOST

    def test_message_names_stage(self):
        err = translate_transport_error(WinRMError("boom"), "opening shell")
        assert "opening shell" in str(err)
        assert "WinRMError" in str(err)
