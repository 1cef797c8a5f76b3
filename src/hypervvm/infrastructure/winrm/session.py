"""
WinRM Session Manager.

Turns a ConnectionConfig into an authenticated remote shell. A fresh handle
is opened for every lifecycle call and closed when the call ends; nothing is
cached or pooled between calls.

Failure mapping:
- credentials rejected       -> TransportError(AUTH)
- TLS handshake/verification -> TransportError(TLS)
- DNS/connect/read timeout   -> TransportError(CONNECT)
- anything else from WinRM   -> TransportError(PROTOCOL)
- malformed WinRM reply       -> TransportError(PROTOCOL)
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from typing import Any, Callable, Optional

import requests
import winrm  # pywinrm
from requests.adapters import HTTPAdapter
from winrm.exceptions import AuthenticationError, WinRMError, WinRMTransportError

from hypervvm.domain.errors import TransportError, TransportErrorKind
from hypervvm.domain.models import AuthMethod, ConnectionConfig

logger = logging.getLogger(__name__)

# WinRM receive calls block server-side for at most this long per poll
MAX_OPERATION_TIMEOUT_SEC = 20
# UTF-8 console output from the remote shell
SHELL_CODEPAGE = 65001

# pywinrm parses each reply with ElementTree and indexes the result without
# checks, so a garbled envelope surfaces as ParseError, KeyError or StopIteration
TRANSPORT_ERRORS = (
    WinRMError,
    WinRMTransportError,
    requests.exceptions.RequestException,
    ET.ParseError,
    KeyError,
    StopIteration,
)


def translate_transport_error(exc: BaseException, stage: str, in_flight: bool = False) -> TransportError:
    """
    Map a pywinrm/requests exception to a TransportError.

    Args:
        exc: The exception raised by the transport
        stage: Short description of what was being attempted
        in_flight: True once a command was dispatched; network failures then
                   mean the connection was lost rather than never made

    Returns:
        TransportError (callers chain the original with ``raise ... from``)
    """
    if isinstance(exc, AuthenticationError):
        kind = TransportErrorKind.AUTH
    elif isinstance(exc, requests.exceptions.SSLError):
        kind = TransportErrorKind.TLS
    elif isinstance(exc, (requests.exceptions.ConnectionError, requests.exceptions.Timeout)):
        kind = TransportErrorKind.CONNECTION_LOST if in_flight else TransportErrorKind.CONNECT
    else:
        kind = TransportErrorKind.PROTOCOL
    return TransportError(kind, f"{stage}: {type(exc).__name__}: {exc}")


class _ServerNameAdapter(HTTPAdapter):
    """Verify the host certificate against a fixed name instead of the URL host."""

    def __init__(self, server_name: str, **kwargs: Any) -> None:
        self.server_name = server_name
        super().__init__(**kwargs)

    def init_poolmanager(self, *args: Any, **kwargs: Any) -> None:
        kwargs["server_hostname"] = self.server_name
        kwargs["assert_hostname"] = self.server_name
        super().init_poolmanager(*args, **kwargs)


class SessionHandle:
    """
    Live, authenticated remote shell.

    Owned by a single lifecycle call. Use as a context manager so the remote
    shell is always released.
    """

    def __init__(self, protocol: Any, shell_id: str, endpoint: str) -> None:
        self.protocol = protocol
        self.shell_id = shell_id
        self.endpoint = endpoint
        self._closed = False

    @property
    def closed(self) -> bool:
        """Whether close() has run."""
        return self._closed

    def close(self) -> None:
        """Close the remote shell. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        try:
            self.protocol.close_shell(self.shell_id)
            logger.debug("Closed shell %s on %s", self.shell_id, self.endpoint)
        except TRANSPORT_ERRORS as e:
            # The operation outcome is already decided; a stale shell expires host-side
            logger.warning("Failed to close shell %s on %s: %s", self.shell_id, self.endpoint, e)

    def __enter__(self) -> SessionHandle:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __repr__(self) -> str:
        state = "closed" if self._closed else "open"
        return f"SessionHandle({self.endpoint!r}, shell={self.shell_id!r}, {state})"


class SessionManager:
    """
    Produces authenticated WinRM session handles on demand.

    Holds no live connection; only the protocol factory. Safe to share
    between threads.
    """

    def __init__(self, protocol_factory: Optional[Callable[..., Any]] = None) -> None:
        """
        Initialize the session manager.

        Args:
            protocol_factory: Callable building a pywinrm Protocol
                              (defaults to winrm.Protocol)
        """
        self.protocol_factory = protocol_factory or winrm.Protocol

    def protocol_options(self, config: ConnectionConfig) -> dict[str, Any]:
        """Keyword arguments for the pywinrm Protocol."""
        operation_timeout = min(config.timeout, MAX_OPERATION_TIMEOUT_SEC)
        options: dict[str, Any] = {
            "endpoint": config.endpoint,
            "transport": config.auth_method.value,
            "username": config.username,
            "password": config.get_password(),
            "server_cert_validation": "ignore" if config.insecure else "validate",
            # read timeout must exceed the operation timeout
            "operation_timeout_sec": operation_timeout,
            "read_timeout_sec": operation_timeout + 10,
        }
        if config.ca_cert:
            options["ca_trust_path"] = config.ca_cert
        if config.auth_method is AuthMethod.CERTIFICATE:
            options["cert_pem"] = config.cert
            options["cert_key_pem"] = config.ca_key
        return options

    def connect(self, config: ConnectionConfig) -> SessionHandle:
        """
        Negotiate transport security and credentials, then open a shell.

        Args:
            config: Connection parameters

        Returns:
            Open SessionHandle

        Raises:
            TransportError: On DNS/connect/TLS/auth/protocol failure
        """
        logger.debug(
            "Connecting to %s as %s (%s, verify=%s)",
            config.endpoint,
            config.username,
            config.auth_method.value,
            not config.insecure,
        )

        try:
            protocol = self.protocol_factory(**self.protocol_options(config))
        except (WinRMError, ValueError) as e:
            # pywinrm rejects unusable option combinations at construction
            raise translate_transport_error(e, "invalid WinRM client settings") from e

        try:
            if config.https and config.tls_server_name and not config.insecure:
                self._pin_server_name(protocol, config.tls_server_name)
            shell_id = protocol.open_shell(codepage=SHELL_CODEPAGE)
        except TRANSPORT_ERRORS as e:
            logger.debug("Connection to %s failed: %s", config.endpoint, e)
            raise translate_transport_error(e, f"cannot open shell on {config.endpoint}") from e

        logger.debug("Opened shell %s on %s", shell_id, config.endpoint)
        return SessionHandle(protocol, shell_id, config.endpoint)

    @staticmethod
    def _pin_server_name(protocol: Any, server_name: str) -> None:
        """Mount an adapter that checks the certificate for ``server_name``."""
        transport = protocol.transport
        if getattr(transport, "session", None) is None:
            transport.build_session()
        transport.session.mount("https://", _ServerNameAdapter(server_name))
