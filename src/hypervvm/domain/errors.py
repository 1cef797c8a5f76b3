"""
Error taxonomy for the lifecycle engine.

Four failure domains are kept apart so callers can tell them apart:
transport (never reached the script), render (programming error),
script (ran but reported failure) and codec (ran but emitted garbage).
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

# Exit status the read/delete templates use when no VM matches the identifier
EXIT_NOT_FOUND = 2

# Longest stderr/payload excerpt repeated inside str(error)
SNIPPET_LENGTH = 500


def _snippet(text: str) -> str:
    """Shorten text for inclusion in an error message."""
    text = text.strip()
    if len(text) <= SNIPPET_LENGTH:
        return text
    return text[:SNIPPET_LENGTH] + "..."


class TransportErrorKind(Enum):
    """Why the remote dispatch failed."""

    CONNECT = "connect"
    TLS = "tls"
    AUTH = "auth"
    PROTOCOL = "protocol"
    CONNECTION_LOST = "connection_lost"
    CANCELLED = "cancelled"


class RenderErrorKind(Enum):
    """Why a script could not be rendered."""

    TEMPLATE_NOT_FOUND = "template_not_found"
    BINDING_FAILED = "binding_failed"


class ScriptErrorKind(Enum):
    """How the remote script reported failure."""

    EXIT_NONZERO = "exit_nonzero"


class CodecErrorKind(Enum):
    """Why a successful payload could not be decoded."""

    MALFORMED = "malformed"
    MISSING_IDENTIFIER = "missing_identifier"


class HyperVError(RuntimeError):
    """
    Base class for every engine failure.

    ``operation`` is filled in by the lifecycle layer so the rendered message
    names the verb that failed.
    """

    def __init__(self, message: str, operation: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.operation = operation

    def __str__(self) -> str:
        if self.operation:
            return f"{self.operation}: {self.message}"
        return self.message


class TransportError(HyperVError):
    """Connection, authentication or cancellation failure."""

    def __init__(
        self,
        kind: TransportErrorKind,
        message: str,
        operation: Optional[str] = None,
    ) -> None:
        super().__init__(f"transport error ({kind.value}): {message}", operation)
        self.kind = kind


class RenderError(HyperVError):
    """Template missing or parameter binding failure."""

    def __init__(
        self,
        kind: RenderErrorKind,
        template_name: str,
        field: Optional[str] = None,
        detail: str = "",
        operation: Optional[str] = None,
    ) -> None:
        if kind is RenderErrorKind.TEMPLATE_NOT_FOUND:
            message = f"unknown script template '{template_name}'"
        else:
            message = f"cannot bind field '{field}' for template '{template_name}'"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message, operation)
        self.kind = kind
        self.template_name = template_name
        self.field = field


class ScriptError(HyperVError):
    """The remote script ran and exited non-zero."""

    def __init__(
        self,
        exit_status: int,
        stderr: str = "",
        stdout: str = "",
        kind: ScriptErrorKind = ScriptErrorKind.EXIT_NONZERO,
        operation: Optional[str] = None,
    ) -> None:
        message = f"script exited with status {exit_status}"
        if stderr:
            message = f"{message}: {_snippet(stderr)}"
        super().__init__(message, operation)
        self.kind = kind
        self.exit_status = exit_status
        self.stderr = stderr
        self.stdout = stdout

    @property
    def not_found(self) -> bool:
        """True when the script signalled that no VM matched."""
        return self.exit_status == EXIT_NOT_FOUND


class CodecError(HyperVError):
    """Script output did not decode into a VirtualMachine."""

    def __init__(
        self,
        kind: CodecErrorKind,
        raw_payload: str,
        detail: str = "",
        operation: Optional[str] = None,
    ) -> None:
        if kind is CodecErrorKind.MISSING_IDENTIFIER:
            message = "host record carries no VMId"
        else:
            message = "malformed host record"
        if detail:
            message = f"{message} ({detail})"
        message = f"{message}; raw payload: {_snippet(raw_payload)!r}"
        super().__init__(message, operation)
        self.kind = kind
        self.raw_payload = raw_payload
