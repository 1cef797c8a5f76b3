"""
Domain package.

Pure models and the error taxonomy; nothing here performs I/O.
"""

from .errors import (
    CodecError,
    CodecErrorKind,
    HyperVError,
    RenderError,
    RenderErrorKind,
    ScriptError,
    ScriptErrorKind,
    TransportError,
    TransportErrorKind,
)
from .models import (
    AuthMethod,
    ConnectionConfig,
    ExecutionOutcome,
    OperationResult,
    ScriptSuccess,
    VirtualMachine,
)

__all__ = [
    "AuthMethod",
    "CodecError",
    "CodecErrorKind",
    "ConnectionConfig",
    "ExecutionOutcome",
    "HyperVError",
    "OperationResult",
    "RenderError",
    "RenderErrorKind",
    "ScriptError",
    "ScriptErrorKind",
    "ScriptSuccess",
    "TransportError",
    "TransportErrorKind",
    "VirtualMachine",
]
