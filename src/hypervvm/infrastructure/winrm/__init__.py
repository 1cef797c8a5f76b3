"""WinRM transport: session manager and remote executor."""

from .executor import RemoteExecutor, clean_clixml, encode_powershell, minify_script
from .session import SessionHandle, SessionManager, translate_transport_error

__all__ = [
    "RemoteExecutor",
    "SessionHandle",
    "SessionManager",
    "clean_clixml",
    "encode_powershell",
    "minify_script",
    "translate_transport_error",
]
