"""
hypervvm - Hyper-V virtual machine lifecycle over WinRM.

Renders PowerShell from templates, runs it on the host through a remote
shell and decodes the JSON record the host sends back.
"""

import logging

from .application import VMLifecycleService, classify
from .domain import (
    CodecError,
    ConnectionConfig,
    HyperVError,
    RenderError,
    ScriptError,
    TransportError,
    VirtualMachine,
)
from .domain.context import ExecutionContext

__version__ = "0.1.0"

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "CodecError",
    "ConnectionConfig",
    "ExecutionContext",
    "HyperVError",
    "RenderError",
    "ScriptError",
    "TransportError",
    "VMLifecycleService",
    "VirtualMachine",
    "__version__",
    "classify",
]
