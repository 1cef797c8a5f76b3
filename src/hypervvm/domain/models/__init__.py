"""
Domain models package.

Pydantic models for configuration and resources, dataclasses for the
transient execution values.
"""

from .connection import AuthMethod, ConnectionConfig
from .outcome import ExecutionOutcome, OperationResult, ScriptSuccess
from .params import BOOT_DEVICES, CreateVMParams, VMRefParams
from .vm import VirtualMachine

__all__ = [
    "AuthMethod",
    "BOOT_DEVICES",
    "ConnectionConfig",
    "CreateVMParams",
    "ExecutionOutcome",
    "OperationResult",
    "ScriptSuccess",
    "VMRefParams",
    "VirtualMachine",
]
