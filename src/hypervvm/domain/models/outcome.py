"""
Execution outcome value types.

These are transient: produced once per remote round trip and consumed
immediately by the classifier and lifecycle layer.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .vm import VirtualMachine


@dataclass(frozen=True)
class ExecutionOutcome:
    """What came back from one completed remote script run."""

    stdout: str
    stderr: str
    exit_status: int


@dataclass(frozen=True)
class ScriptSuccess:
    """Classified success: trimmed payload plus an optional advisory."""

    payload: str
    warning: Optional[str] = None


@dataclass(frozen=True)
class OperationResult:
    """Result of one lifecycle operation as handed back to the caller."""

    operation: str
    resource: Optional[VirtualMachine] = None
    warning: Optional[str] = None
