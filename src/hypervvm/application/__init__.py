"""Application layer: outcome classification and lifecycle orchestration."""

from .classifier import classify
from .container import Container
from .lifecycle import VMLifecycleService

__all__ = ["Container", "VMLifecycleService", "classify"]
