"""Configuration infrastructure package."""

from .repository import ConfigRepository

__all__ = ["ConfigRepository"]
