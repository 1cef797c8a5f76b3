"""PowerShell script templates and their renderer."""

from .renderer import TEMPLATES, ScriptRenderer, ps_bool, ps_quote

__all__ = ["TEMPLATES", "ScriptRenderer", "ps_bool", "ps_quote"]
