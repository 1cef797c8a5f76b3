"""
Jinja2-based Script Renderer.

Binds a named lifecycle template to its parameter model and renders the
PowerShell text that the executor ships to the host. Rendering is pure:
the same (template_name, params) always produces the same bytes, so
templates must not reference clocks, hostnames or random values.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Optional, Union

from jinja2 import Environment, FileSystemLoader, StrictUndefined, TemplateNotFound, UndefinedError, select_autoescape
from pydantic import BaseModel, ValidationError

from hypervvm.domain.errors import EXIT_NOT_FOUND, RenderError, RenderErrorKind
from hypervvm.domain.models import CreateVMParams, VMRefParams

logger = logging.getLogger(__name__)

# Template directory relative to this file
TEMPLATE_DIR = Path(__file__).parent / "templates"

# Quote characters PowerShell honours inside single-quoted strings
_PS_SINGLE_QUOTES = ("'", "\u2018", "\u2019", "\u201a", "\u201b")
_UNDEFINED_NAME = re.compile(r"'(\w+)' is undefined|has no attribute '(\w+)'")

Params = Union[Mapping[str, Any], BaseModel]


@dataclass(frozen=True)
class ScriptTemplate:
    """A lifecycle template and the parameter model it binds."""

    name: str
    path: str
    params_model: type[BaseModel]


TEMPLATES: dict[str, ScriptTemplate] = {
    "create_vm": ScriptTemplate("create_vm", "powershell/create_vm.ps1.j2", CreateVMParams),
    "read_vm": ScriptTemplate("read_vm", "powershell/read_vm.ps1.j2", VMRefParams),
    "delete_vm": ScriptTemplate("delete_vm", "powershell/delete_vm.ps1.j2", VMRefParams),
}


def ps_quote(value: Any) -> str:
    """Render a value as a single-quoted PowerShell string literal."""
    text = str(value)
    for quote in _PS_SINGLE_QUOTES:
        text = text.replace(quote, quote * 2)
    return f"'{text}'"


def ps_bool(value: Any) -> str:
    """Render a truthy value as $true/$false."""
    return "$true" if value else "$false"


def _field_name(model: type[BaseModel], loc: Any) -> str:
    """Map a pydantic error location (possibly an alias) to the field name."""
    key = str(loc)
    for name, info in model.model_fields.items():
        if key in (name, info.alias):
            return name
    return key


class ScriptRenderer:
    """
    Renders lifecycle scripts from the fixed template set.

    Uses templates in templates/powershell/. Undefined template variables
    are errors, never empty strings.
    """

    def __init__(self, template_dir: Optional[Path] = None) -> None:
        """Initialize with template directory."""
        self.template_dir = template_dir or TEMPLATE_DIR

        self.env = Environment(
            loader=FileSystemLoader(str(self.template_dir)),
            autoescape=select_autoescape(default=False),
            undefined=StrictUndefined,
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
        )
        self.env.filters["ps_quote"] = ps_quote
        self.env.filters["ps_bool"] = ps_bool
        self.env.globals["exit_not_found"] = EXIT_NOT_FOUND

    @property
    def template_names(self) -> list[str]:
        """Names accepted by render()."""
        return sorted(TEMPLATES)

    def bind(self, template_name: str, params: Params) -> BaseModel:
        """
        Validate params against the template's parameter model.

        Raises:
            RenderError: TEMPLATE_NOT_FOUND or BINDING_FAILED
        """
        entry = TEMPLATES.get(template_name)
        if entry is None:
            raise RenderError(RenderErrorKind.TEMPLATE_NOT_FOUND, template_name)

        if isinstance(params, BaseModel):
            data = params.model_dump()
        elif isinstance(params, Mapping):
            data = dict(params)
        else:
            raise RenderError(
                RenderErrorKind.BINDING_FAILED,
                template_name,
                detail=f"params must be a mapping or model, got {type(params).__name__}",
            )

        try:
            return entry.params_model.model_validate(data)
        except ValidationError as e:
            first = e.errors()[0]
            field = _field_name(entry.params_model, first["loc"][0]) if first["loc"] else None
            raise RenderError(
                RenderErrorKind.BINDING_FAILED, template_name, field=field, detail=first["msg"]
            ) from e

    def render(self, template_name: str, params: Params) -> str:
        """
        Render the named template with ``params``.

        Args:
            template_name: One of create_vm, read_vm, delete_vm
            params: Mapping or model carrying the template's fields

        Returns:
            PowerShell script text

        Raises:
            RenderError: Unknown template or binding failure
        """
        bound = self.bind(template_name, params)
        entry = TEMPLATES[template_name]

        try:
            template = self.env.get_template(entry.path)
            script = template.render(vm=bound)
        except TemplateNotFound as e:
            raise RenderError(RenderErrorKind.TEMPLATE_NOT_FOUND, template_name, detail=str(e)) from e
        except UndefinedError as e:
            match = _UNDEFINED_NAME.search(str(e))
            field = next((g for g in match.groups() if g), None) if match else None
            raise RenderError(RenderErrorKind.BINDING_FAILED, template_name, field=field, detail=str(e)) from e

        logger.debug("Rendered %s (%d bytes)", template_name, len(script))
        return script
