"""
Render Command - print a lifecycle script without connecting.

Useful for reviewing exactly what would run on the host.
"""

import logging
from typing import List

import typer

from hypervvm.application.container import Container
from hypervvm.infrastructure.scripts import TEMPLATES

from .vm import cli_errors

logger = logging.getLogger(__name__)


def parse_params(pairs: List[str]) -> dict:
    """Turn repeated key=value options into a mapping."""
    params = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key.strip():
            raise typer.BadParameter(f"'{pair}' is not key=value", param_hint="--param")
        params[key.strip()] = value
    return params


def script_render(
    ctx: typer.Context,
    template: str = typer.Argument(..., help=f"One of: {', '.join(sorted(TEMPLATES))}."),
    param: List[str] = typer.Option([], "--param", "-p", help="Template parameter as key=value (repeatable)."),
):
    """Render a lifecycle script and print it."""
    container: Container = ctx.obj
    params = parse_params(param)

    with cli_errors("render"):
        script = container.renderer.render(template, params)
    typer.echo(script, nl=False)
