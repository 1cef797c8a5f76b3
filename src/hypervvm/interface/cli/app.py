"""
CLI App - Main Entry Point

Global connection options live on the callback; each command fetches its
services from the Container stored on the typer context. Connection
settings resolve as config file < HYPERV_* environment < command line.
"""

import logging
from pathlib import Path
from typing import Optional

import typer

from hypervvm import __version__
from hypervvm.application.container import Container
from hypervvm.domain.models import AuthMethod
from hypervvm.infrastructure.logging_config import setup_logging

from .commands.render import script_render
from .commands.vm import vm_create, vm_delete, vm_read

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="hypervvm",
    help="🖥️ Hyper-V virtual machine lifecycle over WinRM",
    add_completion=False,
    rich_markup_mode="rich",
    no_args_is_help=True,
)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"hypervvm {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    ctx: typer.Context,
    host: Optional[str] = typer.Option(None, "--host", help="Hyper-V host. [env: HYPERV_HOST]"),
    port: Optional[int] = typer.Option(None, "--port", help="WinRM port (5985/5986 by default). [env: HYPERV_PORT]"),
    username: Optional[str] = typer.Option(None, "--username", "-u", help="Account name. [env: HYPERV_USERNAME]"),
    password: Optional[str] = typer.Option(None, "--password", help="Account password. [env: HYPERV_PASSWORD]"),
    https: Optional[bool] = typer.Option(None, "--https/--http", help="Use HTTPS. [env: HYPERV_HTTPS]"),
    insecure: Optional[bool] = typer.Option(
        None, "--insecure/--verify", help="Skip certificate verification. [env: HYPERV_INSECURE]"
    ),
    tls_server_name: Optional[str] = typer.Option(
        None, "--tls-server-name", help="Name expected on the host certificate. [env: HYPERV_TLS_SERVER_NAME]"
    ),
    ca_cert: Optional[str] = typer.Option(None, "--ca-cert", help="CA bundle path. [env: HYPERV_CACERT]"),
    ca_key: Optional[str] = typer.Option(None, "--ca-key", help="Client certificate key path. [env: HYPERV_CAKEY]"),
    cert: Optional[str] = typer.Option(None, "--cert", help="Client certificate path. [env: HYPERV_CERT]"),
    timeout: Optional[int] = typer.Option(
        None, "--timeout", help="Seconds allowed per operation. [env: HYPERV_TIMEOUT]"
    ),
    auth: Optional[AuthMethod] = typer.Option(None, "--auth", help="Authentication method. [env: HYPERV_AUTH]"),
    config: Optional[Path] = typer.Option(
        None, "--config", "-c", help="JSON/JSONC file with connection settings.", dir_okay=False
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging."),
    log_file: Optional[str] = typer.Option(None, "--log-file", help="Also write a debug log to this file."),
    version: bool = typer.Option(
        False, "--version", callback=_version_callback, is_eager=True, help="Show version and exit."
    ),
):
    """
    🖥️ [bold]hypervvm[/bold] - manage Hyper-V virtual machines over WinRM

    Scripts are rendered locally from templates, executed on the host with
    PowerShell and the resulting JSON record is decoded and shown.
    """
    setup_logging(logging.DEBUG if verbose else logging.WARNING, log_file)

    overrides = {
        "host": host,
        "port": port,
        "username": username,
        "password": password,
        "https": https,
        "insecure": insecure,
        "tls_server_name": tls_server_name,
        "ca_cert": ca_cert,
        "ca_key": ca_key,
        "cert": cert,
        "timeout": timeout,
        "auth_method": auth,
    }
    ctx.obj = Container(config_path=config, overrides=overrides)


app.command("create")(vm_create)
app.command("read")(vm_read)
app.command("delete")(vm_delete)
app.command("render")(script_render)


def main() -> None:
    """Console script entry point."""
    app()
