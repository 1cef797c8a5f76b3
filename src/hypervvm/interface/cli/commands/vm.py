"""
VM Commands - create, read and delete against the configured host.
"""

import logging
import re
from contextlib import contextmanager
from typing import Iterator, Optional

import typer

from hypervvm.application.container import Container
from hypervvm.domain.errors import EXIT_NOT_FOUND, HyperVError, ScriptError
from hypervvm.domain.models import VirtualMachine

from ..formatters import display_error, display_result

logger = logging.getLogger(__name__)

_MEMORY = re.compile(r"^\s*(\d+)\s*([KMGT]?B?)?\s*$", re.IGNORECASE)
_UNITS = {"": 1, "K": 1024, "M": 1024**2, "G": 1024**3, "T": 1024**4}


def parse_memory(value: str) -> int:
    """Parse '2GB', '512MB' or a plain byte count into bytes."""
    match = _MEMORY.match(value)
    if not match:
        raise typer.BadParameter(f"'{value}' is not a memory size (e.g. 2GB, 512MB, 1073741824)")
    unit = (match.group(2) or "").upper().rstrip("B")
    return int(match.group(1)) * _UNITS[unit]


@contextmanager
def cli_errors(action: str) -> Iterator[None]:
    """Convert engine and configuration errors into a diagnostic and exit status."""
    try:
        yield
    except ScriptError as e:
        logger.error("%s failed: %s", action, e)
        display_error(e)
        raise typer.Exit(EXIT_NOT_FOUND if e.not_found else 1) from e
    except (HyperVError, ValueError, FileNotFoundError) as e:
        logger.error("%s failed: %s", action, e)
        display_error(e)
        raise typer.Exit(1) from e


def vm_create(
    ctx: typer.Context,
    name: str = typer.Option(..., "--name", "-n", help="VM name."),
    generation: int = typer.Option(2, "--generation", "-g", help="Hardware generation (1 or 2)."),
    memory: str = typer.Option("1GB", "--memory", "-m", help="Startup memory, e.g. 2GB or 512MB."),
    path: Optional[str] = typer.Option(None, "--path", help="Storage path for the VM files."),
    switch: Optional[str] = typer.Option(None, "--switch", help="Virtual switch to connect."),
    boot_device: Optional[str] = typer.Option(None, "--boot-device", help="Boot device (CD, VHD, NetworkAdapter, ...)."),
    prerelease: bool = typer.Option(False, "--prerelease", help="Use the prerelease configuration version."),
    as_json: bool = typer.Option(False, "--json", help="Print the created record as JSON."),
):
    """
    Create a virtual machine on the host.

    The host assigns the identifier; use it with [bold]read[/bold] and
    [bold]delete[/bold].
    """
    container: Container = ctx.obj
    vm = VirtualMachine(
        name=name,
        generation=generation,
        memory_startup_bytes=parse_memory(memory),
        path=path or "",
        switch_name=switch or "",
        boot_device=boot_device or "",
        prerelease=prerelease,
    )

    with cli_errors("create"):
        result = container.lifecycle_service.create_vm(vm)
    display_result(result, as_json=as_json)


def vm_read(
    ctx: typer.Context,
    vm_id: str = typer.Argument(..., metavar="VMID", help="Identifier returned by create."),
    as_json: bool = typer.Option(False, "--json", help="Print the record as JSON."),
):
    """Show the current state of a virtual machine."""
    container: Container = ctx.obj
    with cli_errors("read"):
        result = container.lifecycle_service.read_vm(vm_id)
    display_result(result, as_json=as_json)


def vm_delete(
    ctx: typer.Context,
    vm_id: str = typer.Argument(..., metavar="VMID", help="Identifier returned by create."),
):
    """Turn off and remove a virtual machine."""
    container: Container = ctx.obj
    with cli_errors("delete"):
        result = container.lifecycle_service.delete_vm(vm_id)
    display_result(result)
