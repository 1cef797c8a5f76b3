"""
CLI output formatters.

Rich tables for people, JSON for scripts. Everything that is not the
requested result goes to stderr so ``--json`` output stays parseable.
"""

import json

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from hypervvm.domain.errors import HyperVError, ScriptError
from hypervvm.domain.models import OperationResult, VirtualMachine

console = Console()
err_console = Console(stderr=True)


def _format_memory(value: int) -> str:
    """Bytes as MB/GB for the table view."""
    if value and value % (1024**3) == 0:
        return f"{value // 1024**3} GB"
    if value and value % (1024**2) == 0:
        return f"{value // 1024**2} MB"
    return f"{value} B"


def display_vm(vm: VirtualMachine, title: str = "Virtual Machine") -> None:
    """Print one VM as a two-column table."""
    table = Table(title=title, show_header=False)
    table.add_column("Property", style="cyan", no_wrap=True)
    table.add_column("Value")

    table.add_row("VMId", vm.vm_id or "[dim]-[/dim]")
    table.add_row("Name", vm.name)
    table.add_row("Generation", str(vm.generation))
    table.add_row("Memory", _format_memory(vm.memory_startup_bytes))
    table.add_row("Path", vm.path or "[dim]-[/dim]")
    table.add_row("Switch", vm.switch_name or "[dim]-[/dim]")
    table.add_row("Boot device", vm.boot_device or "[dim]-[/dim]")
    table.add_row("Prerelease", "yes" if vm.prerelease else "no")

    console.print(table)


def display_result(result: OperationResult, as_json: bool = False) -> None:
    """Print a lifecycle result and its warning, if any."""
    if result.warning:
        err_console.print(f"[yellow]⚠️ Warning:[/yellow] {escape(result.warning)}", highlight=False)

    if as_json:
        record = result.resource.to_record() if result.resource is not None else {}
        typer.echo(json.dumps(record, indent=2))
        return

    if result.resource is not None:
        display_vm(result.resource, title=f"{result.operation.capitalize()} result")
    else:
        console.print(f"[green]✅ {result.operation.capitalize()} completed[/green]")


def display_error(error: Exception) -> None:
    """Print a failure as a single red diagnostic line."""
    label = "Not found" if isinstance(error, ScriptError) and error.not_found else "Error"
    err_console.print(f"[red]❌ {label}:[/red] {escape(str(error))}", highlight=False)
    if isinstance(error, HyperVError) and error.__cause__ is not None:
        err_console.print(f"[dim]   caused by {type(error.__cause__).__name__}[/dim]", highlight=False)
