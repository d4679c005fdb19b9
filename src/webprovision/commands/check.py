from pathlib import Path

from rich.markup import escape
from rich.table import Table
import typer

from webprovision.commands.common import (
    EnvFileOption,
    HostOption,
    InventoryOption,
    console,
    load_target,
)
from webprovision.preflight import run_preflight


def check(
    env_file: Path | None = EnvFileOption,
    inventory_path: Path | None = InventoryOption,
    hosts: list[str] | None = HostOption,
    ssh: bool = typer.Option(True, "--ssh/--no-ssh", help="Probe SSH access to each host"),
):
    """Check that provisioning can start: Ansible, SSH keys, host access."""
    settings, inventory = load_target(env_file, inventory_path, hosts)

    results = run_preflight(settings, inventory, check_ssh=ssh)

    table = Table(title="Preflight checks")
    table.add_column("Check", style="cyan")
    table.add_column("Status")
    table.add_column("Detail")
    for result in results:
        status = "[green]✓ pass[/green]" if result.passed else "[red]✗ fail[/red]"
        table.add_row(escape(result.name), status, escape(result.detail))
    console.print(table)

    if not all(result.passed for result in results):
        console.print("[bold red]Some checks failed.[/bold red]")
        raise typer.Exit(code=1)

    console.print("[bold green]✓ Ready to provision[/bold green]")
