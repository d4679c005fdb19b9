"""Helpers shared by the CLI commands."""

from pathlib import Path
from typing import NoReturn

from rich.console import Console
from rich.markup import escape
import typer

from webprovision.config import ProvisionSettings, load_settings
from webprovision.errors import ProvisionError
from webprovision.inventory import Inventory, load_inventory

console = Console()

# Exit code for problems found before any playbook ran
USAGE_ERROR = 2


def fail(error: Exception | str, code: int = USAGE_ERROR) -> NoReturn:
    console.print(
        f"[bold red]Error:[/bold red] {escape(str(error))}", highlight=False, soft_wrap=True
    )
    raise typer.Exit(code=code)


def load_target(
    env_file: Path | None,
    inventory_path: Path | None,
    hosts: list[str] | None,
) -> tuple[ProvisionSettings, Inventory]:
    """Resolve settings and inventory from command options.

    ``--host`` options take precedence over the inventory file.
    """
    try:
        settings = load_settings(env_file)
        if hosts:
            inventory = Inventory.from_hosts(hosts)
        else:
            inventory = load_inventory(inventory_path or settings.inventory_path)
    except ProvisionError as e:
        fail(e)
    return settings, inventory


EnvFileOption = typer.Option(
    None, "--env-file", "-e", help="Environment file (defaults to ./.env if present)"
)
InventoryOption = typer.Option(
    None, "--inventory", "-i", help="Inventory file (defaults to INVENTORY_PATH)"
)
HostOption = typer.Option(
    None, "--host", "-H", help="Target host; repeatable, replaces the inventory file"
)
