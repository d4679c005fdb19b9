from pathlib import Path

import typer

from webprovision.commands.common import (
    EnvFileOption,
    HostOption,
    InventoryOption,
    console,
    fail,
    load_target,
)
from webprovision.errors import ProvisionError
from webprovision.project import stage_project
from webprovision.steps import STEPS


def export(
    dest: Path = typer.Argument(..., help="Directory to write the Ansible project into"),
    env_file: Path | None = EnvFileOption,
    inventory_path: Path | None = InventoryOption,
    hosts: list[str] | None = HostOption,
    force: bool = typer.Option(False, "--force", "-f", help="Write into a non-empty directory"),
):
    """Write a ready-to-run Ansible project for running the steps by hand."""
    settings, inventory = load_target(env_file, inventory_path, hosts)

    try:
        stage_project(dest, settings, inventory, overwrite=force)
    except ProvisionError as e:
        fail(e)

    console.print(f"[bold green]✓ Project written to[/bold green] [cyan]{dest}[/cyan]")
    console.print(
        "[yellow]vars/default.yml contains the account password; keep it private.[/yellow]"
    )
    console.print("\nRun the steps in order from that directory:")
    for step in STEPS:
        console.print(f"  ansible-playbook -i inventory {step.playbook}", highlight=False)
