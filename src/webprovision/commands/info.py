import json as json_lib
from pathlib import Path

from rich.markup import escape
from rich.table import Table
import typer

from webprovision.commands.common import EnvFileOption, console, fail
from webprovision.config import load_settings
from webprovision.errors import ConfigurationError
from webprovision.steps import STEPS


def steps():
    """List the provisioning steps in run order."""
    table = Table(title="Provisioning steps")
    table.add_column("#", style="dim")
    table.add_column("Step", style="cyan")
    table.add_column("Playbook", style="magenta")
    table.add_column("Description")

    for index, step in enumerate(STEPS, start=1):
        table.add_row(str(index), step.name, step.playbook, step.description)

    console.print(table)


def config(
    env_file: Path | None = EnvFileOption,
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """Show the resolved playbook variables (password masked)."""
    try:
        settings = load_settings(env_file)
    except ConfigurationError as e:
        fail(e)

    variables = settings.masked()
    if json_output:
        typer.echo(json_lib.dumps(variables, indent=2))
        return

    table = Table(title="Playbook variables")
    table.add_column("Variable", style="cyan")
    table.add_column("Value", style="green")
    for key, value in variables.items():
        table.add_row(key, escape(str(value)))
    console.print(table)
