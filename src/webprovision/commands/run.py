from pathlib import Path

from rich.table import Table
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
from webprovision.pipeline import PipelineReport, provision
from webprovision.steps import select_steps


def _print_report(report: PipelineReport) -> None:
    table = Table(title=f"Run {report.run_id}")
    table.add_column("Step", style="cyan")
    table.add_column("Status")
    table.add_column("Duration", justify="right")
    table.add_column("Hosts")

    for result in report.results:
        if result.success:
            status = "[green]✓ ok[/green]"
        elif result.timed_out:
            status = "[red]✗ timeout[/red]"
        else:
            status = f"[red]✗ failed ({result.exit_code})[/red]"
        hosts = ", ".join(
            f"{host} ok={counts.ok} changed={counts.changed} failed={counts.failed}"
            for host, counts in result.recap.items()
        )
        table.add_row(result.step, status, f"{result.duration_sec:.1f}s", hosts or "-")

    for name in report.skipped:
        table.add_row(name, "[dim]skipped[/dim]", "-", "-")

    console.print(table)


def run(
    env_file: Path | None = EnvFileOption,
    inventory_path: Path | None = InventoryOption,
    hosts: list[str] | None = HostOption,
    only: list[str] | None = typer.Option(None, "--only", help="Run only this step; repeatable"),
    start_at: str | None = typer.Option(None, "--start-at", help="Resume from this step"),
    check_mode: bool = typer.Option(False, "--check", help="Ansible dry run, change nothing"),
    verbose: int = typer.Option(0, "--verbose", "-v", count=True, help="Ansible verbosity"),
    limit: str | None = typer.Option(None, "--limit", help="Restrict to a host pattern"),
    timeout: int | None = typer.Option(None, "--timeout", min=1, help="Per-step timeout (s)"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """Provision the inventory: run the steps in order, stop at the first failure."""
    settings, inventory = load_target(env_file, inventory_path, hosts)

    try:
        selected = select_steps(only=only, start_at=start_at)
    except (ProvisionError, ValueError) as e:
        fail(e)

    if not json_output:
        console.print(
            f"Provisioning [cyan]{', '.join(inventory.hosts)}[/cyan] "
            f"for [magenta]{settings.app_main_domain}[/magenta]"
            + (" [yellow](check mode)[/yellow]" if check_mode else "")
        )

    try:
        report = provision(
            settings,
            inventory,
            selected,
            check_mode=check_mode,
            verbosity=verbose,
            limit=limit,
            timeout=timeout,
        )
    except ProvisionError as e:
        fail(e)

    if json_output:
        typer.echo(report.model_dump_json(indent=2))
    else:
        _print_report(report)
        failed = next((r for r in report.results if not r.success), None)
        if failed is not None:
            console.print(f"\n[bold red]Step {failed.step} failed:[/bold red]")
            console.print(failed.output, markup=False, highlight=False)
        else:
            console.print("[bold green]✓ All steps completed[/bold green]")

    if not report.success:
        raise typer.Exit(code=1)
