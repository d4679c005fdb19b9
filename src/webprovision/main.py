import typer

from webprovision.commands.check import check
from webprovision.commands.common import fail
from webprovision.commands.export import export
from webprovision.commands.info import config, steps
from webprovision.commands.run import run
from webprovision.errors import ConfigurationError
from webprovision.logging_config import setup_logging

app = typer.Typer(
    name="webprovision",
    help="Provision an Ubuntu web server (Nginx, Docker, Let's Encrypt) with Ansible",
    add_completion=False,
    no_args_is_help=True,
)


@app.callback()
def callback(
    log_format: str | None = typer.Option(
        None, "--log-format", help="console or json (defaults to LOG_FORMAT)"
    ),
    log_level: str | None = typer.Option(
        None, "--log-level", help="DEBUG, INFO, WARNING, ERROR (defaults to LOG_LEVEL)"
    ),
):
    """
    webprovision CLI
    """
    if log_format is not None and log_format not in ("console", "json"):
        raise typer.BadParameter("must be 'console' or 'json'", param_hint="--log-format")
    try:
        setup_logging(log_format=log_format, log_level=log_level)
    except ConfigurationError as e:
        fail(e)


app.command()(steps)
app.command()(config)
app.command()(check)
app.command()(export)
app.command()(run)


if __name__ == "__main__":
    app()
