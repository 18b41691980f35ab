"""Main CLI entry point for tainter."""

from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from tainter.exceptions import ConfigurationError, KubernetesError
from tainter.logging_config import get_logger, setup_logging

app = typer.Typer(
    name="tainter",
    help="Taint Kubernetes nodes based on their reported conditions",
    add_completion=False,
)

console = Console()
logger = get_logger(__name__)

DEFAULT_CONFIG_FILE = "settings/tainter.yaml"


# Global callback to set up logging
@app.callback()
def main_callback(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
    log_file: str | None = typer.Option(None, "--log-file", help="Path to log file"),
):
    """Global options for all commands."""
    log_path = Path(log_file) if log_file else None
    ctx.obj = {"verbose": verbose, "log_file": log_path}
    setup_logging(verbose=verbose, log_file=log_path)
    logger.debug("Logging initialized")


def _load_settings(config_file: str):
    from tainter.models.settings import Settings

    try:
        return Settings.load(config_file)
    except ConfigurationError as e:
        console.print(f"[red]Configuration Error:[/red] {escape(e.message)}")
        if e.details:
            console.print(f"\n{escape(e.details)}")
        raise typer.Exit(code=1)


@app.command()
def version() -> None:
    """Show version information."""
    from tainter import __version__

    typer.echo(f"Tainter version {__version__}")


@app.command()
def check_config(
    config_file: str = typer.Option(
        DEFAULT_CONFIG_FILE, "--config-file", "-c", help="Path to the settings file"
    ),
) -> None:
    """
    Validate a settings file and show the matchers it defines.

    Every condition pattern must be a valid regular expression and every taint
    needs a key, a value and a known effect.
    """
    settings = _load_settings(config_file)

    table = Table(title="Matchers")
    table.add_column("#", style="dim")
    table.add_column("Taint", style="cyan")
    table.add_column("Condition type", style="magenta")
    table.add_column("Condition status", style="green")

    for index, matcher in enumerate(settings.reconciler.matchers, start=1):
        taint = f"{matcher.taint.key}={matcher.taint.value}:{matcher.taint.effect}"
        types = "\n".join(c.type_ for c in matcher.conditions) or "-"
        statuses = "\n".join(c.status for c in matcher.conditions) or "-"
        table.add_row(str(index), taint, types, statuses)

    console.print(table)
    console.print(f"\n[bold]Server:[/bold] {settings.server.host}:{settings.server.port}")
    console.print(f"[bold]Log level:[/bold] {settings.log.max_level}")
    console.print(f"[green]✓[/green] {config_file} is valid")


@app.command()
def run(
    ctx: typer.Context,
    config_file: str = typer.Option(
        DEFAULT_CONFIG_FILE, "--config-file", "-c", help="Path to the settings file"
    ),
) -> None:
    """
    Watch nodes and add the configured taints to the ones that match.

    Runs until interrupted. The liveness endpoint is served on the host and
    port from the settings file.
    """
    from tainter.health import HealthServer
    from tainter.kube import NodeClient, core_v1, load_kube_config
    from tainter.reconciler import Reconciler
    from tainter.watcher import NodeWatcher

    settings = _load_settings(config_file)

    options = ctx.obj or {}
    setup_logging(
        level=settings.log.max_level,
        log_file=options.get("log_file"),
        verbose=options.get("verbose", False),
    )
    logger.info(f"Starting Tainter with settings from {config_file}")

    try:
        load_kube_config()
    except KubernetesError as e:
        logger.error(e.message)
        console.print(f"[red]Kubernetes Error:[/red] {escape(e.message)}")
        if e.details:
            console.print(f"\n{escape(e.details)}")
        raise typer.Exit(code=1)

    health_server = HealthServer(settings.server.host, settings.server.port)
    health_server.start()

    api = core_v1()
    watcher = NodeWatcher(api)
    reconciler = Reconciler(NodeClient(api), settings.build_matchers())

    try:
        reconciler.run(watcher)
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")
        console.print("\n[yellow]Tainter interrupted by user[/yellow]")
        raise typer.Exit(code=130)
    finally:
        reconciler.stop()
        watcher.stop()
        health_server.stop()
