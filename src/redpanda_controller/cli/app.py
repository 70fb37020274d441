"""Root Typer application, mounts sub-commands."""

from __future__ import annotations

import logging

import typer
from rich.logging import RichHandler

from redpanda_controller.config.settings import settings

app = typer.Typer(
    name="rpctl",
    help="Redpanda controller - reconcile Redpanda resources into Flux HelmReleases.",
    no_args_is_help=True,
)


@app.callback()
def main_callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    level = logging.DEBUG if verbose else settings.log_level.upper()
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
    )


def _register_commands() -> None:
    from redpanda_controller.cli.commands.run_cmd import app as run_app
    from redpanda_controller.cli.commands.reconcile_cmd import app as reconcile_app
    from redpanda_controller.cli.commands.migrate_cmd import app as migrate_app
    from redpanda_controller.cli.commands.status_cmd import app as status_app

    app.add_typer(run_app, name="run", help="Run the operator")
    app.add_typer(reconcile_app, name="reconcile", help="Reconcile one Redpanda once")
    app.add_typer(migrate_app, name="migrate", help="Run one migration pass for a Redpanda")
    app.add_typer(status_app, name="status", help="Show Redpanda status")


_register_commands()


def main() -> None:
    app()
