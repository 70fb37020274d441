"""rpctl migrate <name> - Hand legacy resources over to the HelmRelease."""

from __future__ import annotations

from typing import Optional

import typer
from rich.console import Console

from redpanda_controller.cli.options import ContextOption, NamespaceOption
from redpanda_controller.core.k8s_client import K8sClient
from redpanda_controller.core.reconciler import Reconciler
from redpanda_controller.errors import MigrationError

app = typer.Typer()
console = Console()


@app.callback(invoke_without_command=True)
def migrate(
    name: str = typer.Argument(help="Redpanda name"),
    namespace: str = NamespaceOption,
    context: Optional[str] = ContextOption,
) -> None:
    """Run every migration step once, reporting the ones that failed."""
    reconciler = Reconciler(K8sClient(context=context))
    try:
        reconciler.migrate(namespace, name)
    except LookupError as e:
        typer.echo(str(e), err=True)
        raise typer.Exit(code=1)
    except MigrationError as e:
        console.print(f"[red]{len(e.failures)} step(s) failed:[/red]")
        for step, err in e.failures:
            console.print(f"  [bold]{step}[/bold]: {err}")
        raise typer.Exit(code=1)
    console.print("[green]Migration pass complete.[/green]")
