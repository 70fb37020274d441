"""rpctl status <name> - Show the reconciled status of a Redpanda."""

from __future__ import annotations

from typing import Optional

import typer

from redpanda_controller.cli.options import ContextOption, NamespaceOption, OutputOption
from redpanda_controller.core.k8s_client import K8sClient
from redpanda_controller.core.reconciler import Reconciler
from redpanda_controller.output.formatters import output_status

app = typer.Typer()


@app.callback(invoke_without_command=True)
def status(
    name: str = typer.Argument(help="Redpanda name"),
    output: str = OutputOption,
    namespace: str = NamespaceOption,
    context: Optional[str] = ContextOption,
) -> None:
    """Show readiness, dependents and conditions of a Redpanda."""
    cluster = Reconciler(K8sClient(context=context)).fetch(namespace, name)
    if cluster is None:
        typer.echo(f"Redpanda '{namespace}/{name}' not found.", err=True)
        raise typer.Exit(code=1)
    output_status(cluster, output)
