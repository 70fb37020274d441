"""rpctl reconcile <name> - Run a single reconcile invocation."""

from __future__ import annotations

from typing import Optional

import typer
from kubernetes.client import ApiException
from rich.console import Console

from redpanda_controller.cli.options import ContextOption, NamespaceOption
from redpanda_controller.core.k8s_client import K8sClient
from redpanda_controller.core.reconciler import Reconciler
from redpanda_controller.errors import DeletionPending, ReconcileError

app = typer.Typer()
console = Console()


@app.callback(invoke_without_command=True)
def reconcile(
    name: str = typer.Argument(help="Redpanda name"),
    namespace: str = NamespaceOption,
    context: Optional[str] = ContextOption,
) -> None:
    """Reconcile a Redpanda once and report the outcome."""
    reconciler = Reconciler(K8sClient(context=context))
    try:
        result = reconciler.reconcile(namespace, name)
    except DeletionPending as e:
        console.print(f"[yellow]Deletion pending:[/yellow] {e}, retry in {e.delay:g}s")
        return
    except (ReconcileError, ApiException) as e:
        typer.echo(f"Reconcile of '{namespace}/{name}' failed: {e}", err=True)
        raise typer.Exit(code=1)

    if result.requeue:
        console.print(f"[yellow]Not ready yet[/yellow], requeue after {result.requeue_after:g}s")
    else:
        console.print(f"[green]Redpanda '{namespace}/{name}' reconciled.[/green]")
