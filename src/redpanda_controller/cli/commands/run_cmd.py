"""rpctl run - Start the operator."""

from __future__ import annotations

from typing import List, Optional

import kopf
import typer

app = typer.Typer()


@app.callback(invoke_without_command=True)
def run(
    namespace: Optional[List[str]] = typer.Option(
        None, "--namespace", "-n", help="Namespace to watch (repeatable, default: cluster-wide)",
    ),
    standalone: bool = typer.Option(True, help="Run without peering with other instances"),
) -> None:
    """Watch Redpanda resources and reconcile them until interrupted."""
    import redpanda_controller.operator  # noqa: F401  (registers the kopf handlers)

    kopf.run(
        standalone=standalone,
        clusterwide=not namespace,
        namespaces=namespace or [],
    )
