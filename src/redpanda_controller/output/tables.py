"""Rich table builders for the status command."""

from __future__ import annotations

from rich.panel import Panel
from rich.table import Table

from redpanda_controller.models.cluster import RedpandaCluster
from redpanda_controller.output.themes import styled_condition, styled_ready


def status_panel(cluster: RedpandaCluster) -> Panel:
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column("Key", style="bold cyan", no_wrap=True)
    table.add_column("Value")

    status = cluster.status
    table.add_row("Redpanda", cluster.name)
    table.add_row("Namespace", cluster.namespace)
    table.add_row("Generation", f"{cluster.generation} (observed {status.observed_generation})")
    table.add_row("Chart Version", cluster.chart_ref.chart_version or "-")
    table.add_row("HelmRepository", status.helm_repository or "-")
    table.add_row("Repository Ready", styled_ready(status.helm_repository_ready))
    table.add_row("HelmRelease", status.helm_release or "-")
    table.add_row("Release Ready", styled_ready(status.helm_release_ready))
    table.add_row("Managed", "yes" if cluster.managed else "[yellow]no[/yellow]")
    table.add_row("Migration", "enabled" if cluster.migration_enabled else "disabled")
    if status.last_attempted_revision:
        table.add_row("Revision", status.last_attempted_revision)
    if cluster.deleting:
        table.add_row("Deleting", f"[magenta]since {cluster.deletion_timestamp}[/magenta]")

    return Panel(table, title=f"[bold]{cluster.key}[/bold]", expand=False)


def conditions_table(cluster: RedpandaCluster) -> Table:
    table = Table(title="Conditions", expand=True)
    table.add_column("Type", style="cyan", no_wrap=True)
    table.add_column("Status", no_wrap=True)
    table.add_column("Reason", style="magenta")
    table.add_column("Message", max_width=60)
    table.add_column("Last Transition", style="dim", no_wrap=True)

    for cond in cluster.status.conditions:
        table.add_row(
            cond.get("type", ""),
            styled_condition(cond.get("status", "")),
            cond.get("reason", ""),
            cond.get("message", ""),
            cond.get("lastTransitionTime", ""),
        )
    return table
