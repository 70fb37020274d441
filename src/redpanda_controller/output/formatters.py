"""Table / JSON / YAML output dispatch."""

from __future__ import annotations

import json
from typing import Any

import yaml
from rich.console import Console

from redpanda_controller.models.cluster import RedpandaCluster

console = Console()


def _status_to_dict(cluster: RedpandaCluster) -> dict[str, Any]:
    return {
        "name": cluster.name,
        "namespace": cluster.namespace,
        "generation": cluster.generation,
        "managed": cluster.managed,
        "deleting": cluster.deleting,
        "status": cluster.status.to_dict(),
    }


def output_status(cluster: RedpandaCluster, fmt: str) -> None:
    if fmt == "json":
        console.print_json(json.dumps(_status_to_dict(cluster), indent=2))
    elif fmt == "yaml":
        console.print(yaml.dump(_status_to_dict(cluster), default_flow_style=False))
    else:
        from redpanda_controller.output.tables import conditions_table, status_panel
        console.print(status_panel(cluster))
        if cluster.status.conditions:
            console.print(conditions_table(cluster))
