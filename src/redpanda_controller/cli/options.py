"""Shared CLI options."""

from __future__ import annotations

import typer

OutputOption = typer.Option("table", "--output", "-o", help="Output format: table, json, yaml")
NamespaceOption = typer.Option("default", "--namespace", "-n", help="Namespace of the Redpanda resource")
ContextOption = typer.Option(None, "--context", help="Kubernetes context name")
