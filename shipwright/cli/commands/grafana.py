"""``shipwright configure-grafana``: provision the Graphite data source."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer

from shipwright.cli import context
from shipwright.observability.grafana import ConfigurationFailure, configure


def configure_grafana_cmd(
    backend_url: Optional[str] = typer.Option(
        None,
        "--backend-url",
        help="Graphite web URL as seen from Grafana.  Defaults to SHIPWRIGHT_GRAPHITE_URL.",
    ),
    provisioning_dir: Optional[Path] = typer.Option(
        None,
        "--provisioning-dir",
        help="Grafana provisioning/datasources directory.",
    ),
) -> None:
    """Declare Graphite as Grafana's default data source."""
    settings = context.get_settings()
    url = backend_url or settings.graphite_url
    target_dir = provisioning_dir or settings.grafana_provisioning_dir
    try:
        path = configure(url, target_dir)
    except ConfigurationFailure as exc:
        context.console.print(f"[bold red]Configuration failed:[/bold red] {exc}")
        raise typer.Exit(code=1) from exc
    context.console.print(f"[green]Graphite data source ({url}) written to[/green] {path}")
