"""Main Typer application: imports and registers all CLI commands.

Entry point: ``shipwright`` (configured via pyproject.toml scripts).
"""

from __future__ import annotations

import typer

from shipwright.cli.commands.grafana import configure_grafana_cmd
from shipwright.cli.commands.history import history_cmd, show_cmd
from shipwright.cli.commands.provision import provision_cmd
from shipwright.cli.commands.rollback import rollback_cmd
from shipwright.cli.commands.run import run_cmd
from shipwright.cli.commands.up import up_cmd

app = typer.Typer(
    name="shipwright",
    help="Shipwright: build, package, and deploy the inventory service; provision its host.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)

# Register subcommands
app.command(name="run", help="Run the pipeline for a source reference.")(run_cmd)
app.command(name="provision", help="Ensure the host toolchain is installed.")(provision_cmd)
app.command(name="configure-grafana", help="Provision Graphite as Grafana's default data source.")(configure_grafana_cmd)
app.command(name="rollback", help="Redeploy an earlier successful build.")(rollback_cmd)
app.command(name="up", help="Start the compose stack and wait for the application.")(up_cmd)
app.command(name="history", help="List recent pipeline runs.")(history_cmd)
app.command(name="show", help="Show one run from the ledger.")(show_cmd)


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
