"""``shipwright history`` and ``shipwright show BUILD``: read the Run Ledger."""

from __future__ import annotations

import typer

from shipwright.cli import context
from shipwright.monitor.renderer import MonitorRenderer


def history_cmd(
    limit: int = typer.Option(
        20,
        "--limit",
        "-n",
        min=1,
        help="Number of most recent runs to show.",
    ),
) -> None:
    """List recent pipeline runs, newest first."""
    settings = context.get_settings()
    if not settings.ledger_path.exists():
        context.console.print("[dim]No runs recorded yet.[/dim]")
        return
    runs = context.open_ledger(settings).list_runs(limit=limit)
    if not runs:
        context.console.print("[dim]No runs recorded yet.[/dim]")
        return
    context.console.print(MonitorRenderer(context.console).render_history(runs))


def show_cmd(
    build_number: int = typer.Argument(
        ...,
        help="Build number to show.",
    ),
) -> None:
    """Show one run and every recorded transition."""
    settings = context.get_settings()
    if not settings.ledger_path.exists():
        context.console.print(f"[bold red]Ledger not found:[/bold red] {settings.ledger_path}")
        raise typer.Exit(code=1)
    ledger = context.open_ledger(settings)
    summary = ledger.get_run(build_number)
    if summary is None:
        context.console.print(f"[bold red]Build not found:[/bold red] {build_number}")
        raise typer.Exit(code=1)
    renderer = MonitorRenderer(context.console)
    context.console.print(
        renderer.render_transitions(summary, ledger.get_transitions(build_number))
    )
