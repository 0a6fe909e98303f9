"""``shipwright run REF``: execute the pipeline for one source reference."""

from __future__ import annotations

from typing import Optional

import typer

from shipwright.cli import context
from shipwright.config import Settings
from shipwright.core.orchestrator import Orchestrator
from shipwright.core.run_ledger import BuildNumberError
from shipwright.models.run import RunStatus
from shipwright.monitor.renderer import MonitorRenderer
from shipwright.observability.graphite import GraphiteReporter
from shipwright.routing.notifier import Notifier
from shipwright.routing.sinks.console import ConsoleSink
from shipwright.routing.sinks.graphite import GraphiteSink
from shipwright.routing.sinks.local_file import LocalFileSink


def build_notifier(settings: Settings) -> Notifier:
    """Console and local-file sinks always; Graphite when metrics are enabled."""
    sinks = [ConsoleSink(context.console), LocalFileSink(settings.notifications_path)]
    if settings.enable_metrics:
        reporter = GraphiteReporter(
            settings.graphite_host, settings.graphite_port, prefix=settings.metrics_prefix
        )
        sinks.append(GraphiteSink(reporter))
    return Notifier(sinks)


def run_cmd(
    source_ref: str = typer.Argument(
        ...,
        help="Branch, tag, or commit to build.",
    ),
    build_number: Optional[int] = typer.Option(
        None,
        "--build-number",
        "-b",
        min=1,
        help="Build number (image tag).  Defaults to one past the latest recorded build.",
    ),
    repo_url: Optional[str] = typer.Option(
        None,
        "--repo",
        "-r",
        help="Repository URL.  Overrides SHIPWRIGHT_REPO_URL.",
    ),
) -> None:
    """Checkout, build, test, package, image, and deploy one source reference.

    Exits 1 if any stage fails.
    """
    settings = context.get_settings()
    if repo_url:
        settings = settings.model_copy(update={"repo_url": repo_url})
    if not settings.repo_url:
        context.console.print("[bold red]No repository URL.[/bold red] Pass --repo or set SHIPWRIGHT_REPO_URL.")
        raise typer.Exit(code=1)

    ledger = context.open_ledger(settings)
    orchestrator = Orchestrator(
        settings.pipeline_config(),
        runner=context.get_runner(),
        ledger=ledger,
        notifier=build_notifier(settings),
    )

    number = build_number if build_number is not None else ledger.latest_build_number() + 1
    try:
        run = orchestrator.run(source_ref, number)
    except BuildNumberError as exc:
        context.console.print(f"[bold red]Rejected:[/bold red] {exc}")
        raise typer.Exit(code=1) from exc

    MonitorRenderer(context.console).print_run(run)
    if run.status != RunStatus.SUCCEEDED:
        raise typer.Exit(code=1)
