"""``shipwright rollback [BUILD]``: redeploy an earlier successful build."""

from __future__ import annotations

from typing import Optional

import typer

from shipwright.cli import context
from shipwright.core.orchestrator import Orchestrator
from shipwright.stages.base import StageFailure
from shipwright.stages.deploy import RollbackError


def rollback_cmd(
    build_number: Optional[int] = typer.Argument(
        None,
        min=1,
        help="Build number whose image should be deployed again.  "
        "Defaults to the last successful build before the latest run.",
    ),
) -> None:
    """Re-run the deployment with the image of an earlier successful build.

    Nothing is rebuilt; the image tagged with the build number must still exist.
    """
    settings = context.get_settings()
    orchestrator = Orchestrator(
        settings.pipeline_config(),
        runner=context.get_runner(),
        ledger=context.open_ledger(settings),
    )
    try:
        image = orchestrator.rollback(build_number)
    except RollbackError as exc:
        context.console.print(f"[bold red]Rollback refused:[/bold red] {exc}")
        raise typer.Exit(code=1) from exc
    except StageFailure as exc:
        context.console.print(f"[bold red]Rollback failed:[/bold red] {exc.reason}")
        if exc.output:
            context.console.print(exc.output, markup=False, highlight=False)
        raise typer.Exit(code=1) from exc
    context.console.print(f"[bold green]Deployed {image.reference}[/bold green]")
