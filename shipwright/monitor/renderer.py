"""Rich terminal renderer for pipeline runs.

Color scheme
------------
- green     : SUCCEEDED
- red       : FAILED
- yellow    : RUNNING
- dim       : PENDING
- magenta   : SKIPPED
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.console import Console, Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from shipwright.models.run import RunStatus
from shipwright.models.stages import StageStatus

if TYPE_CHECKING:
    from shipwright.core.run_ledger import RunSummary, TransitionRecord
    from shipwright.models.run import PipelineRun
    from shipwright.models.tools import ToolReport


# ---------------------------------------------------------------------------
# Status -> Rich markup
# ---------------------------------------------------------------------------

_STAGE_LABELS: dict[StageStatus, str] = {
    StageStatus.SUCCEEDED: "[green]SUCCEEDED[/green]",
    StageStatus.FAILED: "[bold red]FAILED[/bold red]",
    StageStatus.RUNNING: "[yellow]RUNNING[/yellow]",
    StageStatus.PENDING: "[dim]PENDING[/dim]",
    StageStatus.SKIPPED: "[magenta]SKIPPED[/magenta]",
}

_RUN_LABELS: dict[RunStatus, str] = {
    RunStatus.SUCCEEDED: "[bold green]SUCCEEDED[/bold green]",
    RunStatus.FAILED: "[bold red]FAILED[/bold red]",
    RunStatus.RUNNING: "[yellow]RUNNING[/yellow]",
    RunStatus.PENDING: "[dim]PENDING[/dim]",
}


def _fmt_seconds(value: float | None) -> str:
    return "-" if value is None else f"{value:.1f}s"


class MonitorRenderer:
    """Renders runs and ledger rows as Rich terminal output.

    Parameters
    ----------
    console:
        Rich Console instance.  A new one is created if not provided.
    """

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    # ------------------------------------------------------------------
    # A single run
    # ------------------------------------------------------------------

    def render_run(self, run: PipelineRun) -> Panel:
        table = Table(show_header=True, header_style="bold", expand=True)
        table.add_column("#", justify="right", width=3)
        table.add_column("Stage", style="cyan")
        table.add_column("Status", justify="center")
        table.add_column("Duration", justify="right")
        table.add_column("Error", overflow="fold")

        for i, stage in enumerate(run.stages, start=1):
            table.add_row(
                str(i),
                stage.display_name,
                _STAGE_LABELS[stage.status],
                _fmt_seconds(stage.duration_seconds),
                stage.error or "",
            )

        summary = [
            f"[bold]Build:[/bold] #{run.build_number}",
            f"[bold]Ref:[/bold] {run.source_ref}",
            f"[bold]Status:[/bold] {_RUN_LABELS[run.status]}",
        ]
        if run.commit:
            summary.append(f"[bold]Commit:[/bold] {run.commit[:12]}")
        if run.image:
            summary.append(f"[bold]Image:[/bold] {run.image.reference}")
        if run.cleanup_error:
            summary.append(f"[yellow][bold]Cleanup:[/bold] {run.cleanup_error}[/yellow]")
        if run.notification_error:
            summary.append(f"[yellow][bold]Notification:[/bold] {run.notification_error}[/yellow]")

        return Panel(
            Group(table, Text(""), Text.from_markup("  |  ".join(summary))),
            title=f"[bold]Pipeline build #{run.build_number}[/bold]",
            border_style="green" if run.status == RunStatus.SUCCEEDED else "red",
        )

    def print_run(self, run: PipelineRun) -> None:
        self.console.print(self.render_run(run))

    # ------------------------------------------------------------------
    # Ledger views
    # ------------------------------------------------------------------

    def render_history(self, runs: list[RunSummary]) -> Table:
        table = Table(title="Pipeline history", show_header=True, header_style="bold")
        table.add_column("Build", justify="right", style="cyan")
        table.add_column("Ref")
        table.add_column("Status", justify="center")
        table.add_column("Image")
        table.add_column("Failed stage")
        table.add_column("Started (UTC)")

        for summary in runs:
            table.add_row(
                str(summary.build_number),
                summary.source_ref,
                _RUN_LABELS[summary.status],
                summary.image_ref or "-",
                summary.failed_stage or "-",
                summary.started_at.strftime("%Y-%m-%d %H:%M:%S"),
            )
        return table

    def render_transitions(self, summary: RunSummary, transitions: list[TransitionRecord]) -> Panel:
        table = Table(show_header=True, header_style="bold", expand=True)
        table.add_column("Time (UTC)")
        table.add_column("Subject", style="cyan")
        table.add_column("Transition")
        table.add_column("Detail", overflow="fold")
        for record in transitions:
            table.add_row(
                record.timestamp_utc.strftime("%H:%M:%S"),
                record.subject,
                record.transition,
                record.detail,
            )

        header = [
            f"[bold]Ref:[/bold] {summary.source_ref}",
            f"[bold]Status:[/bold] {_RUN_LABELS[summary.status]}",
            f"[bold]Image:[/bold] {summary.image_ref or '-'}",
        ]
        if summary.commit:
            header.append(f"[bold]Commit:[/bold] {summary.commit[:12]}")
        return Panel(
            Group(Text.from_markup("  |  ".join(header)), Text(""), table),
            title=f"[bold]Build #{summary.build_number}[/bold]",
        )

    # ------------------------------------------------------------------
    # Provisioning
    # ------------------------------------------------------------------

    def render_tool_reports(self, reports: list[ToolReport]) -> Table:
        table = Table(title="Toolchain", show_header=True, header_style="bold")
        table.add_column("Tool", style="cyan")
        table.add_column("Outcome")
        table.add_column("Version")
        for report in reports:
            table.add_row(report.name, report.outcome.value, report.detected_version or "-")
        return table

    def render_tool_check(self, results: dict[str, tuple[bool, str | None]]) -> Table:
        table = Table(title="Toolchain check", show_header=True, header_style="bold")
        table.add_column("Tool", style="cyan")
        table.add_column("Present", justify="center")
        table.add_column("Version")
        for name, (present, version) in results.items():
            mark = "[green]yes[/green]" if present else "[red]no[/red]"
            table.add_row(name, mark, version or "-")
        return table
