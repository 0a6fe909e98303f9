"""Console sink: prints the run notification as a rich panel."""

from __future__ import annotations

from rich.console import Console
from rich.panel import Panel

from shipwright.models.notifications import Notification


class ConsoleSink:
    """Renders notifications to a ``rich`` console."""

    def __init__(self, console: Console | None = None) -> None:
        self._console = console or Console()

    @property
    def sink_name(self) -> str:
        return "console"

    def accept(self, notification: Notification) -> None:
        lines = [
            f"[bold]Build:[/bold] #{notification.build_number}",
            f"[bold]Ref:[/bold] {notification.source_ref}",
        ]
        if notification.image_reference:
            lines.append(f"[bold]Image:[/bold] {notification.image_reference}")
        if notification.failed_stage:
            lines.append(f"[bold]Failed stage:[/bold] {notification.failed_stage}")
        if notification.duration_seconds is not None:
            lines.append(f"[bold]Duration:[/bold] {notification.duration_seconds:.1f}s")

        style = "green" if notification.succeeded else "red"
        self._console.print(
            Panel(
                "\n".join(lines),
                title=f"[bold {style}]{notification.message}[/bold {style}]",
                border_style=style,
            )
        )
        if notification.output:
            self._console.print(notification.output, markup=False, highlight=False)
