"""``shipwright provision``: ensure the host toolchain, fail-fast."""

from __future__ import annotations

from typing import Optional

import typer
from rich.panel import Panel

from shipwright.cli import context
from shipwright.core.host_guard import PreconditionFailure, enforce_host_preconditions
from shipwright.core.provisioner import InstallFailure, Provisioner
from shipwright.models.tools import ToolOutcome
from shipwright.monitor.renderer import MonitorRenderer


def provision_cmd(
    check_only: bool = typer.Option(
        False,
        "--check-only",
        help="Report which tools are present without installing anything.",
    ),
    user: Optional[str] = typer.Option(
        None,
        "--user",
        "-u",
        help="Login to add to the docker group and own Graphite storage.  Defaults to the current user.",
    ),
) -> None:
    """Install JDK, Maven, Docker, Jenkins, Ansible, Graphite and Grafana.

    Tools already present at the required version are left untouched.
    The first failing tool aborts the run; later tools are not attempted.
    """
    settings = context.get_settings()
    console = context.console
    renderer = MonitorRenderer(console)
    provisioner = Provisioner(runner=context.get_runner(), user=user)

    if check_only:
        results = provisioner.check()
        console.print(renderer.render_tool_check(results))
        if not all(present for present, _ in results.values()):
            raise typer.Exit(code=1)
        return

    try:
        enforce_host_preconditions(settings.package_manager)
    except PreconditionFailure as exc:
        console.print(f"[bold red]Host preconditions failed:[/bold red]\n{exc}")
        raise typer.Exit(code=1) from exc

    try:
        reports = provisioner.provision()
    except InstallFailure as exc:
        if exc.completed:
            console.print(renderer.render_tool_reports(exc.completed))
        console.print(f"[bold red]Provisioning failed:[/bold red] {exc}")
        if exc.output:
            console.print(exc.output, markup=False, highlight=False)
        raise typer.Exit(code=1) from exc

    console.print(renderer.render_tool_reports(reports))

    for report in reports:
        if report.outcome != ToolOutcome.INSTALLED:
            continue
        spec = provisioner.tool(report.name)
        password = provisioner.initial_admin_password(spec)
        if password:
            console.print(
                Panel(
                    f"[bold]Initial admin password:[/bold] {password}",
                    title=f"[bold]{spec.display_name}[/bold]",
                    border_style="yellow",
                )
            )

    console.print("[bold green]All tools are installed.[/bold green]")
