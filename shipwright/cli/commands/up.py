"""``shipwright up``: package the app, bring the compose stack up, wait for it."""

from __future__ import annotations

import typer
from rich.table import Table

from shipwright.bridge.docker import ContainerEngineError, DockerEngine
from shipwright.bridge.maven import MavenBuildTool
from shipwright.cli import context
from shipwright.config import Settings
from shipwright.observability.health import wait_for_health


def service_urls(settings: Settings) -> dict[str, str]:
    app = settings.app_url.rstrip("/")
    return {
        "Application": app,
        "Swagger UI": f"{app}/swagger-ui.html",
        "Grafana": settings.grafana_url,
        "Graphite": settings.graphite_url,
        "Jenkins": settings.jenkins_url,
    }


def up_cmd(
    timeout: float = typer.Option(
        120.0,
        "--timeout",
        "-t",
        help="Seconds to wait for the application health check.",
    ),
    wait: bool = typer.Option(
        True,
        "--wait/--no-wait",
        help="Poll the application health endpoint after starting.",
    ),
) -> None:
    """Run ``docker compose up -d`` and report service URLs.

    When the compose directory holds a ``pom.xml`` the application is
    packaged first (tests skipped), since the compose build copies the jar.
    """
    settings = context.get_settings()
    console = context.console
    runner = context.get_runner()

    if (settings.compose_dir / "pom.xml").is_file():
        with console.status("Packaging the application..."):
            result = MavenBuildTool(runner).package(settings.compose_dir, skip_tests=True, clean=True)
        if not result.success:
            console.print(
                f"[bold red]Packaging failed:[/bold red] mvn exited with code {result.returncode}"
            )
            if result.output:
                console.print(result.output, markup=False, highlight=False)
            raise typer.Exit(code=1)

    try:
        DockerEngine(runner).compose_up(settings.compose_dir)
    except ContainerEngineError as exc:
        console.print(f"[bold red]{exc}[/bold red]")
        if exc.output:
            console.print(exc.output, markup=False, highlight=False)
        raise typer.Exit(code=1) from exc

    if wait:
        with console.status(f"Waiting for {settings.app_health_url}..."):
            status = wait_for_health(settings.app_health_url, timeout=timeout)
        if not status.healthy:
            console.print(
                f"[bold red]Application is not healthy:[/bold red] {status.detail}"
            )
            raise typer.Exit(code=1)

    table = Table(title="Services", show_header=True, header_style="bold")
    table.add_column("Service", style="cyan")
    table.add_column("URL")
    for name, url in service_urls(settings).items():
        table.add_row(name, url)
    console.print(table)
