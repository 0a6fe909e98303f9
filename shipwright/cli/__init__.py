"""Shipwright CLI: Typer-based command-line interface.

Provides the ``shipwright`` command with subcommands for running the
pipeline, provisioning the host, configuring Grafana, rolling back,
starting the compose stack, and reading run history.

All output uses Rich for formatted terminal display.
"""
