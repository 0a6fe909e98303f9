"""Shared wiring for CLI commands.

Commands resolve settings, the command runner and the console through
this module so tests can substitute them.
"""

from __future__ import annotations

from rich.console import Console

from shipwright.config import Settings, load_settings
from shipwright.core.run_ledger import RunLedger
from shipwright.core.shell import CommandRunner, SubprocessRunner
from shipwright.log_setup import configure_logging

console = Console()


def get_settings() -> Settings:
    settings = load_settings()
    configure_logging(settings.log_level)
    return settings


def get_runner() -> CommandRunner:
    return SubprocessRunner()


def open_ledger(settings: Settings) -> RunLedger:
    return RunLedger(settings.ledger_path)
