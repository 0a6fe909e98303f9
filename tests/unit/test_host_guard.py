"""Tests for the host precondition guard."""

from __future__ import annotations

import pytest

from shipwright.core.host_guard import PreconditionFailure, enforce_host_preconditions


def _which_apt(name: str) -> str | None:
    return "/usr/bin/apt" if name == "apt" else None


def _which_nothing(name: str) -> str | None:
    return None


class TestHostGuard:
    def test_regular_user_on_apt_host_passes(self):
        enforce_host_preconditions("apt", euid=1000, which=_which_apt)

    def test_root_refused(self):
        with pytest.raises(PreconditionFailure, match="root"):
            enforce_host_preconditions("apt", euid=0, which=_which_apt)

    def test_unsupported_package_manager(self):
        with pytest.raises(PreconditionFailure, match="Unsupported package manager"):
            enforce_host_preconditions("yum", euid=1000, which=_which_apt)

    def test_package_manager_missing_from_path(self):
        with pytest.raises(PreconditionFailure, match="not found on PATH"):
            enforce_host_preconditions("apt", euid=1000, which=_which_nothing)

    def test_all_violations_reported_together(self):
        with pytest.raises(PreconditionFailure) as excinfo:
            enforce_host_preconditions("pacman", euid=0, which=_which_apt)
        message = str(excinfo.value)
        assert "root" in message
        assert "pacman" in message
