"""Tests for env-driven Settings and logging setup."""

from __future__ import annotations

import logging
import os
from pathlib import Path

import pytest
from rich.console import Console

from shipwright.config import Settings, load_settings
from shipwright.log_setup import configure_logging


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.chdir(tmp_path)
    for key in list(os.environ):
        if key.startswith("SHIPWRIGHT_"):
            monkeypatch.delenv(key)


class TestSettings:
    def test_defaults(self):
        settings = load_settings()
        assert settings.image_name == "inventory-management-system"
        assert settings.deploy_tags == ["deploy"]
        assert settings.stage_timeouts["test"] == 1800
        assert settings.enable_metrics is False

    def test_env_overrides(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("SHIPWRIGHT_REPO_URL", "https://example.com/repo.git")
        monkeypatch.setenv("SHIPWRIGHT_ENABLE_METRICS", "true")
        monkeypatch.setenv("SHIPWRIGHT_GRAPHITE_PORT", "2004")
        monkeypatch.setenv("SHIPWRIGHT_DEPLOY_TAGS", '["deploy", "restart"]')
        settings = Settings()
        assert settings.repo_url == "https://example.com/repo.git"
        assert settings.enable_metrics is True
        assert settings.graphite_port == 2004
        assert settings.deploy_tags == ["deploy", "restart"]

    def test_dotenv_file(self, tmp_path: Path):
        (tmp_path / ".env").write_text("SHIPWRIGHT_IMAGE_NAME=inventory-api\n")
        assert Settings().image_name == "inventory-api"

    def test_app_health_url(self):
        settings = Settings(app_url="http://app:8080/", app_health_path="/actuator/health")
        assert settings.app_health_url == "http://app:8080/actuator/health"

    def test_pipeline_config(self, tmp_path: Path):
        settings = Settings(
            repo_url="https://example.com/repo.git",
            ledger_path=tmp_path / "l.db",
            deploy_tags=["deploy", "migrate"],
            inventory_limit="app_servers",
        )
        config = settings.pipeline_config()
        assert config.repo_url == "https://example.com/repo.git"
        assert config.ledger_db_path == tmp_path / "l.db"
        assert config.deploy_tags == ("deploy", "migrate")
        assert config.inventory_target.limit == "app_servers"
        assert [d.stage_id for d in config.stage_plan] == [
            "checkout", "build", "test", "package", "image", "deploy",
        ]


class TestConfigureLogging:
    def teardown_method(self) -> None:
        logger = logging.getLogger("shipwright")
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
        logger.propagate = True
        logger.setLevel(logging.NOTSET)

    def test_installs_single_handler(self):
        console = Console(record=True, width=200)
        configure_logging("INFO", console)
        logger = configure_logging("DEBUG", console)
        assert len(logger.handlers) == 1
        assert logger.level == logging.DEBUG

        logging.getLogger("shipwright.core.provisioner").info("Checking Apache Maven...")
        assert "Checking Apache Maven..." in console.export_text()

    def test_unknown_level(self):
        with pytest.raises(ValueError, match="Unknown log level"):
            configure_logging("CHATTY")
