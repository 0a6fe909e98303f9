"""Grafana datasource provisioning.

``configure()`` upserts a Graphite data source named ``Graphite`` into a
Grafana provisioning file and marks it as the default.  Any other data
sources already in the file are kept but lose their default flag.
Applying the same backend address twice produces byte-identical output.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

import yaml

logger = logging.getLogger(__name__)

DATASOURCE_NAME = "Graphite"
DATASOURCE_FILE = "datasource.yml"
_API_VERSION = 1


class ConfigurationFailure(RuntimeError):
    """Raised when the datasource cannot be validated or written."""


def _validate_backend_url(url: str) -> str:
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ConfigurationFailure(
            f"Metrics backend address {url!r} must be an http(s) URL with a host"
        )
    try:
        _ = parsed.port  # raises on a non-numeric port
    except ValueError as exc:
        raise ConfigurationFailure(f"Metrics backend address {url!r}: {exc}") from exc
    return url.rstrip("/")


def _load(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigurationFailure(f"Cannot read provisioning file {path}: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationFailure(f"Provisioning file {path} is not a YAML mapping")
    return data


def graphite_datasource(backend_url: str) -> dict[str, Any]:
    """The datasource entry Grafana expects for a Graphite backend."""
    return {
        "name": DATASOURCE_NAME,
        "type": "graphite",
        "access": "proxy",
        "url": backend_url,
        "isDefault": True,
        "editable": True,
        "jsonData": {"graphiteVersion": "1.1"},
    }


def configure(backend_url: str, provisioning_dir: Path) -> Path:
    """Declare Graphite at *backend_url* as Grafana's default data source.

    Parameters
    ----------
    backend_url:
        Graphite web/query URL, e.g. ``http://graphite:8080``.
    provisioning_dir:
        Grafana ``provisioning/datasources`` directory.

    Returns
    -------
    Path
        The provisioning file written.

    Raises
    ------
    ConfigurationFailure
        If the URL is invalid or the file cannot be read or written.
    """
    url = _validate_backend_url(backend_url)
    path = Path(provisioning_dir) / DATASOURCE_FILE
    document = _load(path)

    existing = document.get("datasources") or []
    if not isinstance(existing, list):
        raise ConfigurationFailure(f"'datasources' in {path} is not a list")

    datasources: list[dict[str, Any]] = []
    for entry in existing:
        if not isinstance(entry, dict) or entry.get("name") == DATASOURCE_NAME:
            continue
        entry = dict(entry)
        entry["isDefault"] = False
        datasources.append(entry)
    datasources.insert(0, graphite_datasource(url))

    document["apiVersion"] = _API_VERSION
    document["datasources"] = datasources

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(
            yaml.safe_dump(document, sort_keys=True, default_flow_style=False),
            encoding="utf-8",
        )
    except OSError as exc:
        raise ConfigurationFailure(f"Cannot write provisioning file {path}: {exc}") from exc

    logger.info("Grafana datasource %s -> %s written to %s", DATASOURCE_NAME, url, path)
    return path
