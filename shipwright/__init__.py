"""Shipwright: pipeline orchestration and host provisioning for the inventory service.

- Six-stage pipeline: checkout, build, test, package, Docker image, deploy
- Halts at the first failing stage, cleans up once, notifies once
- Build-numbered, never-reused image tags backed by a SQLite run ledger
- Idempotent, fail-fast provisioning of the host toolchain
- Grafana/Graphite observability bootstrap and compose bring-up
"""

__version__ = "0.1.0"
__description__ = (
    "Pipeline orchestration and environment provisioning for the inventory management service"
)

from shipwright.core.orchestrator import Orchestrator
from shipwright.core.provisioner import Provisioner, ensure
from shipwright.cli.app import app as cli

__all__ = ["Orchestrator", "Provisioner", "ensure", "cli", "__version__"]
