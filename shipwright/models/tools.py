"""Provisioning catalog models.

A ``ToolSpec`` declares how to detect, install, and verify one host tool.
Commands are argv lists; ``{user}`` and ``{version}`` placeholders are
substituted by the provisioner before execution.  Steps that need a shell
(pipes, redirects) say so explicitly with ``bash -c``.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict


class ToolOutcome(str, Enum):
    ALREADY_PRESENT = "already_present"
    INSTALLED = "installed"


class ToolSpec(BaseModel):
    """Immutable declaration of a provisioned tool.

    Parameters
    ----------
    name:
        Catalog key, e.g. ``"maven"``.
    required_version:
        Version prefix the detected version must start with.  ``"*"``
        accepts any version the vendor repository ships.
    check:
        Presence check.  Exit code 0 means the tool exists; its output is
        searched with ``version_pattern`` to read the installed version.
    version_pattern:
        Regex with one group capturing the version from ``check`` output.
        Ignored when ``required_version`` is ``"*"``.
    install:
        Ordered install steps.  The first failing step aborts.
    verify:
        Post-install verification; defaults to re-running ``check``.
    service:
        systemd unit that must be active for the tool to count as present.
    credentials_file:
        File holding a first-boot credential (Jenkins admin password).
    """

    model_config = ConfigDict(frozen=True)

    name: str
    display_name: str
    required_version: str = "*"
    check: list[str]
    version_pattern: str | None = None
    install: list[list[str]] = []
    verify: list[str] | None = None
    service: str | None = None
    credentials_file: Path | None = None

    @property
    def pinned(self) -> bool:
        return self.required_version != "*"


class ToolReport(BaseModel):
    """Result of ensuring one tool."""

    model_config = ConfigDict(frozen=True)

    name: str
    outcome: ToolOutcome
    detected_version: str | None = None


_APT_UPDATE = ["sudo", "apt-get", "update"]


def _apt_install(*packages: str) -> list[str]:
    return ["sudo", "apt-get", "install", "-y", *packages]


# Dependency order: JDK before Maven, Docker before anything that builds
# images, Jenkins after the build tools it drives, metrics stack last.
DEFAULT_TOOL_CATALOG: list[ToolSpec] = [
    ToolSpec(
        name="java",
        display_name="OpenJDK",
        required_version="11",
        check=["java", "-version"],
        version_pattern=r'version "(?:1\.)?(\d+)',
        install=[_APT_UPDATE, _apt_install("openjdk-11-jdk")],
    ),
    ToolSpec(
        name="maven",
        display_name="Apache Maven",
        required_version="3.8.4",
        check=["mvn", "-version"],
        version_pattern=r"Apache Maven (\S+)",
        install=[
            [
                "wget", "-q", "-O", "/tmp/apache-maven-{version}-bin.tar.gz",
                "https://archive.apache.org/dist/maven/maven-3/{version}"
                "/binaries/apache-maven-{version}-bin.tar.gz",
            ],
            ["sudo", "tar", "-xzf", "/tmp/apache-maven-{version}-bin.tar.gz", "-C", "/opt"],
            ["sudo", "ln", "-sfn", "/opt/apache-maven-{version}/bin/mvn", "/usr/local/bin/mvn"],
            ["rm", "-f", "/tmp/apache-maven-{version}-bin.tar.gz"],
        ],
    ),
    ToolSpec(
        name="docker",
        display_name="Docker Engine",
        check=["docker", "--version"],
        install=[
            ["curl", "-fsSL", "https://get.docker.com", "-o", "/tmp/get-docker.sh"],
            ["sudo", "sh", "/tmp/get-docker.sh"],
            ["sudo", "usermod", "-aG", "docker", "{user}"],
            [
                "bash", "-c",
                "sudo curl -fsSL -o /usr/local/bin/docker-compose "
                '"https://github.com/docker/compose/releases/download/v2.5.0/'
                'docker-compose-$(uname -s)-$(uname -m)"',
            ],
            ["sudo", "chmod", "+x", "/usr/local/bin/docker-compose"],
            ["rm", "-f", "/tmp/get-docker.sh"],
        ],
    ),
    ToolSpec(
        name="jenkins",
        display_name="Jenkins",
        check=["systemctl", "is-active", "--quiet", "jenkins"],
        install=[
            [
                "bash", "-c",
                "curl -fsSL https://pkg.jenkins.io/debian-stable/jenkins.io-2023.key"
                " | sudo tee /usr/share/keyrings/jenkins-keyring.asc > /dev/null",
            ],
            [
                "bash", "-c",
                "echo 'deb [signed-by=/usr/share/keyrings/jenkins-keyring.asc]"
                " https://pkg.jenkins.io/debian-stable binary/'"
                " | sudo tee /etc/apt/sources.list.d/jenkins.list > /dev/null",
            ],
            _APT_UPDATE,
            _apt_install("jenkins"),
            ["sudo", "systemctl", "start", "jenkins"],
            ["sudo", "systemctl", "enable", "jenkins"],
        ],
        service="jenkins",
        credentials_file=Path("/var/lib/jenkins/secrets/initialAdminPassword"),
    ),
    ToolSpec(
        name="ansible",
        display_name="Ansible",
        check=["ansible", "--version"],
        install=[
            _APT_UPDATE,
            _apt_install("software-properties-common"),
            ["sudo", "apt-add-repository", "--yes", "--update", "ppa:ansible/ansible"],
            _apt_install("ansible"),
        ],
    ),
    ToolSpec(
        name="graphite",
        display_name="Graphite",
        # carbon and graphite-web install under /opt/graphite, off the default sys.path.
        check=[
            "env", "PYTHONPATH=/opt/graphite/lib:/opt/graphite/webapp",
            "python3", "-c", "import carbon, graphite, whisper",
        ],
        install=[
            _APT_UPDATE,
            _apt_install("python3-pip", "python3-dev", "libffi-dev", "libssl-dev"),
            ["sudo", "pip3", "install", "graphite-web", "carbon", "whisper"],
            [
                "sudo", "mkdir", "-p",
                "/opt/graphite/storage/log",
                "/opt/graphite/storage/whisper",
                "/opt/graphite/webapp/graphite",
            ],
            ["sudo", "chown", "-R", "{user}:{user}", "/opt/graphite"],
        ],
    ),
    ToolSpec(
        name="grafana",
        display_name="Grafana",
        check=["bash", "-c", "command -v grafana-server"],
        install=[
            [
                "bash", "-c",
                "wget -q -O - https://packages.grafana.com/gpg.key"
                " | sudo gpg --dearmor --yes -o /usr/share/keyrings/grafana.gpg",
            ],
            [
                "bash", "-c",
                "echo 'deb [signed-by=/usr/share/keyrings/grafana.gpg]"
                " https://packages.grafana.com/oss/deb stable main'"
                " | sudo tee /etc/apt/sources.list.d/grafana.list > /dev/null",
            ],
            _APT_UPDATE,
            _apt_install("grafana"),
            ["sudo", "systemctl", "start", "grafana-server"],
            ["sudo", "systemctl", "enable", "grafana-server"],
        ],
        service="grafana-server",
    ),
]
