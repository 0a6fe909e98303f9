"""Shipwright pipeline stages, in their fixed execution order.

Usage::

    from shipwright.stages import build_default_stages

    stages = build_default_stages(config, runner)
    for stage in stages:
        stage.run_stage(run_context)
"""

from __future__ import annotations

from shipwright.bridge.ansible import AnsibleRunner
from shipwright.bridge.docker import DockerEngine
from shipwright.bridge.git import GitClient
from shipwright.bridge.maven import MavenBuildTool
from shipwright.core.shell import CommandRunner
from shipwright.models.config import PipelineConfig
from shipwright.stages.base import BaseStage, StageFailure
from shipwright.stages.build import (
    BuildStage,
    PackageStage,
    TestStage,
    build_and_package,
    locate_artifact,
)
from shipwright.stages.checkout import CheckoutStage
from shipwright.stages.deploy import (
    DeployStage,
    RollbackError,
    deploy_image,
    previous_good_build,
    rollback,
)
from shipwright.stages.image import ImageStage, build_image, validate_artifact


def build_default_stages(config: PipelineConfig, runner: CommandRunner) -> list[BaseStage]:
    """Instantiate the six pipeline stages, in order, over one runner."""
    maven = MavenBuildTool(runner)
    return [
        CheckoutStage(GitClient(runner), config.repo_url),
        BuildStage(maven),
        TestStage(maven),
        PackageStage(maven, config.artifact_glob),
        ImageStage(
            DockerEngine(runner),
            config.image_name,
            retain_artifacts=config.retain_artifacts,
        ),
        DeployStage(
            AnsibleRunner(runner),
            config.inventory_target,
            config.playbook_file,
            config.deploy_tags,
        ),
    ]


__all__ = [
    "BaseStage",
    "StageFailure",
    "build_default_stages",
    "CheckoutStage",
    "BuildStage",
    "TestStage",
    "PackageStage",
    "ImageStage",
    "DeployStage",
    "RollbackError",
    "build_and_package",
    "build_image",
    "deploy_image",
    "locate_artifact",
    "previous_good_build",
    "rollback",
    "validate_artifact",
]
