"""Resolve operator inputs and build stack configuration for provisioning."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from musicstore_infra._github import parse_bool
from musicstore_infra._input_resolution import (
    InputResolution,
    resolve_input,
    resolve_path,
)
from musicstore_infra._stack_config import (
    DOCKER_CONFIG_FILE_KEY,
    ENVIRONMENT_KEY,
    MASTER_VERSION_KEY,
    validate_environment,
)

logger = logging.getLogger(__name__)

REPO_ROOT = Path(__file__).resolve().parents[1]


@dataclass(frozen=True, slots=True)
class ProvisionInputs:
    """Inputs for a stack provisioning run."""

    # Stack configuration
    stack_name: str
    project: str
    zone: str
    environment: str
    docker_config_file: str
    master_version: str | None

    # Paths and options
    project_dir: Path
    github_env: Path
    kubeconfig_path: Path | None
    dry_run: bool


@dataclass(frozen=True, slots=True)
class RawProvisionInputs:
    """Raw provisioning inputs from the CLI."""

    stack_name: str | None = None
    project: str | None = None
    zone: str | None = None
    environment: str | None = None
    docker_config_file: str | None = None
    master_version: str | None = None
    project_dir: Path | None = None
    github_env: Path | None = None
    kubeconfig_path: Path | None = None
    dry_run: str | None = None


def _required(value: str | None, env_key: str) -> str:
    return str(resolve_input(value, InputResolution(env_key=env_key, required=True)))


def resolve_provision_inputs(raw: RawProvisionInputs) -> ProvisionInputs:
    """Resolve provisioning inputs from CLI values and the environment.

    Parameters
    ----------
    raw
        Values passed on the command line; ``None`` means "not given".

    Returns
    -------
    ProvisionInputs
        Normalized inputs ready for the provisioning flow.

    Raises
    ------
    SystemExit
        If a required input is missing.

    Examples
    --------
    >>> raw = RawProvisionInputs(
    ...     stack_name="dev",
    ...     project="proj1",
    ...     zone="us-central1-a",
    ...     environment="dev",
    ...     docker_config_file="/tmp/docker/config.json",
    ... )
    >>> resolve_provision_inputs(raw).stack_name
    'dev'

    """
    master_version = resolve_input(
        raw.master_version, InputResolution(env_key="MASTER_VERSION")
    )
    dry_run = resolve_input(raw.dry_run, InputResolution(env_key="DRY_RUN", default="false"))

    # GITHUB_ENV falls back to a throwaway path so local runs do not fail.
    github_env = resolve_path(
        raw.github_env,
        InputResolution(
            env_key="GITHUB_ENV",
            default=Path("/tmp/github-env-undefined"),
            as_path=True,
        ),
    )
    project_dir = resolve_path(
        raw.project_dir,
        InputResolution(env_key="PULUMI_PROJECT_DIR", default=REPO_ROOT, as_path=True),
    )
    kubeconfig_path = resolve_path(
        raw.kubeconfig_path,
        InputResolution(env_key="KUBECONFIG_PATH", as_path=True),
    )

    return ProvisionInputs(
        stack_name=_required(raw.stack_name, "STACK_NAME"),
        project=_required(raw.project, "GCP_PROJECT"),
        zone=_required(raw.zone, "GCP_ZONE"),
        environment=_required(raw.environment, "ENVIRONMENT"),
        docker_config_file=_required(raw.docker_config_file, "DOCKER_CONFIG_FILE"),
        master_version=str(master_version) if master_version else None,
        project_dir=project_dir or REPO_ROOT,
        github_env=github_env or Path("/tmp/github-env-undefined"),
        kubeconfig_path=kubeconfig_path,
        dry_run=parse_bool(str(dry_run) if dry_run else None, default=False),
    )


def build_config_values(inputs: ProvisionInputs) -> dict[str, str]:
    """Build the Pulumi stack configuration for a provisioning run.

    Parameters
    ----------
    inputs
        Normalized provisioning inputs.

    Returns
    -------
    dict[str, str]
        Stack configuration keyed as ``pulumi config set`` expects.

    Raises
    ------
    ConfigurationError
        If the environment name is not usable as a resource name fragment.
    """
    values = {
        "gcp:project": inputs.project,
        "gcp:zone": inputs.zone,
        DOCKER_CONFIG_FILE_KEY: inputs.docker_config_file,
        ENVIRONMENT_KEY: validate_environment(inputs.environment),
    }
    if inputs.master_version:
        values[MASTER_VERSION_KEY] = inputs.master_version
    else:
        logger.info("No master version pinned; the latest GKE version will be used")
    return values
