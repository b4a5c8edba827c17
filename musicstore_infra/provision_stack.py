#!/usr/bin/env -S uv run python
# /// script
# requires-python = ">=3.13"
# dependencies = ["cyclopts>=2.9", "plumbum"]
# ///
"""Provision the musicstore GKE stack via Pulumi.

This script:
- selects (or creates) the Pulumi stack and writes its configuration;
- runs pulumi preview, then pulumi up unless in dry-run mode;
- reads the stack outputs (cluster, namespace, service, kubeconfig); and
- exports them to $GITHUB_ENV, masking the kubeconfig.
"""

from __future__ import annotations

import logging
from pathlib import Path

from cyclopts import App, Parameter

from musicstore_infra._provision_stack_flow import (
    export_stack_outputs,
    provision_stack,
)
from musicstore_infra._provision_stack_inputs import (
    RawProvisionInputs,
    build_config_values,
    resolve_provision_inputs,
)

app = App(help="Provision the musicstore GKE stack via Pulumi.")

STACK_NAME_PARAM = Parameter(help="Pulumi stack name (STACK_NAME).")
PROJECT_PARAM = Parameter(help="Google Cloud project (GCP_PROJECT).")
ZONE_PARAM = Parameter(help="Google Cloud zone (GCP_ZONE).")
ENVIRONMENT_PARAM = Parameter(help="Environment name (ENVIRONMENT).")
DOCKER_CONFIG_FILE_PARAM = Parameter(
    help="Docker config file with gcr.io credentials (DOCKER_CONFIG_FILE)."
)
MASTER_VERSION_PARAM = Parameter(help="GKE master version pin (MASTER_VERSION).")
PROJECT_DIR_PARAM = Parameter(help="Pulumi project directory (PULUMI_PROJECT_DIR).")
GITHUB_ENV_PARAM = Parameter(help="GITHUB_ENV path override.")
KUBECONFIG_PATH_PARAM = Parameter(help="Write the kubeconfig here (KUBECONFIG_PATH).")
DRY_RUN_PARAM = Parameter(help="Preview only (DRY_RUN).")


@app.command()
def main(
    stack_name: str | None = STACK_NAME_PARAM,
    project: str | None = PROJECT_PARAM,
    zone: str | None = ZONE_PARAM,
    environment: str | None = ENVIRONMENT_PARAM,
    docker_config_file: str | None = DOCKER_CONFIG_FILE_PARAM,
    master_version: str | None = MASTER_VERSION_PARAM,
    project_dir: Path | None = PROJECT_DIR_PARAM,
    github_env: Path | None = GITHUB_ENV_PARAM,
    kubeconfig_path: Path | None = KUBECONFIG_PATH_PARAM,
    dry_run: str | None = DRY_RUN_PARAM,
) -> int:
    """Provision the musicstore stack and export its outputs.

    Inputs are resolved from the command line first, then from environment
    variables. Returns ``0`` on success and ``1`` when any Pulumi step fails.
    """
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    raw_inputs = RawProvisionInputs(
        stack_name=stack_name,
        project=project,
        zone=zone,
        environment=environment,
        docker_config_file=docker_config_file,
        master_version=master_version,
        project_dir=project_dir,
        github_env=github_env,
        kubeconfig_path=kubeconfig_path,
        dry_run=dry_run,
    )
    inputs = resolve_provision_inputs(raw_inputs)
    config_values = build_config_values(inputs)

    success, outputs = provision_stack(inputs, config_values)
    if not success:
        return 1

    if outputs:
        export_stack_outputs(inputs, outputs)

    print("\nStack provisioning complete.")
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI entrypoint
    raise SystemExit(app())
