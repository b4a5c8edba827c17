"""Run Pulumi for the musicstore stack and export its outputs.

This module drives the Pulumi CLI through stack selection, configuration,
preview and update, then exports the resulting values to ``GITHUB_ENV`` so
later workflow steps can reach the cluster and the service. Use it after
inputs have been resolved (typically via ``musicstore_infra/provision_stack.py``).

Prerequisites
-------------
Provisioning requires the Pulumi CLI on the ``PATH``, a logged-in Pulumi
backend, Google Cloud credentials for ``pulumi-gcp`` and ``gcloud`` for the
kubeconfig auth provider.

Outputs
-------
The flow can export ``CLUSTER_NAME``, ``CLUSTER_ENDPOINT``,
``NAMESPACE_NAME``, ``SERVICE_PUBLIC_IP`` and ``KUBECONFIG_RAW`` to
``GITHUB_ENV``, and optionally write the kubeconfig to disk.

Examples
--------
>>> config_values = build_config_values(inputs)
>>> success, outputs = provision_stack(inputs, config_values)
>>> export_stack_outputs(inputs, outputs)
"""

from __future__ import annotations

import sys
from pathlib import Path

from musicstore_infra._github import append_github_env, mask_secret
from musicstore_infra._provision_stack_inputs import ProvisionInputs
from musicstore_infra._pulumi_cli import (
    pulumi_preview,
    pulumi_select_stack,
    pulumi_set_config,
    pulumi_stack_output,
    pulumi_up,
)
from musicstore_infra._stack_errors import PulumiCommandError

# Stack output name -> GITHUB_ENV variable.
ENV_EXPORTS: dict[str, str] = {
    "clusterName": "CLUSTER_NAME",
    "clusterMasterIP": "CLUSTER_ENDPOINT",
    "namespaceName": "NAMESPACE_NAME",
    "serviceName": "SERVICE_NAME",
    "servicePublicIP": "SERVICE_PUBLIC_IP",
    "kubeconfig": "KUBECONFIG_RAW",
}
SECRET_OUTPUTS: frozenset[str] = frozenset({"kubeconfig"})


def provision_stack(
    inputs: ProvisionInputs,
    config_values: dict[str, str],
) -> tuple[bool, dict[str, object]]:
    """Select, configure, preview and update the stack.

    Parameters
    ----------
    inputs
        Normalized provisioning inputs.
    config_values
        Stack configuration to write before previewing.

    Returns
    -------
    tuple[bool, dict[str, object]]
        Success flag and the stack outputs (empty for dry runs and failures).
    """
    cwd = inputs.project_dir

    print(f"Provisioning stack '{inputs.stack_name}' in {inputs.project}/{inputs.zone}...")
    print(f"  Environment: {inputs.environment}")
    print(f"  Master version: {inputs.master_version or 'latest'}")
    print(f"  Dry run: {inputs.dry_run}")

    print("\n--- Selecting stack ---")
    select_result = pulumi_select_stack(cwd, inputs.stack_name)
    if not select_result.success:
        print(f"error: stack select failed: {select_result.stderr}", file=sys.stderr)
        return False, {}

    config_result = pulumi_set_config(cwd, inputs.stack_name, config_values)
    if not config_result.success:
        print(f"error: config set failed: {config_result.stderr}", file=sys.stderr)
        return False, {}

    print("\n--- Running pulumi preview ---")
    preview_result = pulumi_preview(cwd, inputs.stack_name)
    if not preview_result.success:
        print(f"error: pulumi preview failed: {preview_result.stderr}", file=sys.stderr)
        return False, {}

    print(preview_result.stdout)

    if inputs.dry_run:
        print("\nDry run mode - skipping update")
        return True, {}

    print("\n--- Running pulumi up ---")
    up_result = pulumi_up(cwd, inputs.stack_name, auto_approve=True)
    if not up_result.success:
        print(f"error: pulumi up failed: {up_result.stderr}", file=sys.stderr)
        return False, {}

    print(up_result.stdout)

    print("\n--- Reading stack outputs ---")
    try:
        outputs = pulumi_stack_output(cwd, inputs.stack_name)
    except PulumiCommandError as exc:
        print(f"error: failed to read outputs: {exc}", file=sys.stderr)
        return False, {}

    return True, outputs


def _output_value(outputs: dict[str, object], key: str) -> str | None:
    """Return an output as a string, unwrapping ``{"value": ...}`` entries."""
    output = outputs.get(key)
    if isinstance(output, dict) and "value" in output:
        output = output["value"]
    if output is None:
        return None
    value = str(output)
    return value or None


def write_kubeconfig(path: Path, kubeconfig: str) -> None:
    """Write the kubeconfig readable by the current user only."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(kubeconfig, encoding="utf-8")
    path.chmod(0o600)


def export_stack_outputs(
    inputs: ProvisionInputs,
    outputs: dict[str, object],
) -> None:
    """Export stack outputs to the GitHub Actions environment file.

    Secret outputs are masked before they are written. When
    ``inputs.kubeconfig_path`` is set the kubeconfig is also written there.
    """
    env_vars: dict[str, str] = {}
    for output_name, env_key in ENV_EXPORTS.items():
        value = _output_value(outputs, output_name)
        if value is None:
            continue
        if output_name in SECRET_OUTPUTS:
            mask_secret(value)
        env_vars[env_key] = value

    kubeconfig = env_vars.get("KUBECONFIG_RAW")
    if kubeconfig and inputs.kubeconfig_path is not None:
        write_kubeconfig(inputs.kubeconfig_path, kubeconfig)
        print(f"Wrote kubeconfig to {inputs.kubeconfig_path}")

    if env_vars:
        append_github_env(inputs.github_env, env_vars)
        print(f"Exported {len(env_vars)} variables to GITHUB_ENV")
