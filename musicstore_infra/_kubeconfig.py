"""Synthesize a GKE-style kubeconfig from cluster attributes.

GKE clusters authenticate through ``gcloud`` rather than through a client
certificate, so the document carries an ``auth-provider`` stanza that shells
out to ``gcloud config config-helper`` whenever a client needs a token. No
credentials are embedded in the rendered document.

Examples
--------
>>> doc = synthesize("musicstore-dev", "1.2.3.4", "BASE64CA==", "proj1", "us-central1-a")
>>> "server: https://1.2.3.4" in doc
True
"""

from __future__ import annotations

from typing import Any

import pulumi
import pulumi_gcp as gcp
import yaml

from musicstore_infra._stack_config import StackConfig
from musicstore_infra._stack_errors import KubeconfigError
from musicstore_infra._stack_models import ClusterAttributes

AUTH_PROVIDER_NAME = "gcp"
AUTH_PROVIDER_CONFIG: dict[str, str] = {
    "cmd-args": "config config-helper --format=json",
    "cmd-path": "gcloud",
    "expiry-key": "{.credential.token_expiry}",
    "token-key": "{.credential.access_token}",
}


def context_name(project: str, zone: str, cluster_name: str) -> str:
    """Return the context name used for clusters, contexts and users.

    Examples
    --------
    >>> context_name("proj1", "us-central1-a", "musicstore-dev")
    'proj1_us-central1-a_musicstore-dev'
    """
    return f"{project}_{zone}_{cluster_name}"


def build_kubeconfig(
    cluster: ClusterAttributes,
    project: str,
    zone: str,
) -> dict[str, Any]:
    """Build the kubeconfig document as a mapping.

    Parameters
    ----------
    cluster
        Resolved cluster attributes.
    project
        Google Cloud project of the cluster.
    zone
        Google Cloud zone of the cluster.

    Returns
    -------
    dict[str, Any]
        Kubeconfig with exactly one cluster, context and user.

    Raises
    ------
    KubeconfigError
        If any attribute is blank.
    """
    for field_name, value in (
        ("cluster name", cluster.name),
        ("endpoint", cluster.endpoint),
        ("CA certificate", cluster.ca_certificate),
        ("project", project),
        ("zone", zone),
    ):
        if not value:
            msg = f"cannot synthesize kubeconfig without a {field_name}"
            raise KubeconfigError(msg)

    context = context_name(project, zone, cluster.name)
    return {
        "apiVersion": "v1",
        "clusters": [
            {
                "cluster": {
                    "certificate-authority-data": cluster.ca_certificate,
                    "server": f"https://{cluster.endpoint}",
                },
                "name": context,
            }
        ],
        "contexts": [
            {
                "context": {"cluster": context, "user": context},
                "name": context,
            }
        ],
        "current-context": context,
        "kind": "Config",
        "preferences": {},
        "users": [
            {
                "name": context,
                "user": {
                    "auth-provider": {
                        "config": dict(AUTH_PROVIDER_CONFIG),
                        "name": AUTH_PROVIDER_NAME,
                    }
                },
            }
        ],
    }


def synthesize(
    cluster_name: str,
    endpoint: str,
    ca_certificate: str,
    project: str,
    zone: str,
) -> str:
    """Render the kubeconfig YAML for a cluster.

    The output is deterministic: keys are sorted and block style is used, so
    the same inputs always render byte-identical documents.
    """
    document = build_kubeconfig(
        ClusterAttributes(cluster_name, endpoint, ca_certificate),
        project,
        zone,
    )
    return yaml.safe_dump(document, default_flow_style=False, sort_keys=True)


def kubeconfig_output(
    cluster: gcp.container.Cluster,
    config: StackConfig,
) -> pulumi.Output[str]:
    """Join the cluster's asynchronous attributes and render its kubeconfig."""
    return pulumi.Output.all(
        cluster.name,
        cluster.endpoint,
        cluster.master_auth,
    ).apply(
        lambda args: synthesize(
            args[0],
            args[1],
            args[2].cluster_ca_certificate,
            config.project,
            config.zone,
        )
    )
