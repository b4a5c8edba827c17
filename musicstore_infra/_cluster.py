"""GKE cluster and node pool declarations.

The cluster is created with the smallest possible default node pool, which is
removed as soon as the control plane exists: GKE refuses to create a cluster
without a pool, but all real capacity comes from separately managed pools.
"""

from __future__ import annotations

import logging

import pulumi
import pulumi_gcp as gcp

from musicstore_infra._stack_config import StackConfig

logger = logging.getLogger(__name__)

DEFAULT_POOL_NODE_COUNT = 1
NODE_POOL_NAME = "primary-node-pool"
NODE_POOL_SIZE = 2
NODE_MACHINE_TYPE = "n1-standard-1"
NODE_OAUTH_SCOPES: tuple[str, ...] = (
    "https://www.googleapis.com/auth/compute",
    "https://www.googleapis.com/auth/devstorage.read_only",
    "https://www.googleapis.com/auth/logging.write",
    "https://www.googleapis.com/auth/monitoring",
)


def resolve_master_version(config: StackConfig) -> pulumi.Output[str]:
    """Return the pinned control-plane version or the latest available one.

    The engine versions catalog is only queried when no version is pinned.
    A failing lookup aborts the run.
    """
    if config.master_version:
        logger.info("Using pinned master version %s", config.master_version)
        return pulumi.Output.from_input(config.master_version)
    return gcp.container.get_engine_versions_output().latest_master_version


def declare_cluster(
    config: StackConfig,
    master_version: pulumi.Input[str],
    opts: pulumi.ResourceOptions | None = None,
) -> gcp.container.Cluster:
    """Declare the cluster control plane with a disposable default pool."""
    return gcp.container.Cluster(
        config.name_prefix,
        initial_node_count=DEFAULT_POOL_NODE_COUNT,
        remove_default_node_pool=True,
        min_master_version=master_version,
        opts=opts,
    )


def declare_node_pool(
    cluster: gcp.container.Cluster,
    master_version: pulumi.Input[str],
    opts: pulumi.ResourceOptions | None = None,
) -> gcp.container.NodePool:
    """Declare the worker pool, ordered strictly after the cluster.

    The explicit ``depends_on`` keeps the pool creation from racing the
    removal of the cluster's default pool.
    """
    options = pulumi.ResourceOptions.merge(
        pulumi.ResourceOptions(depends_on=[cluster]),
        opts,
    )
    return gcp.container.NodePool(
        NODE_POOL_NAME,
        cluster=cluster.name,
        location=cluster.location,
        initial_node_count=NODE_POOL_SIZE,
        version=master_version,
        node_config=gcp.container.NodePoolNodeConfigArgs(
            preemptible=True,
            machine_type=NODE_MACHINE_TYPE,
            oauth_scopes=list(NODE_OAUTH_SCOPES),
        ),
        management=gcp.container.NodePoolManagementArgs(
            auto_repair=True,
        ),
        opts=options,
    )
