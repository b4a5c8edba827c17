"""Declare the musicstore stack from an explicit resource graph.

The graph below is the single source of ordering truth. ``define_stack``
walks it in topological order and passes each node's resource dependencies
to Pulumi as ``depends_on``; derived values (the master version and the
kubeconfig) are graph nodes too, so their consumers are ordered after them.

Graph
-----
::

    gcr-provider
    registry-image   <- gcr-provider
    docker-image     <- registry-image, gcr-provider
    master-version
    cluster          <- master-version
    node-pool        <- cluster, master-version
    kubeconfig       <- cluster
    k8s-provider     <- kubeconfig, node-pool
    namespace        <- k8s-provider
    deployment       <- namespace, docker-image, k8s-provider
    service          <- namespace, k8s-provider

Examples
--------
Declare the stack inside a Pulumi program:

>>> from musicstore_infra._stack_config import load_stack_config
>>> config = load_stack_config(pulumi.Config(), pulumi.Config("gcp"))
>>> export_stack_outputs(define_stack(config))
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import pulumi
import pulumi_docker as docker
import pulumi_gcp as gcp
import pulumi_kubernetes as k8s

from musicstore_infra._cluster import (
    declare_cluster,
    declare_node_pool,
    resolve_master_version,
)
from musicstore_infra._kubeconfig import kubeconfig_output
from musicstore_infra._registry import (
    declare_registry_provider,
    materialize_image,
    resolve_registry_image,
)
from musicstore_infra._resource_graph import ResourceGraph, ResourceNode
from musicstore_infra._stack_config import StackConfig
from musicstore_infra._stack_errors import ResourceGraphError
from musicstore_infra._stack_models import RegistryImageRef
from musicstore_infra._workload import (
    declare_deployment,
    declare_namespace,
    declare_provider,
    declare_service,
    service_public_ip,
)

logger = logging.getLogger(__name__)

STACK_NODES: tuple[ResourceNode, ...] = (
    ResourceNode("gcr-provider"),
    ResourceNode("registry-image", ("gcr-provider",)),
    ResourceNode("docker-image", ("registry-image", "gcr-provider")),
    ResourceNode("master-version"),
    ResourceNode("cluster", ("master-version",)),
    ResourceNode("node-pool", ("cluster", "master-version")),
    ResourceNode("kubeconfig", ("cluster",)),
    ResourceNode("k8s-provider", ("kubeconfig", "node-pool")),
    ResourceNode("namespace", ("k8s-provider",)),
    ResourceNode("deployment", ("namespace", "docker-image", "k8s-provider")),
    ResourceNode("service", ("namespace", "k8s-provider")),
)


@dataclass(frozen=True, slots=True)
class StackResources:
    """Everything declared for one stack, keyed by role."""

    graph: ResourceGraph
    gcr_provider: docker.Provider
    registry_image: pulumi.Output[RegistryImageRef]
    docker_image: docker.RemoteImage
    master_version: pulumi.Output[str]
    cluster: gcp.container.Cluster
    node_pool: gcp.container.NodePool
    kubeconfig: pulumi.Output[str]
    k8s_provider: k8s.Provider
    namespace: k8s.core.v1.Namespace
    deployment: k8s.apps.v1.Deployment
    service: k8s.core.v1.Service


class _Declarations:
    """Values declared so far, plus per-node ``depends_on`` options."""

    def __init__(self, config: StackConfig, graph: ResourceGraph) -> None:
        self.config = config
        self.graph = graph
        self.declared: dict[str, Any] = {}

    def __getitem__(self, name: str) -> Any:
        return self.declared[name]

    def options(self, name: str) -> pulumi.ResourceOptions:
        depends_on = [
            self.declared[dep]
            for dep in self.graph.dependencies(name)
            if isinstance(self.declared[dep], pulumi.Resource)
        ]
        return pulumi.ResourceOptions(depends_on=depends_on)


_DECLARERS: dict[str, Callable[[_Declarations], Any]] = {
    "gcr-provider": lambda d: declare_registry_provider(d.config),
    "registry-image": lambda d: resolve_registry_image(d.config, d["gcr-provider"]),
    "docker-image": lambda d: materialize_image(
        d["registry-image"], d["gcr-provider"], d.options("docker-image")
    ),
    "master-version": lambda d: resolve_master_version(d.config),
    "cluster": lambda d: declare_cluster(
        d.config, d["master-version"], d.options("cluster")
    ),
    "node-pool": lambda d: declare_node_pool(
        d["cluster"], d["master-version"], d.options("node-pool")
    ),
    "kubeconfig": lambda d: kubeconfig_output(d["cluster"], d.config),
    "k8s-provider": lambda d: declare_provider(
        d.config, d["kubeconfig"], d.options("k8s-provider")
    ),
    "namespace": lambda d: declare_namespace(
        d.config, d["k8s-provider"], d.options("namespace")
    ),
    "deployment": lambda d: declare_deployment(
        d.config,
        d["namespace"],
        d["docker-image"].name,
        d["k8s-provider"],
        d.options("deployment"),
    ),
    "service": lambda d: declare_service(
        d.config, d["namespace"], d["k8s-provider"], d.options("service")
    ),
}


def build_stack_graph() -> ResourceGraph:
    """Return the declaration graph for the musicstore stack."""
    return ResourceGraph(STACK_NODES)


def define_stack(
    config: StackConfig,
    graph: ResourceGraph | None = None,
) -> StackResources:
    """Declare every stack resource in dependency order.

    Parameters
    ----------
    config
        Resolved stack configuration.
    graph
        Declaration graph; defaults to :func:`build_stack_graph`.

    Returns
    -------
    StackResources
        The declared resources and derived values.

    Raises
    ------
    ResourceGraphError
        If the graph is cyclic, references unknown nodes, names a node this
        program does not know how to declare, or drops a node or edge the
        declarations rely on.
    """
    if graph is None:
        graph = build_stack_graph()
    order = graph.order()
    unknown = [name for name in order if name not in _DECLARERS]
    if unknown:
        msg = f"no declaration for {', '.join(unknown)}"
        raise ResourceGraphError(msg)

    missing = [name for name in _DECLARERS if name not in graph]
    if missing:
        msg = f"graph is missing {', '.join(missing)}"
        raise ResourceGraphError(msg)

    for node in STACK_NODES:
        dropped = [dep for dep in node.depends_on if dep not in graph.dependencies(node.name)]
        if dropped:
            msg = f"{node.name} must depend on {', '.join(dropped)}"
            raise ResourceGraphError(msg)

    declarations = _Declarations(config, graph)
    for name in order:
        logger.debug("Declaring %s", name)
        declarations.declared[name] = _DECLARERS[name](declarations)

    return StackResources(
        graph=graph,
        gcr_provider=declarations["gcr-provider"],
        registry_image=declarations["registry-image"],
        docker_image=declarations["docker-image"],
        master_version=declarations["master-version"],
        cluster=declarations["cluster"],
        node_pool=declarations["node-pool"],
        kubeconfig=declarations["kubeconfig"],
        k8s_provider=declarations["k8s-provider"],
        namespace=declarations["namespace"],
        deployment=declarations["deployment"],
        service=declarations["service"],
    )


def stack_outputs(resources: StackResources) -> dict[str, Any]:
    """Return the stack outputs keyed by their exported names."""
    return {
        "masterVersion": resources.master_version,
        "clusterName": resources.cluster.name,
        "clusterMasterIP": resources.cluster.endpoint,
        "namespaceName": resources.namespace.metadata.name,
        "deploymentName": resources.deployment.metadata.name,
        "serviceName": resources.service.metadata.name,
        "servicePublicIP": service_public_ip(resources.service),
        "kubeconfig": pulumi.Output.secret(resources.kubeconfig),
    }


def export_stack_outputs(resources: StackResources) -> None:
    for name, value in stack_outputs(resources).items():
        pulumi.export(name, value)
