"""Kubernetes provider, namespace, deployment and service declarations.

Every workload object is addressed through a provider built from the
synthesized kubeconfig, so none of them can be submitted before the
kubeconfig has resolved and the node pool exists.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

import pulumi
import pulumi_kubernetes as k8s

from musicstore_infra._stack_config import StackConfig

CONTAINER_PORT_NAME = "http"
CONTAINER_PORT = 80
SERVICE_PORT = 80
SERVICE_TYPE = "LoadBalancer"
REPLICAS = 1


def first_ingress_ip(ingress: Sequence[Any] | None) -> str | None:
    """Return the IP of the first load-balancer ingress entry.

    Examples
    --------
    >>> from types import SimpleNamespace
    >>> first_ingress_ip([SimpleNamespace(ip="5.6.7.8")])
    '5.6.7.8'
    >>> first_ingress_ip([]) is None
    True
    """
    if not ingress:
        return None
    return getattr(ingress[0], "ip", None)


def service_public_ip(service: k8s.core.v1.Service) -> pulumi.Output[str | None]:
    """Return the service's public load-balancer IP once it is assigned."""

    def _from_status(status: Any) -> str | None:
        if status is None or status.load_balancer is None:
            return None
        return first_ingress_ip(status.load_balancer.ingress)

    return service.status.apply(_from_status)


def declare_provider(
    config: StackConfig,
    kubeconfig: pulumi.Input[str],
    opts: pulumi.ResourceOptions | None = None,
) -> k8s.Provider:
    """Declare the Kubernetes provider that targets the new cluster."""
    return k8s.Provider(config.name_prefix, kubeconfig=kubeconfig, opts=opts)


def _provider_options(
    provider: k8s.Provider,
    opts: pulumi.ResourceOptions | None,
) -> pulumi.ResourceOptions:
    return pulumi.ResourceOptions.merge(pulumi.ResourceOptions(provider=provider), opts)


def declare_namespace(
    config: StackConfig,
    provider: k8s.Provider,
    opts: pulumi.ResourceOptions | None = None,
) -> k8s.core.v1.Namespace:
    return k8s.core.v1.Namespace(
        config.name_prefix,
        opts=_provider_options(provider, opts),
    )


def declare_deployment(
    config: StackConfig,
    namespace: k8s.core.v1.Namespace,
    image: pulumi.Input[str],
    provider: k8s.Provider,
    opts: pulumi.ResourceOptions | None = None,
) -> k8s.apps.v1.Deployment:
    """Declare a single-replica deployment of the materialized image."""
    labels = config.app_labels
    return k8s.apps.v1.Deployment(
        config.name_prefix,
        metadata=k8s.meta.v1.ObjectMetaArgs(
            namespace=namespace.metadata.name,
            labels=labels,
        ),
        spec=k8s.apps.v1.DeploymentSpecArgs(
            replicas=REPLICAS,
            selector=k8s.meta.v1.LabelSelectorArgs(match_labels=labels),
            template=k8s.core.v1.PodTemplateSpecArgs(
                metadata=k8s.meta.v1.ObjectMetaArgs(labels=labels),
                spec=k8s.core.v1.PodSpecArgs(
                    containers=[
                        k8s.core.v1.ContainerArgs(
                            name=config.name_prefix,
                            image=image,
                            ports=[
                                k8s.core.v1.ContainerPortArgs(
                                    name=CONTAINER_PORT_NAME,
                                    container_port=CONTAINER_PORT,
                                )
                            ],
                        )
                    ],
                ),
            ),
        ),
        opts=_provider_options(provider, opts),
    )


def declare_service(
    config: StackConfig,
    namespace: k8s.core.v1.Namespace,
    provider: k8s.Provider,
    opts: pulumi.ResourceOptions | None = None,
) -> k8s.core.v1.Service:
    """Declare a load balancer forwarding port 80 to the named container port."""
    labels = config.app_labels
    return k8s.core.v1.Service(
        config.name_prefix,
        metadata=k8s.meta.v1.ObjectMetaArgs(
            labels=labels,
            namespace=namespace.metadata.name,
        ),
        spec=k8s.core.v1.ServiceSpecArgs(
            type=SERVICE_TYPE,
            ports=[
                k8s.core.v1.ServicePortArgs(
                    port=SERVICE_PORT,
                    target_port=CONTAINER_PORT_NAME,
                )
            ],
            selector=labels,
        ),
        opts=_provider_options(provider, opts),
    )
