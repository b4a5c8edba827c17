"""Registry image resolution and digest-keyed image materialization."""

from __future__ import annotations

import logging

import pulumi
import pulumi_docker as docker

from musicstore_infra._stack_config import IMAGE_NAME, REGISTRY_HOST, StackConfig
from musicstore_infra._stack_models import RegistryImageRef

logger = logging.getLogger(__name__)

GCR_PROVIDER_NAME = "gcr"
DOCKER_IMAGE_NAME = f"{IMAGE_NAME}-docker-image"


def build_pull_triggers(digest: str) -> list[str]:
    """Return the pull triggers for an image digest.

    The trigger list is the digest alone, so re-declaring an image whose
    digest has not moved yields an identical list and no new pull.

    Examples
    --------
    >>> build_pull_triggers("sha256:abc")
    ['sha256:abc']
    """
    return [digest]


def declare_registry_provider(
    config: StackConfig,
    opts: pulumi.ResourceOptions | None = None,
) -> docker.Provider:
    """Declare a docker provider authenticated against ``gcr.io``.

    The credentials file is handed to the provider untouched.
    """
    return docker.Provider(
        GCR_PROVIDER_NAME,
        registry_auth=[
            docker.ProviderRegistryAuthArgs(
                address=REGISTRY_HOST,
                config_file=config.docker_config_file,
            )
        ],
        opts=opts,
    )


def resolve_registry_image(
    config: StackConfig,
    provider: docker.Provider,
) -> pulumi.Output[RegistryImageRef]:
    """Look up the digest currently behind the application's image tag.

    Authentication and not-found errors are raised by the registry lookup and
    abort the run; nothing is retried.
    """
    logger.debug("Resolving registry image %s", config.image_reference)
    result = docker.get_registry_image_output(
        name=config.image_reference,
        opts=pulumi.InvokeOptions(provider=provider),
    )
    return result.apply(lambda image: RegistryImageRef(image.name, image.sha256_digest))


def materialize_image(
    image: pulumi.Output[RegistryImageRef],
    provider: docker.Provider,
    opts: pulumi.ResourceOptions | None = None,
) -> docker.RemoteImage:
    """Declare the local copy of the resolved image.

    The image is pulled again only when its digest changes, and it is kept
    locally when the resource is replaced.
    """
    options = pulumi.ResourceOptions.merge(
        pulumi.ResourceOptions(provider=provider),
        opts,
    )
    return docker.RemoteImage(
        DOCKER_IMAGE_NAME,
        name=image.apply(lambda ref: ref.name),
        pull_triggers=image.apply(lambda ref: build_pull_triggers(ref.digest)),
        keep_locally=True,
        opts=options,
    )
