"""Resolve Pulumi stack configuration into an immutable ``StackConfig``.

Configuration is read exactly once, at program start, and the resulting
``StackConfig`` is passed explicitly to every component. Nothing below this
module looks up ambient Pulumi configuration.

Stack keys
----------
``docker-config-file``
    Path to the docker ``config.json`` holding ``gcr.io`` credentials.
``envrionment``
    Environment name used to derive the resource name prefix. The key keeps
    the spelling used by existing stack files.
``masterVersion``
    Optional GKE control-plane version pin.
``gcp:project`` / ``gcp:zone``
    Google Cloud project and zone, shared with the ``pulumi-gcp`` provider.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Protocol

from musicstore_infra._stack_errors import ConfigurationError

logger = logging.getLogger(__name__)

NAME_PREFIX = "musicstore-"
REGISTRY_HOST = "gcr.io"
IMAGE_NAME = "musicstore"
IMAGE_TAG = "latest"

DOCKER_CONFIG_FILE_KEY = "docker-config-file"
ENVIRONMENT_KEY = "envrionment"
MASTER_VERSION_KEY = "masterVersion"

_NAME_PATTERN = re.compile(r"^[a-z0-9]([a-z0-9-]*[a-z0-9])?$")


class ConfigSource(Protocol):
    """The subset of :class:`pulumi.Config` used for resolution."""

    def get(self, key: str) -> str | None: ...


@dataclass(frozen=True, slots=True)
class StackConfig:
    """Immutable configuration for one run of the stack program.

    Attributes
    ----------
    project
        Google Cloud project that owns the cluster and the registry.
    zone
        Google Cloud zone of the cluster.
    environment
        Environment name, e.g. ``dev``.
    docker_config_file
        Path to the registry credentials file passed to the docker provider.
    master_version
        Explicit control-plane version, or ``None`` to use the latest one.

    Examples
    --------
    >>> config = StackConfig("proj1", "us-central1-a", "dev", "/tmp/config.json")
    >>> config.name_prefix
    'musicstore-dev'
    """

    project: str
    zone: str
    environment: str
    docker_config_file: str
    master_version: str | None = None

    @property
    def name_prefix(self) -> str:
        """Resource name prefix shared by the cluster and the workload."""
        return f"{NAME_PREFIX}{self.environment}"

    @property
    def app_labels(self) -> dict[str, str]:
        """Labels that tie the deployment, its pods and the service together."""
        return {"appClass": self.name_prefix}

    @property
    def image_reference(self) -> str:
        """Fully-qualified registry reference of the application image."""
        return f"{REGISTRY_HOST}/{self.project}/{IMAGE_NAME}:{IMAGE_TAG}"


def validate_environment(name: str) -> str:
    """Validate an environment name for use in Kubernetes object names.

    Parameters
    ----------
    name
        Environment name to validate.

    Returns
    -------
    str
        The stripped environment name.

    Raises
    ------
    ConfigurationError
        If the name is blank or not a valid DNS label fragment.

    Examples
    --------
    >>> validate_environment(" dev ")
    'dev'
    """
    name = name.strip()
    if not name:
        msg = f"{ENVIRONMENT_KEY} must not be blank"
        raise ConfigurationError(msg)
    if not _NAME_PATTERN.match(name):
        msg = (
            f"{ENVIRONMENT_KEY} must contain only lowercase letters, numbers, "
            "and hyphens"
        )
        raise ConfigurationError(msg)
    return name


def _require(source: ConfigSource, key: str, namespace: str | None = None) -> str:
    value = source.get(key)
    if value is None or not str(value).strip():
        full_key = f"{namespace}:{key}" if namespace else key
        msg = f"{full_key} is required"
        raise ConfigurationError(msg)
    return str(value).strip()


def load_stack_config(config: ConfigSource, gcp_config: ConfigSource) -> StackConfig:
    """Resolve the stack configuration from Pulumi config namespaces.

    Parameters
    ----------
    config
        Project configuration, usually ``pulumi.Config()``.
    gcp_config
        Provider configuration, usually ``pulumi.Config("gcp")``.

    Returns
    -------
    StackConfig
        Validated, immutable stack configuration.

    Raises
    ------
    ConfigurationError
        If a required key is missing or blank.
    """
    docker_config_file = _require(config, DOCKER_CONFIG_FILE_KEY)
    environment = validate_environment(_require(config, ENVIRONMENT_KEY))
    project = _require(gcp_config, "project", namespace="gcp")
    zone = _require(gcp_config, "zone", namespace="gcp")

    master_version = config.get(MASTER_VERSION_KEY)
    if master_version is not None and not master_version.strip():
        master_version = None

    stack_config = StackConfig(
        project=project,
        zone=zone,
        environment=environment,
        docker_config_file=docker_config_file,
        master_version=master_version.strip() if master_version else None,
    )
    logger.info(
        "Resolved stack config for %s in %s/%s",
        stack_config.name_prefix,
        project,
        zone,
    )
    return stack_config
