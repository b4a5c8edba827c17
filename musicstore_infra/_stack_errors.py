"""Exception hierarchy for the musicstore stack.

These exceptions give the stack program and the operator CLI a
domain-specific error surface so callers can catch a single base error when
appropriate. Registry and cloud provider failures are raised by the Pulumi
engine itself and are never wrapped here.

Examples
--------
>>> raise ConfigurationError("envrionment must not be blank")
"""

from __future__ import annotations


class MusicstoreInfraError(Exception):
    """Base error for musicstore stack helpers.

    Parameters
    ----------
    message
        Human-readable error message describing the failure.

    Examples
    --------
    >>> raise MusicstoreInfraError("unexpected stack failure")
    """


class ConfigurationError(MusicstoreInfraError):
    """Raised when stack configuration is missing or malformed.

    Examples
    --------
    >>> raise ConfigurationError("docker-config-file must not be blank")
    """


class KubeconfigError(MusicstoreInfraError):
    """Raised when a kubeconfig cannot be synthesized from cluster attributes."""


class ResourceGraphError(MusicstoreInfraError):
    """Raised when the declaration graph is inconsistent.

    Examples
    --------
    >>> raise ResourceGraphError("cycle detected: cluster -> node-pool -> cluster")
    """


class PulumiCommandError(MusicstoreInfraError):
    """Raised when a Pulumi CLI command fails.

    Parameters
    ----------
    message
        Human-readable error message describing the Pulumi failure.

    Examples
    --------
    >>> raise PulumiCommandError("pulumi stack output failed: exit status 255")
    """
