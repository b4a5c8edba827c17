"""Data models for the musicstore stack.

These models provide a small, typed contract shared by the stack program, the
kubeconfig synthesizer and the Pulumi CLI helpers, keeping data flow explicit
across module boundaries.

Examples
--------
>>> result = PulumiResult(success=True, stdout="ok", stderr="", return_code=0)
>>> result.success
True
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True, slots=True)
class RegistryImageRef:
    """A registry image resolved to its current content digest.

    Attributes
    ----------
    name
        Canonical image name reported by the registry.
    digest
        ``sha256`` digest of the image the tag currently points at.

    Examples
    --------
    >>> RegistryImageRef("gcr.io/proj1/musicstore:latest", "sha256:abc").digest
    'sha256:abc'
    """

    name: str
    digest: str


@dataclass(frozen=True, slots=True)
class ClusterAttributes:
    """Cluster attributes that only exist once the control plane is created.

    Attributes
    ----------
    name
        Cluster name assigned by the provider.
    endpoint
        IP address or hostname of the API server.
    ca_certificate
        Base64-encoded cluster CA certificate.
    """

    name: str
    endpoint: str
    ca_certificate: str = field(repr=False)


@dataclass(frozen=True, slots=True)
class PulumiResult:
    """Result of a Pulumi CLI command execution.

    Attributes
    ----------
    success
        Whether the command exited with status code ``0``.
    stdout
        Captured standard output.
    stderr
        Captured standard error.
    return_code
        Process exit status code returned by Pulumi.

    Examples
    --------
    >>> PulumiResult(success=True, stdout="ok", stderr="", return_code=0).success
    True
    """

    success: bool
    stdout: str
    stderr: str
    return_code: int
