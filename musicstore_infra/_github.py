"""GitHub Actions helpers for publishing stack outputs."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from pathlib import Path
from typing import TextIO


def mask_secret(value: str, stream: Callable[[str], object] = print) -> None:
    """Emit the GitHub Actions masking command for each line of ``value``.

    Multi-line secrets such as kubeconfigs are masked line by line, because
    the runner matches masks against individual log lines.

    Examples
    --------
    >>> mask_secret("token")
    ::add-mask::token
    """
    if not value:
        return
    for line in value.splitlines():
        if line:
            stream(f"::add-mask::{line}")


def parse_bool(value: str | None, *, default: bool = True) -> bool:
    """Parse a boolean-like string.

    Examples
    --------
    >>> parse_bool("yes")
    True
    >>> parse_bool(None, default=False)
    False
    """
    if value is None:
        return default
    return value.strip().lower() in ("true", "1", "yes")


def _heredoc_delimiter(value: str, base: str = "EOF") -> str:
    delimiter = base
    counter = 0
    while delimiter in value:
        counter += 1
        delimiter = f"{base}_{counter}"
    return delimiter


def _write_entry(handle: TextIO, key: str, value: str) -> None:
    if "\n" not in value and "\r" not in value:
        handle.write(f"{key}={value}\n")
        return
    delimiter = _heredoc_delimiter(value)
    handle.write(f"{key}<<{delimiter}\n")
    handle.write(f"{value}\n")
    handle.write(f"{delimiter}\n")


def append_github_env(env_file: Path, variables: Mapping[str, str]) -> None:
    """Append variables to the ``GITHUB_ENV`` file.

    Parameters
    ----------
    env_file
        Path to the ``GITHUB_ENV`` file; parent directories are created.
    variables
        Variables to append. Multi-line values use heredoc syntax.

    Examples
    --------
    >>> append_github_env(Path("/tmp/env"), {"CLUSTER_NAME": "musicstore-dev"})
    """
    env_file.parent.mkdir(parents=True, exist_ok=True)
    with env_file.open("a", encoding="utf-8") as handle:
        for key, value in variables.items():
            _write_entry(handle, key, value)
