"""Resolve operator inputs from CLI parameters, the environment, or defaults."""

from __future__ import annotations

import os
from collections import abc as cabc
from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True, slots=True)
class InputResolution:
    """Where to look for an input and what to do when it is absent."""

    env_key: str
    default: str | Path | None = None
    required: bool = False
    as_path: bool = False


def resolve_input(
    param_value: str | Path | None,
    resolution: InputResolution,
    env: cabc.Mapping[str, str] | None = None,
) -> str | Path | None:
    """Resolve an input; CLI values win over the environment, then defaults.

    Raises
    ------
    SystemExit
        If a required input is absent from both the CLI and the environment.

    Examples
    --------
    >>> resolve_input(None, InputResolution("STACK_NAME", default="dev"), env={})
    'dev'
    """
    if param_value is not None:
        return param_value

    env_value = (env if env is not None else os.environ).get(resolution.env_key)
    if env_value:
        return Path(env_value) if resolution.as_path else env_value

    if resolution.required:
        msg = f"{resolution.env_key} is required"
        raise SystemExit(msg)

    return resolution.default


def resolve_path(
    param_value: Path | None,
    resolution: InputResolution,
    env: cabc.Mapping[str, str] | None = None,
) -> Path | None:
    """Resolve an input and normalise it to a :class:`Path`."""
    value = resolve_input(param_value, resolution, env)
    if value is None:
        return None
    return value if isinstance(value, Path) else Path(str(value))
