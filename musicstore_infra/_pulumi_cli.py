"""Pulumi CLI orchestration helpers for the musicstore stack."""

from __future__ import annotations

import json
import logging
import os
from collections import abc as cabc
from pathlib import Path

from plumbum import CommandNotFound, local

from musicstore_infra._stack_errors import PulumiCommandError
from musicstore_infra._stack_models import PulumiResult

logger = logging.getLogger(__name__)

PULUMI = "pulumi"


def _validate_command_args(args: list[str]) -> None:
    """Reject Pulumi arguments that could not have come from a single token."""
    for arg in args:
        if not isinstance(arg, str):
            msg = f"Pulumi argument must be a string, got {type(arg).__name__}"
            raise TypeError(msg)
        if any(char in arg for char in ("\x00", "\n", "\r")):
            msg = "Pulumi argument contains an invalid control character"
            raise ValueError(msg)


def run_pulumi(
    args: list[str],
    cwd: Path,
    env: cabc.Mapping[str, str] | None = None,
) -> PulumiResult:
    """Execute a Pulumi command and return the result.

    Parameters
    ----------
    args
        Command arguments (without the ``pulumi`` prefix).
    cwd
        Pulumi project directory.
    env
        Extra environment variables for the command.

    Returns
    -------
    PulumiResult
        Result containing success status, output, and return code.

    Raises
    ------
    PulumiCommandError
        If the ``pulumi`` executable is not on the ``PATH``.

    Examples
    --------
    >>> from pathlib import Path
    >>> run_pulumi(["version"], Path(".")).success
    True
    """
    _validate_command_args(args)
    try:
        command = local[PULUMI]
    except CommandNotFound as exc:
        msg = "pulumi executable not found on PATH"
        raise PulumiCommandError(msg) from exc

    logger.debug("Running pulumi %s in %s", " ".join(args), cwd)
    return_code, stdout, stderr = command[args].run(
        retcode=None,
        cwd=str(cwd),
        env={**os.environ, **(env or {})},
    )
    return PulumiResult(
        success=return_code == 0,
        stdout=stdout,
        stderr=stderr,
        return_code=return_code,
    )


def pulumi_select_stack(cwd: Path, stack: str) -> PulumiResult:
    """Select ``stack``, creating it when it does not exist yet."""
    return run_pulumi(["stack", "select", "--create", stack, "--non-interactive"], cwd)


def pulumi_set_config(
    cwd: Path,
    stack: str,
    values: cabc.Mapping[str, str],
) -> PulumiResult:
    """Write plaintext stack configuration in a single ``config set-all`` call.

    Parameters
    ----------
    cwd
        Pulumi project directory.
    stack
        Stack to configure.
    values
        Configuration keys (``key`` or ``namespace:key``) and their values.

    Returns
    -------
    PulumiResult
        Result of the config command.
    """
    args = ["config", "set-all", "--stack", stack]
    for key, value in values.items():
        args.extend(["--plaintext", f"{key}={value}"])
    return run_pulumi(args, cwd)


def pulumi_preview(cwd: Path, stack: str) -> PulumiResult:
    """Run ``pulumi preview`` for ``stack``."""
    return run_pulumi(["preview", "--stack", stack, "--non-interactive", "--diff"], cwd)


def pulumi_up(cwd: Path, stack: str, *, auto_approve: bool = True) -> PulumiResult:
    """Run ``pulumi up`` for ``stack``.

    Parameters
    ----------
    cwd
        Pulumi project directory.
    stack
        Stack to update.
    auto_approve
        Whether to skip the interactive confirmation.

    Returns
    -------
    PulumiResult
        Result of the update.
    """
    args = ["up", "--stack", stack, "--non-interactive"]
    if auto_approve:
        args.append("--yes")
    return run_pulumi(args, cwd)


def pulumi_stack_output(cwd: Path, stack: str) -> dict[str, object]:
    """Retrieve every stack output, secrets included, as a mapping.

    Raises
    ------
    PulumiCommandError
        If the command fails or does not return a JSON object.

    Examples
    --------
    >>> from pathlib import Path
    >>> pulumi_stack_output(Path("."), "dev")["clusterName"]
    'musicstore-dev-5f3a2b1'
    """
    result = run_pulumi(
        ["stack", "output", "--json", "--show-secrets", "--stack", stack],
        cwd,
    )
    if not result.success:
        msg = (
            "pulumi stack output failed "
            f"(cwd={cwd}, return_code={result.return_code}): {result.stderr}"
        )
        raise PulumiCommandError(msg)

    try:
        outputs = json.loads(result.stdout)
    except json.JSONDecodeError as exc:
        msg = f"pulumi stack output returned invalid JSON: {exc}"
        raise PulumiCommandError(msg) from exc
    if not isinstance(outputs, dict):
        msg = "pulumi stack output must be a JSON object"
        raise PulumiCommandError(msg)
    return outputs
