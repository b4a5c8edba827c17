"""Unit tests for the stack provisioning CLI and flow."""

from __future__ import annotations

import inspect
import subprocess
import sys
from pathlib import Path

import pytest

from musicstore_infra._input_resolution import InputResolution, resolve_input
from musicstore_infra._provision_stack_flow import export_stack_outputs, provision_stack
from musicstore_infra._provision_stack_inputs import (
    ProvisionInputs,
    REPO_ROOT,
    RawProvisionInputs,
    build_config_values,
    resolve_provision_inputs,
)
from musicstore_infra._stack_errors import ConfigurationError, PulumiCommandError
from musicstore_infra._stack_models import PulumiResult
from musicstore_infra.provision_stack import main as provision_stack_main

FLOW = "musicstore_infra._provision_stack_flow"
OK = PulumiResult(True, "", "", 0)


def _make_inputs(tmp_path: Path, **overrides: object) -> ProvisionInputs:
    defaults: dict[str, object] = {
        "stack_name": "dev",
        "project": "proj1",
        "zone": "us-central1-a",
        "environment": "dev",
        "docker_config_file": "/tmp/docker/config.json",
        "master_version": None,
        "project_dir": tmp_path,
        "github_env": tmp_path / "env",
        "kubeconfig_path": None,
        "dry_run": True,
    }
    defaults.update(overrides)
    return ProvisionInputs(**defaults)


def _patch_pulumi(monkeypatch: pytest.MonkeyPatch, calls: list[str]) -> None:
    def record(step: str):
        def fake(*_args: object, **_kwargs: object) -> PulumiResult:
            calls.append(step)
            return OK

        return fake

    monkeypatch.setattr(f"{FLOW}.pulumi_select_stack", record("select"))
    monkeypatch.setattr(f"{FLOW}.pulumi_set_config", record("config"))
    monkeypatch.setattr(f"{FLOW}.pulumi_preview", record("preview"))
    monkeypatch.setattr(f"{FLOW}.pulumi_up", record("up"))


def _call_main(**overrides: object) -> object:
    """Call the CLI entrypoint with explicit None for every cyclopts parameter."""
    params: dict[str, object] = {
        name: None for name in inspect.signature(provision_stack_main).parameters
    }
    params.update(overrides)
    return provision_stack_main(**params)


def _set_required_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("STACK_NAME", "dev")
    monkeypatch.setenv("GCP_PROJECT", "proj1")
    monkeypatch.setenv("GCP_ZONE", "us-central1-a")
    monkeypatch.setenv("ENVIRONMENT", "dev")
    monkeypatch.setenv("DOCKER_CONFIG_FILE", "/tmp/docker/config.json")
    monkeypatch.setenv("GITHUB_ENV", str(tmp_path / "env"))
    monkeypatch.delenv("MASTER_VERSION", raising=False)
    monkeypatch.delenv("DRY_RUN", raising=False)
    monkeypatch.delenv("KUBECONFIG_PATH", raising=False)


def test_resolve_input_prefers_cli_then_env() -> None:
    resolution = InputResolution(env_key="GCP_ZONE", default="europe-west1-b")
    assert resolve_input("us-east1-b", resolution, env={"GCP_ZONE": "x"}) == "us-east1-b"
    assert resolve_input(None, resolution, env={"GCP_ZONE": "us-central1-a"}) == "us-central1-a"
    assert resolve_input(None, resolution, env={}) == "europe-west1-b"


def test_resolve_input_required_missing_exits() -> None:
    with pytest.raises(SystemExit, match="GCP_PROJECT is required"):
        resolve_input(None, InputResolution(env_key="GCP_PROJECT", required=True), env={})


def test_resolve_provision_inputs_cli_override(
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
) -> None:
    _set_required_env(monkeypatch, tmp_path)

    inputs = resolve_provision_inputs(RawProvisionInputs(environment="staging"))

    assert inputs.environment == "staging"
    assert inputs.project == "proj1"
    assert inputs.master_version is None
    assert inputs.dry_run is False
    assert inputs.github_env == tmp_path / "env"


def test_resolve_provision_inputs_requires_project(
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
) -> None:
    _set_required_env(monkeypatch, tmp_path)
    monkeypatch.delenv("GCP_PROJECT")

    with pytest.raises(SystemExit, match="GCP_PROJECT is required"):
        resolve_provision_inputs(RawProvisionInputs())


def test_resolve_provision_inputs_from_cli_values_only(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    for key in (
        "STACK_NAME",
        "GCP_PROJECT",
        "GCP_ZONE",
        "ENVIRONMENT",
        "DOCKER_CONFIG_FILE",
        "MASTER_VERSION",
        "DRY_RUN",
        "GITHUB_ENV",
        "PULUMI_PROJECT_DIR",
        "KUBECONFIG_PATH",
    ):
        monkeypatch.delenv(key, raising=False)

    inputs = resolve_provision_inputs(
        RawProvisionInputs(
            stack_name="dev",
            project="proj1",
            zone="us-central1-a",
            environment="dev",
            docker_config_file="/tmp/docker/config.json",
        )
    )

    assert inputs.stack_name == "dev"
    assert inputs.project_dir == REPO_ROOT
    assert inputs.github_env == Path("/tmp/github-env-undefined")
    assert inputs.kubeconfig_path is None
    assert inputs.dry_run is False


def test_build_config_values(tmp_path: Path) -> None:
    values = build_config_values(_make_inputs(tmp_path, master_version="1.29.1-gke.1"))
    assert values == {
        "gcp:project": "proj1",
        "gcp:zone": "us-central1-a",
        "docker-config-file": "/tmp/docker/config.json",
        "envrionment": "dev",
        "masterVersion": "1.29.1-gke.1",
    }


def test_build_config_values_omits_unpinned_version(tmp_path: Path) -> None:
    assert "masterVersion" not in build_config_values(_make_inputs(tmp_path))


def test_build_config_values_rejects_bad_environment(tmp_path: Path) -> None:
    with pytest.raises(ConfigurationError):
        build_config_values(_make_inputs(tmp_path, environment="Dev_1"))


def test_provision_stack_dry_run_skips_up(
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
) -> None:
    calls: list[str] = []
    _patch_pulumi(monkeypatch, calls)
    inputs = _make_inputs(tmp_path, dry_run=True)

    success, outputs = provision_stack(inputs, build_config_values(inputs))

    assert success is True
    assert outputs == {}
    assert calls == ["select", "config", "preview"]


def test_provision_stack_up_returns_outputs(
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
) -> None:
    calls: list[str] = []
    _patch_pulumi(monkeypatch, calls)
    monkeypatch.setattr(
        f"{FLOW}.pulumi_stack_output",
        lambda *_args, **_kwargs: {"clusterName": "musicstore-dev-5f3a2b1"},
    )
    inputs = _make_inputs(tmp_path, dry_run=False)

    success, outputs = provision_stack(inputs, build_config_values(inputs))

    assert success is True
    assert outputs == {"clusterName": "musicstore-dev-5f3a2b1"}
    assert calls == ["select", "config", "preview", "up"]


def test_provision_stack_stops_on_failed_preview(
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
    capsys: pytest.CaptureFixture[str],
) -> None:
    calls: list[str] = []
    _patch_pulumi(monkeypatch, calls)
    monkeypatch.setattr(
        f"{FLOW}.pulumi_preview",
        lambda *_args, **_kwargs: PulumiResult(False, "", "quota exceeded", 255),
    )
    inputs = _make_inputs(tmp_path, dry_run=False)

    success, outputs = provision_stack(inputs, build_config_values(inputs))

    assert success is False
    assert outputs == {}
    assert "up" not in calls
    assert "pulumi preview failed: quota exceeded" in capsys.readouterr().err


def test_provision_stack_output_failure(
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
) -> None:
    _patch_pulumi(monkeypatch, [])

    def fail(*_args: object, **_kwargs: object) -> dict[str, object]:
        raise PulumiCommandError("pulumi stack output failed")

    monkeypatch.setattr(f"{FLOW}.pulumi_stack_output", fail)
    inputs = _make_inputs(tmp_path, dry_run=False)

    assert provision_stack(inputs, build_config_values(inputs)) == (False, {})


def test_export_stack_outputs_masks_and_writes_kubeconfig(
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
) -> None:
    kubeconfig_path = tmp_path / "kube" / "config"
    inputs = _make_inputs(tmp_path, kubeconfig_path=kubeconfig_path)
    masked: list[str] = []
    monkeypatch.setattr(f"{FLOW}.mask_secret", masked.append)

    export_stack_outputs(
        inputs,
        {
            "clusterName": "musicstore-dev-5f3a2b1",
            "clusterMasterIP": {"value": "1.2.3.4"},
            "servicePublicIP": None,
            "kubeconfig": "apiVersion: v1\nkind: Config",
        },
    )

    content = inputs.github_env.read_text(encoding="utf-8")
    assert "CLUSTER_NAME=musicstore-dev-5f3a2b1" in content
    assert "CLUSTER_ENDPOINT=1.2.3.4" in content
    assert "SERVICE_PUBLIC_IP" not in content
    assert "KUBECONFIG_RAW<<" in content
    assert masked == ["apiVersion: v1\nkind: Config"]
    assert kubeconfig_path.read_text(encoding="utf-8") == "apiVersion: v1\nkind: Config"
    assert kubeconfig_path.stat().st_mode & 0o777 == 0o600


def test_main_returns_failure_exit_code(
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
) -> None:
    _set_required_env(monkeypatch, tmp_path)
    monkeypatch.setattr(
        "musicstore_infra.provision_stack.provision_stack",
        lambda *_args, **_kwargs: (False, {}),
    )

    assert _call_main(project_dir=tmp_path) == 1


def test_main_exports_outputs(
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
) -> None:
    _set_required_env(monkeypatch, tmp_path)
    monkeypatch.setattr(
        "musicstore_infra.provision_stack.provision_stack",
        lambda *_args, **_kwargs: (True, {"namespaceName": "musicstore-dev-a1b2"}),
    )

    assert _call_main(project_dir=tmp_path, dry_run="false") == 0
    content = (tmp_path / "env").read_text(encoding="utf-8")
    assert "NAMESPACE_NAME=musicstore-dev-a1b2" in content


def test_script_header_declares_only_cli_dependencies() -> None:
    script = Path(provision_stack_main.__code__.co_filename).read_text(encoding="utf-8")
    header = script.split("# /// script", 1)[1].split("# ///", 1)[0]
    assert '# dependencies = ["cyclopts>=2.9", "plumbum"]' in header


def test_cli_import_chain_does_not_load_pulumi() -> None:
    import_check = (
        "import sys\n"
        "import musicstore_infra.provision_stack\n"
        "print('pulumi' in sys.modules)\n"
    )
    completed = subprocess.run(  # noqa: S603
        [sys.executable, "-c", import_check],
        cwd=REPO_ROOT,
        capture_output=True,
        text=True,
        check=True,
    )
    assert completed.stdout.strip() == "False"
