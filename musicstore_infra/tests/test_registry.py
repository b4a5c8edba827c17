"""Unit tests for digest-keyed image pulls."""

from __future__ import annotations

from musicstore_infra._registry import build_pull_triggers

DIGEST = "sha256:4f1c2d3e"


def test_pull_triggers_are_the_digest() -> None:
    assert build_pull_triggers(DIGEST) == [DIGEST]


def test_new_digest_changes_pull_triggers() -> None:
    assert build_pull_triggers("sha256:99aa") != build_pull_triggers(DIGEST)
