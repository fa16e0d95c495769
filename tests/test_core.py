from __future__ import annotations

import json
from pathlib import Path

import pytest

from playtree.core import (
    DEFAULT_LOOP_LIMIT,
    DecisionRandomness,
    EngineConfig,
    RuntimePaths,
    config_from_mapping,
    contract_violation,
    persist_forensic_artifact,
    seeded_random,
)


def test_config_defaults_and_mapping():
    assert EngineConfig().loop_limit == DEFAULT_LOOP_LIMIT
    config = config_from_mapping({"loop_limit": 50, "journal_enabled": False})
    assert config.loop_limit == 50
    assert not config.journal_enabled


def test_config_rejects_unknown_keys_and_bad_limits():
    with pytest.raises(ValueError, match="unknown engine configuration keys: colour"):
        config_from_mapping({"colour": "red"})
    with pytest.raises(ValueError):
        config_from_mapping({"loop_limit": 0})


def test_runtime_paths(tmp_path: Path):
    paths = RuntimePaths(tmp_path)
    assert paths.journal_path == tmp_path / "data" / "journal.duckdb"
    assert paths.export_dir == tmp_path / "exports"
    assert paths.forensic_dir == tmp_path / "forensics"


def test_seeded_substreams_are_reproducible_and_independent():
    a, b = DecisionRandomness(seeded_random(8)), DecisionRandomness(seeded_random(8))
    draws_a = [a.draw() for _ in range(20)]
    assert draws_a == [b.draw() for _ in range(20)]
    assert all(0.0 <= d.selector_rand < 1.0 and 0.0 <= d.edge_rand < 1.0 for d in draws_a)
    assert any(d.selector_rand != d.edge_rand for d in draws_a)

    root = seeded_random(8)
    assert root.spawn("edge").rand() == seeded_random(8).spawn("edge").rand()
    assert root.spawn("edge").rand() != root.spawn("selector").rand()


def test_contract_violation_artifact_is_persisted(tmp_path: Path):
    error = contract_violation("UNKNOWN_PLAYHEAD", "no playhead 'x'", operation="select_playhead", playhead="x")
    assert str(error) == "no playhead 'x'"
    assert error.artifact.engine_scope == "playheads"
    assert error.artifact.identifiers == {"playhead": "x"}

    path = persist_forensic_artifact(error.artifact, tmp_path / "forensics")
    payload = json.loads(path.read_text(encoding="utf-8"))
    assert payload["error_code"] == "UNKNOWN_PLAYHEAD"
    assert payload["causal_fragment"] == ["select_playhead"]
