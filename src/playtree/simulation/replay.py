from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from playtree.contracts import ActionRequest, ActionType, Playtree
from playtree.core import EngineConfig, make_id
from playtree.graph import playtree_to_mapping
from playtree.simulation.runtime import PlayerRuntime


@dataclass(slots=True)
class ReplayAction:
    action_type: str
    payload: dict


class ReplayHarness:
    def __init__(self, seed: int, config: EngineConfig | None = None) -> None:
        self.seed = seed
        self.config = config
        self.actions: list[ReplayAction] = []

    def record(self, action_type: ActionType | str, payload: dict | None = None) -> None:
        value = action_type.value if isinstance(action_type, ActionType) else str(action_type)
        self.actions.append(ReplayAction(action_type=value, payload=dict(payload or {})))

    def record_load(self, playtree: Playtree) -> None:
        self.record(ActionType.LOAD_PLAYTREE, {"playtree": playtree_to_mapping(playtree)})

    def save(self, path: Path) -> None:
        path.write_text(json.dumps({"seed": self.seed, "actions": [{"action_type": a.action_type, "payload": a.payload} for a in self.actions]}, indent=2), encoding="utf-8")

    @staticmethod
    def load(path: Path) -> ReplayHarness:
        data = json.loads(path.read_text(encoding="utf-8"))
        harness = ReplayHarness(seed=int(data["seed"]))
        for raw in data["actions"]:
            harness.actions.append(ReplayAction(action_type=raw["action_type"], payload=raw["payload"]))
        return harness

    def replay(self, root: Path | None = None) -> tuple[dict[str, Any], dict[str, Any]]:
        runtime_a = PlayerRuntime(root=root / "replay_a" if root is not None else None, seed=self.seed, config=self.config)
        runtime_b = PlayerRuntime(root=root / "replay_b" if root is not None else None, seed=self.seed, config=self.config)

        for action in self.actions:
            runtime_a.handle_action(ActionRequest(make_id("req"), action.action_type, action.payload))
            runtime_b.handle_action(ActionRequest(make_id("req"), action.action_type, action.payload))

        if runtime_a.halted or runtime_b.halted:
            raise RuntimeError(f"replay runtime halted: {runtime_a.last_forensic or runtime_b.last_forensic}")
        return runtime_a.fingerprint(), runtime_b.fingerprint()
