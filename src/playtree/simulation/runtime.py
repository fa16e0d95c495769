from __future__ import annotations

import logging
from dataclasses import asdict
from pathlib import Path
from typing import Any

from playtree.contracts import (
    ActionRequest,
    ActionResult,
    ActionType,
    ForensicArtifact,
    PlayDecision,
    PlayerSnapshot,
    PlayEvent,
    ValidationError,
)
from playtree.core import (
    DecisionRandomness,
    EngineConfig,
    EngineIntegrityError,
    EventBus,
    RandomDraw,
    RuntimePaths,
    build_forensic_artifact,
    make_id,
    now_utc,
    persist_forensic_artifact,
    playback_random,
    seeded_random,
)
from playtree.engine import PlayheadEngine
from playtree.export import ExportService
from playtree.graph import load_playtree_file, playtree_from_mapping
from playtree.persistence import PlayJournalStore

logger = logging.getLogger(__name__)

ADVANCE_EVENTS = {
    ActionType.SONG_ENDED: PlayEvent.SONG_ENDED,
    ActionType.SKIP_FORWARD: PlayEvent.SKIPPED_FORWARD,
}


class PlayerRuntime:
    def __init__(self, root: Path | None = None, seed: int | None = None, config: EngineConfig | None = None) -> None:
        self.config = config or EngineConfig()
        self.config.validate()
        self.paths = RuntimePaths(root) if root is not None else None
        self.seed = seed

        self.rand = seeded_random(seed) if seed is not None else playback_random()
        self.randomness = DecisionRandomness(self.rand)
        self.event_bus = EventBus()
        self.engine = PlayheadEngine(self.config, event_bus=self.event_bus)

        self.journal: PlayJournalStore | None = None
        if self.paths is not None and self.config.journal_enabled:
            self.journal = PlayJournalStore(self.paths.journal_path)
            self.journal.initialize_schema()

        self.halted = False
        self.last_forensic: ForensicArtifact | None = None
        self.last_forensic_path: str | None = None
        self._sequence = 0

    def handle_action(self, request: ActionRequest) -> ActionResult:
        if self.halted:
            return ActionResult(
                request.request_id,
                False,
                f"runtime halted after integrity failure; forensic={self.last_forensic_path}",
                {"forensic_path": self.last_forensic_path},
            )

        try:
            return self._handle_action_core(request)
        except EngineIntegrityError as exc:
            self._halt(exc.artifact)
            return ActionResult(
                request.request_id,
                False,
                f"integrity failure: {exc.artifact.error_code}",
                {"forensic_path": self.last_forensic_path},
            )
        except Exception as exc:
            artifact = build_forensic_artifact(
                engine_scope="runtime",
                error_code="UNHANDLED_RUNTIME_EXCEPTION",
                message=str(exc),
                state_snapshot={"current_playhead": self.engine.current_key, "loaded": self.engine.loaded},
                context={"action_type": str(request.action_type), "payload": request.payload},
                identifiers={"request_id": request.request_id},
                causal_fragment=["runtime_dispatch"],
            )
            self._halt(artifact)
            return ActionResult(
                request.request_id,
                False,
                f"runtime hard-stopped: {exc}",
                {"forensic_path": self.last_forensic_path},
            )

    def fingerprint(self) -> dict[str, Any]:
        if not self.engine.loaded:
            return {"loaded": False}
        return {
            "loaded": True,
            "current_playhead": self.engine.current_key,
            "playing": self.engine.playing,
            "playheads": [
                {
                    "key": p.key,
                    "node_id": p.node_id,
                    "item_index": p.item_index,
                    "mult_index": p.mult_index,
                    "stopped": p.stopped,
                    "history": [h.node_id for h in p.history],
                    "counters": p.counters.as_nested(),
                }
                for p in self.engine.playheads
            ],
            "messages": self.engine.messages,
        }

    def export(self) -> list[Path]:
        if self.paths is None or self.journal is None:
            raise RuntimeError("export requires a runtime root with the play journal enabled")
        return ExportService(self.paths.journal_path).export_journal(self.paths.export_dir)

    def _handle_action_core(self, request: ActionRequest) -> ActionResult:
        try:
            action = self._normalize_action(request.action_type)
        except ValueError:
            return ActionResult(request.request_id, False, f"Unsupported action '{request.action_type}'")

        if action == ActionType.LOAD_PLAYTREE:
            return self._load(request)

        if action == ActionType.EXPORT:
            try:
                outputs = self.export()
            except RuntimeError as exc:
                return ActionResult(request.request_id, False, f"export unavailable: {exc}")
            return ActionResult(request.request_id, True, "exported play journal", data={"paths": [str(p) for p in outputs]})

        if not self.engine.loaded:
            return ActionResult(request.request_id, False, "no playtree loaded")

        before = len(self.engine.messages)

        if action in ADVANCE_EVENTS:
            draw = self.randomness.draw()
            key = self.engine.current_key
            from_node = self.engine.playhead(key).node_id if key is not None else None
            snapshot = self.engine.advance(ADVANCE_EVENTS[action], draw.selector_rand, draw.edge_rand)
            self._journal(action, key, from_node, snapshot, draw)
            return self._result(request, action, snapshot, before)

        if action == ActionType.SKIP_BACKWARD:
            key = self.engine.current_key
            from_node = self.engine.playhead(key).node_id if key is not None else None
            snapshot = self.engine.rewind()
            self._journal(action, key, from_node, snapshot, None)
            return self._result(request, action, snapshot, before)

        if action in {ActionType.NEXT_PLAYHEAD, ActionType.PREVIOUS_PLAYHEAD}:
            snapshot = self.engine.switch_playhead(1 if action == ActionType.NEXT_PLAYHEAD else -1)
            return self._result(request, action, snapshot, before)

        if action == ActionType.SELECT_PLAYHEAD:
            key = request.payload.get("playhead")
            if key not in {p.key for p in self.engine.playheads}:
                return ActionResult(request.request_id, False, f"unknown playhead '{key}'")
            snapshot = self.engine.select_playhead(str(key))
            return self._result(request, action, snapshot, before)

        if action == ActionType.PLAY:
            return self._result(request, action, self.engine.play(), before)

        if action == ActionType.PAUSE:
            return self._result(request, action, self.engine.pause(), before)

        if action == ActionType.GET_SNAPSHOT:
            return self._result(request, action, self.engine.snapshot(), before)

        return ActionResult(request.request_id, False, f"Unsupported action '{request.action_type}'")

    def _load(self, request: ActionRequest) -> ActionResult:
        payload = request.payload
        try:
            if "playtree" in payload:
                playtree = playtree_from_mapping(payload["playtree"])
            elif "path" in payload:
                playtree = load_playtree_file(Path(payload["path"]))
            else:
                return ActionResult(request.request_id, False, "load_playtree requires 'playtree' or 'path'")
        except ValidationError as exc:
            return ActionResult(
                request.request_id,
                False,
                "playtree rejected by loader",
                data={"issues": [asdict(i) for i in exc.issues]},
            )

        draw = self.randomness.draw()
        snapshot = self.engine.load(playtree, draw.selector_rand)
        logger.info("loaded playtree %s with %d playheads", playtree.summary.playtree_id, len(snapshot.playheads))
        self._journal(ActionType.LOAD_PLAYTREE, snapshot.current_playhead, None, snapshot, draw)
        validation = self.engine.validation
        data = self._snapshot_data(snapshot, snapshot.messages)
        data["issues"] = [asdict(i) for i in validation.issues] if validation is not None else []
        return ActionResult(request.request_id, True, snapshot.messages[0], data=data)

    def _result(self, request: ActionRequest, action: ActionType, snapshot: PlayerSnapshot, before: int) -> ActionResult:
        new_messages = snapshot.messages[before:]
        message = new_messages[-1] if new_messages else action.value
        return ActionResult(request.request_id, True, message, data=self._snapshot_data(snapshot, new_messages))

    def _snapshot_data(self, snapshot: PlayerSnapshot, messages: list[str]) -> dict[str, Any]:
        return {
            "playtree_name": snapshot.playtree_name,
            "current_playhead": snapshot.current_playhead,
            "playing": snapshot.playing,
            "playheads": [asdict(v) for v in snapshot.playheads],
            "messages": list(messages),
        }

    def _journal(
        self,
        action: ActionType,
        key: str | None,
        from_node: str | None,
        snapshot: PlayerSnapshot,
        draw: RandomDraw | None,
    ) -> None:
        self._sequence += 1
        if self.journal is None:
            return
        view = next((v for v in snapshot.playheads if v.key == key), None)
        decision = PlayDecision(
            decision_id=make_id("dec"),
            sequence=self._sequence,
            action=action.value,
            playhead=key,
            from_node=from_node,
            to_node=view.node_id if view is not None else None,
            item_index=view.item_index if view is not None else None,
            mult_index=view.mult_index if view is not None else 0,
            selector_rand=draw.selector_rand if draw is not None else None,
            edge_rand=draw.edge_rand if draw is not None else None,
            reset=bool(view is not None and view.stopped and view.history_depth == 0 and action in ADVANCE_EVENTS),
            message=snapshot.messages[-1] if snapshot.messages else "",
            recorded_at=now_utc(),
        )
        counters = self.engine.playhead(key).counters.counts() if key is not None else None
        self.journal.record_decision(decision, counters)

    def _halt(self, artifact: ForensicArtifact) -> None:
        self.last_forensic = artifact
        if self.paths is not None:
            self.last_forensic_path = str(persist_forensic_artifact(artifact, self.paths.forensic_dir))
        self.halted = True
        logger.error("runtime halted: %s %s", artifact.error_code, artifact.message)

    def _normalize_action(self, action: ActionType | str) -> ActionType:
        if isinstance(action, ActionType):
            return action
        return ActionType(action)
