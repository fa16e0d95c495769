from __future__ import annotations

import logging

from playtree.contracts import (
    CounterKind,
    PlayerSnapshot,
    PlayEvent,
    PlayheadView,
    Playitem,
    Playtree,
    ValidationResult,
)
from playtree.core import EngineConfig, EventBus, contract_violation, make_event
from playtree.engine.advance import AdvancePolicy
from playtree.engine.counters import CounterLayout
from playtree.engine.models import HistoryNode, Playhead, StepPlan
from playtree.engine.scopes import ScopeLattice, ScopeMaps, resolve_scopes
from playtree.engine.traversal import EdgeTraversal
from playtree.engine.validation import PlaytreeValidator

logger = logging.getLogger(__name__)


class PlayheadEngine:
    """Registry of playheads over one loaded playtree and the operations that move them.

    Every public operation either commits its full effect or raises with the
    previous state intact. Randomness arrives as pre-drawn floats in ``[0, 1)``.
    """

    def __init__(
        self,
        config: EngineConfig | None = None,
        *,
        event_bus: EventBus | None = None,
        validator: PlaytreeValidator | None = None,
    ) -> None:
        self._config = config or EngineConfig()
        self._config.validate()
        self._event_bus = event_bus or EventBus()
        self._validator = validator or PlaytreeValidator()

        self._playtree: Playtree | None = None
        self._lattice: ScopeLattice | None = None
        self._scope_maps: ScopeMaps | None = None
        self._layout: CounterLayout | None = None
        self._policy: AdvancePolicy | None = None
        self._traversal: EdgeTraversal | None = None
        self._validation: ValidationResult | None = None

        self._playheads: dict[str, Playhead] = {}
        self._order: list[str] = []
        self._current: str | None = None
        self._messages: list[str] = []
        self._playing = False

    @property
    def event_bus(self) -> EventBus:
        return self._event_bus

    @property
    def loaded(self) -> bool:
        return self._playtree is not None

    @property
    def playtree(self) -> Playtree | None:
        return self._playtree

    @property
    def lattice(self) -> ScopeLattice | None:
        return self._lattice

    @property
    def scope_maps(self) -> ScopeMaps | None:
        return self._scope_maps

    @property
    def layout(self) -> CounterLayout | None:
        return self._layout

    @property
    def validation(self) -> ValidationResult | None:
        return self._validation

    @property
    def messages(self) -> list[str]:
        return list(self._messages)

    @property
    def playing(self) -> bool:
        return self._playing

    @property
    def current_key(self) -> str | None:
        return self._current

    @property
    def playheads(self) -> list[Playhead]:
        return [self._playheads[key] for key in self._order]

    def playhead(self, key: str | None = None) -> Playhead:
        self._require_loaded("playhead")
        lookup = key if key is not None else self._current
        if lookup is None or lookup not in self._playheads:
            raise contract_violation(
                "UNKNOWN_PLAYHEAD",
                f"no playhead with key '{lookup}'",
                operation="playhead",
                state_snapshot={"playheads": list(self._order)},
                playhead=lookup,
            )
        return self._playheads[lookup]

    def load(self, playtree: Playtree, selector_rand: float = 0.0) -> PlayerSnapshot:
        self._check_rand("load", "selector_rand", selector_rand)

        validation = self._validator.validate(playtree)
        lattice = ScopeLattice.from_playnodes(playtree.playnodes)
        scope_maps = resolve_scopes(playtree, lattice)
        layout = CounterLayout.build(playtree, scope_maps)
        policy = AdvancePolicy(scope_maps)
        traversal = EdgeTraversal(playtree, scope_maps, policy, self._config.loop_limit)

        messages = [f'Playtree "{playtree.name}" loaded.']
        for issue in validation.issues:
            logger.warning("playtree %s: %s %s", playtree.summary.playtree_id, issue.code, issue.message)
        for node in playtree.playnodes.values():
            for edge in node.next:
                if edge.target_id not in playtree.playnodes:
                    messages.append(f"Playedge '{node.name} => {edge.target_id}' points at missing playnode '{edge.target_id}'; skipping it.")

        playheads: dict[str, Playhead] = {}
        for node_id, root in sorted(playtree.playroots.items(), key=lambda kv: (kv[1].index, kv[0])):
            node = playtree.playnodes.get(node_id)
            if node is None:
                messages.append(f"Playroot '{root.name}' points at missing playnode '{node_id}'; skipping its playhead.")
                continue
            counters = layout.seed()
            playheads[node_id] = Playhead(
                key=node_id,
                name=root.name,
                index=root.index,
                node_id=node_id,
                item_index=policy.initial_index(node_id, node, counters, selector_rand),
                counters=counters,
            )
        if not playheads:
            messages.append(f'Playtree "{playtree.name}" has no playheads.')

        self._playtree = playtree
        self._lattice = lattice
        self._scope_maps = scope_maps
        self._layout = layout
        self._policy = policy
        self._traversal = traversal
        self._validation = validation
        self._playheads = playheads
        self._order = list(playheads)
        self._current = self._order[0] if self._order else None
        self._messages = []
        self._playing = False
        for message in messages:
            self._log(message)
        self._event_bus.publish(
            make_event("playheads", "load", messages[0], playhead=self._current, playheads=len(playheads), issues=len(validation.issues))
        )
        return self.snapshot()

    def advance(self, event: PlayEvent | str, selector_rand: float, edge_rand: float) -> PlayerSnapshot:
        self._require_loaded("advance")
        self._check_rand("advance", "selector_rand", selector_rand)
        self._check_rand("advance", "edge_rand", edge_rand)
        try:
            event = PlayEvent(event)
        except ValueError as exc:
            raise contract_violation("UNKNOWN_PLAY_EVENT", f"unknown play event '{event}'", operation="advance") from exc

        if self._current is None:
            self._log("No playheads to advance.")
            return self.snapshot()

        playhead = self._playheads[self._current]
        playhead.counters.begin()
        try:
            plan = self._plan_advance(playhead, event, selector_rand, edge_rand)
        except Exception:
            playhead.counters.rollback()
            raise
        playhead.counters.commit()

        for message in plan.messages:
            self._log(message)
        if plan.reset:
            self._apply_reset(playhead, plan)
        else:
            self._apply_move(playhead, plan, event)
        return self.snapshot()

    def rewind(self) -> PlayerSnapshot:
        self._require_loaded("rewind")
        if self._current is None:
            return self.snapshot()
        playhead = self._playheads[self._current]
        if not playhead.history:
            return self.snapshot()

        entry = playhead.history[-1]
        playhead.counters.begin()
        try:
            self._undo_counters(playhead, entry)
        except Exception:
            playhead.counters.rollback()
            raise
        playhead.counters.commit()

        playhead.history.pop()
        playhead.node_id = entry.node_id
        playhead.item_index = entry.item_index
        playhead.mult_index = entry.mult_index

        message = f"Skipping backward to playnode '{self._playtree.playnodes[entry.node_id].name}'."
        self._log(message)
        self._event_bus.publish(make_event("playheads", "rewind", message, playhead=playhead.key, node_id=entry.node_id, item_index=entry.item_index))
        return self.snapshot()

    def switch_playhead(self, direction: int) -> PlayerSnapshot:
        self._require_loaded("switch_playhead")
        if direction not in (1, -1):
            raise contract_violation("INVALID_DIRECTION", f"direction must be +1 or -1, got {direction}", operation="switch_playhead")
        if self._current is None:
            self._log("No playheads to switch between.")
            return self.snapshot()
        position = self._order.index(self._current)
        self._current = self._order[(position + direction) % len(self._order)]
        self._announce_current("switch")
        return self.snapshot()

    def select_playhead(self, key: str) -> PlayerSnapshot:
        target = self.playhead(key)
        self._current = target.key
        self._announce_current("select")
        return self.snapshot()

    def play(self) -> PlayerSnapshot:
        self._require_loaded("play")
        self._playing = True
        if self._current is not None:
            self._playheads[self._current].stopped = False
        return self.snapshot()

    def pause(self) -> PlayerSnapshot:
        self._require_loaded("pause")
        self._playing = False
        self._log("Pausing audio.")
        return self.snapshot()

    def log_message(self, message: str) -> None:
        self._log(message)

    def snapshot(self) -> PlayerSnapshot:
        return PlayerSnapshot(
            playtree_name=self._playtree.name if self._playtree is not None else "",
            current_playhead=self._current,
            playheads=[self._view(self._playheads[key]) for key in self._order],
            messages=list(self._messages),
            playing=self._playing,
        )

    def _plan_advance(self, playhead: Playhead, event: PlayEvent, selector_rand: float, edge_rand: float) -> StepPlan:
        nodes = self._playtree.playnodes
        node_id = playhead.node_id
        node = nodes[node_id]
        scope = self._scope_maps.node_scope(node_id)
        counters = playhead.counters
        messages: list[str] = []

        item_counted = False
        item = self._item_at(node_id, playhead.item_index)
        if item is not None:
            messages.append("Skipping forward..." if event == PlayEvent.SKIPPED_FORWARD else f"{item.name} ended...")
            item_counted = counters.increment(CounterKind.ITEM, scope, node_id, item.item_id)

        step = self._policy.step(node_id, node, counters, playhead.item_index, playhead.mult_index)
        if step is not None:
            entry = HistoryNode(
                node_id=node_id,
                item_index=playhead.item_index,
                mult_index=playhead.mult_index,
                item_counted=item_counted,
            )
            return StepPlan(node_id, step.item_index, step.mult_index, entry, messages)

        node_counted = counters.increment(CounterKind.NODE, scope, node_id)
        outcome = self._traversal.traverse(node_id, counters, selector_rand, edge_rand)
        messages.extend(outcome.messages)
        if outcome.success:
            entry = HistoryNode(
                node_id=node_id,
                item_index=playhead.item_index,
                mult_index=playhead.mult_index,
                traversed_playedge=outcome.edge,
                hops=tuple(outcome.hops),
                item_counted=item_counted,
                node_counted=node_counted,
                cached_scopes=tuple(outcome.cached_scopes.values()),
            )
            return StepPlan(outcome.node_id, outcome.item_index, 0, entry, messages)

        start_id = playhead.start_node_id
        counters.zero_all()
        start_index = self._policy.initial_index(start_id, nodes[start_id], counters, selector_rand)
        return StepPlan(start_id, start_index, 0, None, messages, reset=True)

    def _apply_move(self, playhead: Playhead, plan: StepPlan, event: PlayEvent) -> None:
        playhead.history.append(plan.history_entry)
        playhead.node_id = plan.node_id
        playhead.item_index = plan.item_index
        playhead.mult_index = plan.mult_index
        playhead.stopped = False
        edge = plan.history_entry.traversed_playedge
        self._event_bus.publish(
            make_event(
                "playheads",
                "traverse" if edge is not None else "advance",
                plan.messages[-1] if plan.messages else event.value,
                playhead=playhead.key,
                node_id=plan.node_id,
                item_index=plan.item_index,
                mult_index=plan.mult_index,
                hops=len(plan.history_entry.hops),
            )
        )

    def _apply_reset(self, playhead: Playhead, plan: StepPlan) -> None:
        playhead.history.clear()
        playhead.node_id = plan.node_id
        playhead.item_index = plan.item_index
        playhead.mult_index = 0
        playhead.stopped = True

        position = self._order.index(playhead.key)
        self._current = self._order[(position + 1) % len(self._order)]
        self._playing = not self._playheads[self._current].stopped

        node_name = self._playtree.playnodes[plan.node_id].name
        logger.info("playhead %s reset to %s", playhead.key, plan.node_id)
        self._event_bus.publish(
            make_event("playheads", "reset", f"Playhead {playhead.name} reset to playnode '{node_name}'.", playhead=playhead.key, node_id=plan.node_id)
        )
        if self._current != playhead.key:
            self._announce_current("switch")

    def _undo_counters(self, playhead: Playhead, entry: HistoryNode) -> None:
        counters = playhead.counters
        for cached in entry.cached_scopes:
            counters.restore_scope(cached)

        scope = self._scope_maps.node_scope(entry.node_id)
        item = self._item_at(entry.node_id, entry.item_index)
        if entry.item_counted and item is not None:
            counters.decrement(CounterKind.ITEM, scope, entry.node_id, item.item_id)
        if entry.node_counted:
            counters.decrement(CounterKind.NODE, scope, entry.node_id)
        for hop in reversed(entry.hops):
            if hop.counted:
                edge_scope = self._scope_maps.edge_scope(hop.source_id, hop.edge.target_id)
                counters.decrement(CounterKind.EDGE, edge_scope, hop.source_id, hop.edge.target_id)

    def _announce_current(self, event_type: str) -> None:
        playhead = self._playheads[self._current]
        message = f"Moving to playhead {playhead.name}."
        self._log(message)
        self._event_bus.publish(make_event("playheads", event_type, message, playhead=playhead.key))

    def _item_at(self, node_id: str, item_index: int | None) -> Playitem | None:
        if item_index is None:
            return None
        items = self._playtree.playnodes[node_id].playitems
        if 0 <= item_index < len(items):
            return items[item_index]
        return None

    def _view(self, playhead: Playhead) -> PlayheadView:
        node = self._playtree.playnodes[playhead.node_id]
        scope = self._scope_maps.node_scope(playhead.node_id)
        item = self._item_at(playhead.node_id, playhead.item_index)
        return PlayheadView(
            key=playhead.key,
            name=playhead.name,
            node_id=playhead.node_id,
            node_name=node.name,
            item_index=playhead.item_index,
            mult_index=playhead.mult_index,
            item_id=item.item_id if item else None,
            item_name=item.name if item else None,
            item_uri=item.uri if item else None,
            node_playcount=playhead.counters.read(CounterKind.NODE, scope, playhead.node_id),
            node_limit=node.limit,
            item_playcount=playhead.counters.read(CounterKind.ITEM, scope, playhead.node_id, item.item_id) if item else None,
            item_limit=item.limit if item else None,
            scope_id=scope,
            stopped=playhead.stopped,
            history_depth=len(playhead.history),
        )

    def _log(self, message: str) -> None:
        self._messages.append(message)
        logger.debug(message)

    def _require_loaded(self, operation: str) -> None:
        if self._playtree is None:
            raise contract_violation("ENGINE_NOT_LOADED", f"{operation} called before a playtree was loaded", operation=operation)

    def _check_rand(self, operation: str, name: str, value: float) -> None:
        if not 0.0 <= value < 1.0:
            raise contract_violation(
                "RANDOM_OUT_OF_RANGE",
                f"{name} must be in [0, 1), got {value}",
                operation=operation,
                context={name: value},
            )
