from __future__ import annotations

import logging
from dataclasses import dataclass, field
from itertools import groupby
from operator import attrgetter

from playtree.contracts import DEFAULT_SCOPE_ID, CounterKind, Playedge, Playnode, Playtree
from playtree.engine.advance import AdvancePolicy
from playtree.engine.counters import CachedScope, PlaycounterStore
from playtree.engine.scopes import ScopeMaps
from playtree.engine.selection import weighted_pick

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class TraversalHop:
    source_id: str
    edge: Playedge
    counted: bool


@dataclass(slots=True)
class TraversalOutcome:
    success: bool
    node_id: str | None = None
    item_index: int | None = None
    edge: Playedge | None = None
    hops: list[TraversalHop] = field(default_factory=list)
    cached_scopes: dict[int, CachedScope] = field(default_factory=dict)
    messages: list[str] = field(default_factory=list)
    reason: str | None = None


class EdgeTraversal:
    def __init__(self, playtree: Playtree, scope_maps: ScopeMaps, policy: AdvancePolicy, loop_limit: int) -> None:
        self._playtree = playtree
        self._scope_maps = scope_maps
        self._policy = policy
        self._loop_limit = loop_limit

    def edge_available(self, source_id: str, edge: Playedge, counters: PlaycounterStore) -> bool:
        if edge.target_id not in self._playtree.playnodes:
            return False
        scope = self._scope_maps.edge_scope(source_id, edge.target_id)
        count = counters.read(CounterKind.EDGE, scope, source_id, edge.target_id)
        return count is None or count < edge.limit

    def eligible_group(self, source_id: str, node: Playnode, counters: PlaycounterStore) -> list[Playedge]:
        by_priority = sorted(node.next, key=attrgetter("priority"))
        for _, group in groupby(by_priority, key=attrgetter("priority")):
            eligible = [edge for edge in group if self.edge_available(source_id, edge, counters)]
            if eligible:
                return eligible
        return []

    def choose_edge(self, source_id: str, node: Playnode, counters: PlaycounterStore, edge_rand: float) -> Playedge | None:
        group = self.eligible_group(source_id, node, counters)
        if not group:
            return None
        pick = weighted_pick([edge.weight for edge in group], edge_rand)
        # a group with no positive shares still yields its first edge
        return group[pick if pick is not None else 0]

    def traverse(
        self,
        start_id: str,
        counters: PlaycounterStore,
        selector_rand: float,
        edge_rand: float,
    ) -> TraversalOutcome:
        outcome = TraversalOutcome(success=False)
        nodes = self._playtree.playnodes
        source_id = start_id
        exiting: set[int] = set()

        for _ in range(self._loop_limit):
            source = nodes[source_id]
            if not source.next:
                return self._fail(outcome, f"Playnode {source.name} has no outgoing edges. Resetting playhead.")

            edge = self.choose_edge(source_id, source, counters, edge_rand)
            if edge is None:
                return self._fail(outcome, f"Playnode {source.name} has no available outgoing edges. Resetting playhead.")

            target_id = edge.target_id
            target = nodes[target_id]
            edge_scope = self._scope_maps.edge_scope(source_id, target_id)
            incremented = counters.increment(CounterKind.EDGE, edge_scope, source_id, target_id)
            # An increment inside an already-cached scope is undone by restoring that scope.
            outcome.hops.append(TraversalHop(source_id=source_id, edge=edge, counted=incremented and edge_scope not in outcome.cached_scopes))

            count = counters.read(CounterKind.EDGE, edge_scope, source_id, target_id)
            tally = f" ({count} / {edge.limit})" if count is not None else ""
            outcome.messages.append(f"Traversing playedge '{source.name} => {target.name}'{tally}")

            exiting |= set(source.playscopes) - set(target.playscopes) - {DEFAULT_SCOPE_ID}
            for scope in sorted(exiting):
                cached = counters.cache_and_zero_scope(scope)
                outcome.cached_scopes.setdefault(scope, cached)

            target_scope = self._scope_maps.node_scope(target_id)
            node_count = counters.read(CounterKind.NODE, target_scope, target_id)
            if node_count is not None and node_count >= target.limit:
                outcome.messages.append(f"Passing through playnode '{target.name}' whose play count has been exceeded...")
                source_id = target_id
                continue

            item_index = self._policy.initial_index(target_id, target, counters, selector_rand)
            if item_index is None:
                if not target.playitems:
                    outcome.messages.append(f"Passing through playnode '{target.name}' with no songs...")
                else:
                    outcome.messages.append(f"Passing through playnode '{target.name}' whose songs have all exceeded play count...")
                source_id = target_id
                continue

            outcome.success = True
            outcome.node_id = target_id
            outcome.item_index = item_index
            outcome.edge = edge
            return outcome

        logger.info("traversal from %s hit loop limit %d", start_id, self._loop_limit)
        return self._fail(outcome, "Too many playnodes have been passed through with no song to play. Resetting playhead.")

    def _fail(self, outcome: TraversalOutcome, reason: str) -> TraversalOutcome:
        outcome.success = False
        outcome.reason = reason
        outcome.messages.append(reason)
        return outcome
