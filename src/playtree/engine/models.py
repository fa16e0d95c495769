from __future__ import annotations

from dataclasses import dataclass, field

from playtree.contracts import Playedge
from playtree.engine.counters import CachedScope, PlaycounterStore
from playtree.engine.traversal import TraversalHop


@dataclass(slots=True)
class HistoryNode:
    node_id: str
    item_index: int | None
    mult_index: int
    traversed_playedge: Playedge | None = None
    hops: tuple[TraversalHop, ...] = ()
    item_counted: bool = False
    node_counted: bool = False
    cached_scopes: tuple[CachedScope, ...] = ()


@dataclass(slots=True)
class Playhead:
    key: str
    name: str
    index: int
    node_id: str
    item_index: int | None
    counters: PlaycounterStore
    mult_index: int = 0
    history: list[HistoryNode] = field(default_factory=list)
    stopped: bool = False

    @property
    def start_node_id(self) -> str:
        if self.history:
            return self.history[0].node_id
        return self.node_id


@dataclass(slots=True)
class StepPlan:
    node_id: str
    item_index: int | None
    mult_index: int
    history_entry: HistoryNode | None
    messages: list[str]
    reset: bool = False
