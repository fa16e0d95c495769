from __future__ import annotations

from dataclasses import dataclass

from playtree.contracts import CounterKind, NodeKind, Playitem, Playnode
from playtree.engine.counters import PlaycounterStore
from playtree.engine.scopes import ScopeMaps
from playtree.engine.selection import weighted_pick


@dataclass(frozen=True, slots=True)
class IntraStep:
    item_index: int
    mult_index: int


class AdvancePolicy:
    """Decides which item of a single playnode plays next."""

    def __init__(self, scope_maps: ScopeMaps) -> None:
        self._scope_maps = scope_maps

    def item_playcount(self, node_id: str, item: Playitem, counters: PlaycounterStore) -> int | None:
        return counters.read(CounterKind.ITEM, self._scope_maps.node_scope(node_id), node_id, item.item_id)

    def item_exhausted(self, node_id: str, item: Playitem, counters: PlaycounterStore) -> bool:
        count = self.item_playcount(node_id, item, counters)
        return count is not None and count >= item.limit

    def eligible_items(self, node_id: str, node: Playnode, counters: PlaycounterStore) -> list[int]:
        return [index for index, item in enumerate(node.playitems) if not self.item_exhausted(node_id, item, counters)]

    def initial_index(self, node_id: str, node: Playnode, counters: PlaycounterStore, selector_rand: float) -> int | None:
        if node.kind == NodeKind.SEQUENCER:
            for index, item in enumerate(node.playitems):
                if item.multiplier > 0 and not self.item_exhausted(node_id, item, counters):
                    return index
            return None

        eligible = self.eligible_items(node_id, node, counters)
        pick = weighted_pick([node.playitems[index].multiplier for index in eligible], selector_rand)
        if pick is None:
            return None
        return eligible[pick]

    def step(
        self,
        node_id: str,
        node: Playnode,
        counters: PlaycounterStore,
        item_index: int | None,
        mult_index: int,
    ) -> IntraStep | None:
        # A selector plays one item per visit, then routing takes over.
        if node.kind != NodeKind.SEQUENCER or item_index is None:
            return None

        index = item_index
        mult = mult_index + 1
        while index < len(node.playitems):
            item = node.playitems[index]
            if mult >= item.multiplier or self.item_exhausted(node_id, item, counters):
                index += 1
                mult = 0
                continue
            return IntraStep(item_index=index, mult_index=mult)
        return None
