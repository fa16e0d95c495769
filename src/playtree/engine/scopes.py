"""Least-enclosing-scope resolution.

Scopes are not declared hierarchically; a scope is "inside" another when every
node tagged with it is also tagged with the other. The order is precomputed once
per load as superscope bitsets so that the per-node and per-edge resolution are
plain bit tests.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Mapping

from playtree.contracts import DEFAULT_SCOPE_ID, Playnode, Playtree


@dataclass(frozen=True, slots=True)
class ScopeMaps:
    least_scope_by_node: dict[str, int]
    least_scope_by_edge: dict[str, dict[str, int]]

    def node_scope(self, node_id: str) -> int:
        return self.least_scope_by_node.get(node_id, DEFAULT_SCOPE_ID)

    def edge_scope(self, source_id: str, target_id: str) -> int:
        return self.least_scope_by_edge.get(source_id, {}).get(target_id, DEFAULT_SCOPE_ID)


class ScopeLattice:
    def __init__(self, nodes_by_scope: Mapping[int, frozenset[str]]) -> None:
        self._nodes_by_scope = {scope: frozenset(nodes) for scope, nodes in nodes_by_scope.items() if scope != DEFAULT_SCOPE_ID}
        self._ordinals = {scope: i for i, scope in enumerate(sorted(self._nodes_by_scope))}
        self._superscopes: dict[int, int] = {}
        for scope, nodes in self._nodes_by_scope.items():
            bits = 1 << self._ordinals[scope]
            for other, other_nodes in self._nodes_by_scope.items():
                if other != scope and other_nodes >= nodes:
                    bits |= 1 << self._ordinals[other]
            self._superscopes[scope] = bits

    @classmethod
    def from_playnodes(cls, playnodes: Mapping[str, Playnode]) -> ScopeLattice:
        nodes_by_scope: dict[int, set[str]] = {}
        for node_id, node in playnodes.items():
            for scope in node.playscopes:
                nodes_by_scope.setdefault(scope, set()).add(node_id)
        return cls({scope: frozenset(nodes) for scope, nodes in nodes_by_scope.items()})

    @property
    def scopes(self) -> list[int]:
        return sorted(self._nodes_by_scope)

    def members(self, scope: int) -> frozenset[str]:
        return self._nodes_by_scope.get(scope, frozenset())

    def is_subscope(self, scope: int, other: int) -> bool:
        if other == DEFAULT_SCOPE_ID:
            return True
        if scope == DEFAULT_SCOPE_ID:
            return False
        if scope not in self._ordinals or other not in self._ordinals:
            return scope == other
        return bool((self._superscopes[scope] >> self._ordinals[other]) & 1)

    def is_strict_subscope(self, scope: int, other: int) -> bool:
        return self.is_subscope(scope, other) and not self.is_subscope(other, scope)

    def is_chain(self, scopes: Iterable[int]) -> bool:
        declared = sorted(set(scopes) - {DEFAULT_SCOPE_ID})
        for i, scope in enumerate(declared):
            for other in declared[i + 1:]:
                if not (self.is_subscope(scope, other) or self.is_subscope(other, scope)):
                    return False
        return True

    def least_of(self, scopes: Iterable[int]) -> int:
        candidates = sorted(set(scopes) - {DEFAULT_SCOPE_ID})
        if not candidates:
            return DEFAULT_SCOPE_ID
        minimal = [
            scope
            for scope in candidates
            if not any(self.is_strict_subscope(other, scope) for other in candidates if other != scope)
        ]
        # Incomparable or equal-membership candidates: fewest members, then lowest id.
        return min(minimal, key=lambda scope: (len(self.members(scope)), scope))


def resolve_scopes(playtree: Playtree, lattice: ScopeLattice | None = None) -> ScopeMaps:
    lattice = lattice or ScopeLattice.from_playnodes(playtree.playnodes)

    least_scope_by_node: dict[str, int] = {}
    for node_id, node in playtree.playnodes.items():
        least_scope_by_node[node_id] = lattice.least_of(node.playscopes)

    least_scope_by_edge: dict[str, dict[str, int]] = {}
    for source_id, source in playtree.playnodes.items():
        for edge in source.next:
            target = playtree.playnodes.get(edge.target_id)
            if target is None:
                continue
            shared = set(source.playscopes) & set(target.playscopes)
            least_scope_by_edge.setdefault(source_id, {})[edge.target_id] = lattice.least_of(shared)

    return ScopeMaps(least_scope_by_node=least_scope_by_node, least_scope_by_edge=least_scope_by_edge)
