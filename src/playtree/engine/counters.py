from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterator

from playtree.contracts import CounterKind, Playtree
from playtree.engine.scopes import ScopeMaps

CounterPath = tuple[str, ...]
CounterKey = tuple[int, CounterKind, CounterPath]


@dataclass(frozen=True, slots=True)
class CachedScope:
    scope_id: int
    counts: dict[CounterKey, int]


class CounterLayout:
    """Tracked counter keys and their limits; fixed for the lifetime of a loaded playtree."""

    def __init__(self, limits: dict[CounterKey, int]) -> None:
        self._limits = dict(limits)
        keys_by_scope: dict[int, list[CounterKey]] = {}
        for key in self._limits:
            keys_by_scope.setdefault(key[0], []).append(key)
        self._keys_by_scope = {scope: tuple(keys) for scope, keys in keys_by_scope.items()}

    @classmethod
    def build(cls, playtree: Playtree, scope_maps: ScopeMaps) -> CounterLayout:
        limits: dict[CounterKey, int] = {}
        for node_id, node in playtree.playnodes.items():
            scope = scope_maps.node_scope(node_id)
            if node.limit >= 0:
                limits[(scope, CounterKind.NODE, (node_id,))] = node.limit
            for item in node.playitems:
                if item.limit >= 0:
                    limits.setdefault((scope, CounterKind.ITEM, (node_id, item.item_id)), item.limit)
            for edge in node.next:
                if edge.limit < 0 or edge.target_id not in playtree.playnodes:
                    continue
                edge_scope = scope_maps.edge_scope(node_id, edge.target_id)
                limits.setdefault((edge_scope, CounterKind.EDGE, (node_id, edge.target_id)), edge.limit)
        return cls(limits)

    def __contains__(self, key: object) -> bool:
        return key in self._limits

    def __iter__(self) -> Iterator[CounterKey]:
        return iter(self._limits)

    def __len__(self) -> int:
        return len(self._limits)

    @property
    def scopes(self) -> list[int]:
        return sorted(self._keys_by_scope)

    def limit(self, key: CounterKey) -> int | None:
        return self._limits.get(key)

    def keys_in_scope(self, scope_id: int) -> tuple[CounterKey, ...]:
        return self._keys_by_scope.get(scope_id, ())

    def seed(self) -> PlaycounterStore:
        return PlaycounterStore(self)


class PlaycounterStore:
    def __init__(self, layout: CounterLayout) -> None:
        self._layout = layout
        self._counts: dict[CounterKey, int] = {key: 0 for key in layout}
        self._journal: dict[CounterKey, int] | None = None

    @property
    def layout(self) -> CounterLayout:
        return self._layout

    def read(self, kind: CounterKind, scope_id: int, *path: str) -> int | None:
        return self._counts.get((scope_id, kind, tuple(path)))

    def increment(self, kind: CounterKind, scope_id: int, *path: str) -> bool:
        key = (scope_id, kind, tuple(path))
        count = self._counts.get(key)
        if count is None:
            return False
        updated = count + 1
        if kind != CounterKind.ITEM:
            updated = min(updated, self._layout.limit(key) or 0)
        if updated == count:
            return False
        self._write(key, updated)
        return True

    def decrement(self, kind: CounterKind, scope_id: int, *path: str) -> bool:
        key = (scope_id, kind, tuple(path))
        count = self._counts.get(key)
        if count is None or count == 0:
            return False
        self._write(key, count - 1)
        return True

    def cache_and_zero_scope(self, scope_id: int) -> CachedScope:
        keys = self._layout.keys_in_scope(scope_id)
        cached = CachedScope(scope_id=scope_id, counts={key: self._counts[key] for key in keys})
        for key in keys:
            if self._counts[key] != 0:
                self._write(key, 0)
        return cached

    def restore_scope(self, cached: CachedScope) -> None:
        for key, count in cached.counts.items():
            if key in self._counts and self._counts[key] != count:
                self._write(key, count)

    def zero_all(self) -> None:
        for key, count in self._counts.items():
            if count != 0:
                self._write(key, 0)

    def begin(self) -> None:
        self._journal = {}

    def commit(self) -> None:
        self._journal = None

    def rollback(self) -> None:
        if self._journal is None:
            return
        self._counts.update(self._journal)
        self._journal = None

    def counts(self) -> dict[CounterKey, int]:
        return dict(self._counts)

    def as_nested(self) -> dict[str, dict[int, Any]]:
        nested: dict[str, dict[int, Any]] = {kind.value: {} for kind in CounterKind}
        for (scope, kind, path), count in sorted(self._counts.items(), key=lambda kv: (kv[0][1].value, kv[0][0], kv[0][2])):
            bucket = nested[kind.value].setdefault(scope, {})
            for part in path[:-1]:
                bucket = bucket.setdefault(part, {})
            bucket[path[-1]] = count
        return nested

    def _write(self, key: CounterKey, value: int) -> None:
        if self._journal is not None and key not in self._journal:
            self._journal[key] = self._counts[key]
        self._counts[key] = value
