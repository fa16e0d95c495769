from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Mapping

from playtree.contracts import (
    UNLIMITED,
    NodeKind,
    Playedge,
    Playitem,
    Playnode,
    Playroot,
    Playscope,
    Playtree,
    PlaytreeSummary,
    ValidationError,
    ValidationIssue,
)

NODE_KIND_ALIASES = {
    "sequencer": NodeKind.SEQUENCER,
    "sequence": NodeKind.SEQUENCER,
    "selector": NodeKind.SELECTOR,
}


class _IssueCollector:
    def __init__(self) -> None:
        self.issues: list[ValidationIssue] = []

    def add(self, code: str, field_path: str, entity_id: str, message: str) -> None:
        self.issues.append(ValidationIssue(code=code, severity="blocking", field_path=field_path, entity_id=entity_id, message=message))

    def mapping(self, raw: Any, field_path: str, entity_id: str) -> Mapping[str, Any]:
        if isinstance(raw, Mapping):
            return raw
        self.add("INVALID_TYPE", field_path, entity_id, "expected an object")
        return {}

    def sequence(self, raw: Any, field_path: str, entity_id: str) -> list[Any]:
        if raw is None:
            return []
        if isinstance(raw, list | tuple):
            return list(raw)
        self.add("INVALID_TYPE", field_path, entity_id, "expected a list")
        return []

    def text(self, raw: Mapping[str, Any], key: str, field_path: str, entity_id: str, default: str | None = None) -> str:
        value = raw.get(key, default)
        if value is None:
            self.add("MISSING_FIELD", f"{field_path}.{key}", entity_id, f"'{key}' is required")
            return ""
        if not isinstance(value, str):
            self.add("INVALID_TYPE", f"{field_path}.{key}", entity_id, f"'{key}' must be a string")
            return str(value)
        return value

    def integer(self, raw: Mapping[str, Any], key: str, field_path: str, entity_id: str, default: int | None = None) -> int:
        value = raw.get(key, default)
        if value is None:
            self.add("MISSING_FIELD", f"{field_path}.{key}", entity_id, f"'{key}' is required")
            return 0
        if isinstance(value, bool) or not isinstance(value, int):
            self.add("INVALID_TYPE", f"{field_path}.{key}", entity_id, f"'{key}' must be an integer")
            return 0
        return value


def playtree_from_mapping(data: Mapping[str, Any]) -> Playtree:
    issues = _IssueCollector()
    root = issues.mapping(data, "playtree", "playtree")

    raw_summary = issues.mapping(root.get("summary", {}), "summary", "playtree")
    playtree_id = issues.text(raw_summary, "id", "summary", "playtree", default="")
    summary = PlaytreeSummary(
        playtree_id=playtree_id,
        name=issues.text(raw_summary, "name", "summary", playtree_id, default="Untitled playtree"),
        created_by=issues.text(raw_summary, "createdBy", "summary", playtree_id, default=""),
        access=issues.text(raw_summary, "access", "summary", playtree_id, default="private"),
    )

    playscopes: list[Playscope] = []
    for index, raw in enumerate(issues.sequence(root.get("playscopes"), "playscopes", playtree_id)):
        path = f"playscopes[{index}]"
        scope = issues.mapping(raw, path, playtree_id)
        playscopes.append(
            Playscope(
                scope_id=issues.integer(scope, "id", path, playtree_id),
                name=issues.text(scope, "name", path, playtree_id, default=""),
                color=issues.text(scope, "color", path, playtree_id, default="white"),
            )
        )

    playnodes: dict[str, Playnode] = {}
    raw_nodes = issues.mapping(root.get("playnodes", {}), "playnodes", playtree_id)
    for node_id, raw in raw_nodes.items():
        playnodes[node_id] = _playnode_from_mapping(issues, node_id, issues.mapping(raw, f"playnodes.{node_id}", node_id))

    playroots: dict[str, Playroot] = {}
    raw_roots = issues.mapping(root.get("playroots", {}), "playroots", playtree_id)
    for node_id, raw in raw_roots.items():
        path = f"playroots.{node_id}"
        playroot = issues.mapping(raw, path, node_id)
        playroots[node_id] = Playroot(
            index=issues.integer(playroot, "index", path, node_id),
            name=issues.text(playroot, "name", path, node_id, default=node_id),
        )

    if issues.issues:
        raise ValidationError(issues.issues)
    return Playtree(summary=summary, playnodes=playnodes, playroots=playroots, playscopes=tuple(playscopes))


def _playnode_from_mapping(issues: _IssueCollector, node_id: str, raw: Mapping[str, Any]) -> Playnode:
    path = f"playnodes.{node_id}"
    kind_name = issues.text(raw, "type", path, node_id, default="sequencer")
    kind = NODE_KIND_ALIASES.get(kind_name)
    if kind is None:
        issues.add("UNKNOWN_NODE_KIND", f"{path}.type", node_id, f"unknown playnode type '{kind_name}'")
        kind = NodeKind.SEQUENCER

    playitems: list[Playitem] = []
    for index, raw_item in enumerate(issues.sequence(raw.get("playitems"), f"{path}.playitems", node_id)):
        item_path = f"{path}.playitems[{index}]"
        item = issues.mapping(raw_item, item_path, node_id)
        item_type = item.get("type") if isinstance(item.get("type"), Mapping) else {}
        playitems.append(
            Playitem(
                item_id=issues.text(item, "id", item_path, node_id),
                name=issues.text(item, "name", item_path, node_id, default=""),
                uri=issues.text(item, "uri", item_path, node_id, default=""),
                multiplier=issues.integer(item, "multiplier", item_path, node_id, default=1),
                limit=issues.integer(item, "limit", item_path, node_id, default=UNLIMITED),
                creator=issues.text(item, "creator", item_path, node_id, default=""),
                creator_uri=issues.text(item, "creatorURI", item_path, node_id, default=""),
                source=str(item_type.get("source", "local")),
                plurality=str(item_type.get("plurality", "single")),
            )
        )

    edges: list[Playedge] = []
    for index, raw_edge in enumerate(issues.sequence(raw.get("next"), f"{path}.next", node_id)):
        edge_path = f"{path}.next[{index}]"
        edge = issues.mapping(raw_edge, edge_path, node_id)
        edges.append(
            Playedge(
                target_id=issues.text(edge, "targetID", edge_path, node_id),
                priority=issues.integer(edge, "priority", edge_path, node_id, default=0),
                shares=issues.integer(edge, "shares", edge_path, node_id, default=1),
                limit=issues.integer(edge, "limit", edge_path, node_id, default=UNLIMITED),
            )
        )

    scopes: list[int] = []
    for index, scope in enumerate(issues.sequence(raw.get("playscopes"), f"{path}.playscopes", node_id)):
        if isinstance(scope, bool) or not isinstance(scope, int):
            issues.add("INVALID_TYPE", f"{path}.playscopes[{index}]", node_id, "scope ids must be integers")
            continue
        scopes.append(scope)

    return Playnode(
        node_id=issues.text(raw, "id", path, node_id, default=node_id),
        name=issues.text(raw, "name", path, node_id, default=node_id),
        kind=kind,
        playitems=tuple(playitems),
        next=tuple(edges),
        limit=issues.integer(raw, "limit", path, node_id, default=UNLIMITED),
        playscopes=tuple(scopes),
    )


def playtree_to_mapping(playtree: Playtree) -> dict[str, Any]:
    return {
        "summary": {
            "id": playtree.summary.playtree_id,
            "name": playtree.summary.name,
            "createdBy": playtree.summary.created_by,
            "access": playtree.summary.access,
        },
        "playnodes": {
            node_id: {
                "id": node.node_id,
                "type": node.kind.value,
                "name": node.name,
                "limit": node.limit,
                "playscopes": list(node.playscopes),
                "playitems": [
                    {
                        "id": item.item_id,
                        "type": {"source": item.source, "plurality": item.plurality},
                        "uri": item.uri,
                        "creatorURI": item.creator_uri,
                        "name": item.name,
                        "creator": item.creator,
                        "multiplier": item.multiplier,
                        "limit": item.limit,
                    }
                    for item in node.playitems
                ],
                "next": [
                    {"targetID": edge.target_id, "priority": edge.priority, "shares": edge.shares, "limit": edge.limit}
                    for edge in node.next
                ],
            }
            for node_id, node in playtree.playnodes.items()
        },
        "playroots": {node_id: {"index": root.index, "name": root.name} for node_id, root in playtree.playroots.items()},
        "playscopes": [{"id": scope.scope_id, "name": scope.name, "color": scope.color} for scope in playtree.playscopes],
    }


def load_playtree_file(path: Path) -> Playtree:
    return playtree_from_mapping(json.loads(path.read_text(encoding="utf-8")))


def save_playtree_file(playtree: Playtree, path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(playtree_to_mapping(playtree), indent=2), encoding="utf-8")
    return path
