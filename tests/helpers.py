from __future__ import annotations

from playtree.contracts import (
    UNLIMITED,
    ActionRequest,
    ActionType,
    NodeKind,
    Playedge,
    Playitem,
    Playnode,
    Playroot,
    Playscope,
    Playtree,
    PlaytreeSummary,
)
from playtree.core import make_id


def item(item_id: str, multiplier: int = 1, limit: int = UNLIMITED) -> Playitem:
    return Playitem(item_id=item_id, name=f"Song {item_id}", uri=f"local://{item_id}.mp3", multiplier=multiplier, limit=limit)


def edge(target_id: str, priority: int = 0, shares: int = 1, limit: int = UNLIMITED) -> Playedge:
    return Playedge(target_id=target_id, priority=priority, shares=shares, limit=limit)


def node(
    node_id: str,
    items: tuple[Playitem, ...] | list[Playitem] = (),
    next: tuple[Playedge, ...] | list[Playedge] = (),
    kind: NodeKind = NodeKind.SEQUENCER,
    limit: int = UNLIMITED,
    scopes: tuple[int, ...] = (),
) -> Playnode:
    return Playnode(
        node_id=node_id,
        name=node_id,
        kind=kind,
        playitems=tuple(items),
        next=tuple(next),
        limit=limit,
        playscopes=tuple(scopes),
    )


def tree(nodes: list[Playnode], roots: list[str], scopes: tuple[int, ...] = (), name: str = "Test Tree") -> Playtree:
    return Playtree(
        summary=PlaytreeSummary(playtree_id="pt_test", name=name, created_by="tester"),
        playnodes={n.node_id: n for n in nodes},
        playroots={node_id: Playroot(index=i, name=f"Head {node_id}") for i, node_id in enumerate(roots)},
        playscopes=tuple(Playscope(scope_id=s, name=f"scope {s}") for s in scopes),
    )


def cycle_tree() -> Playtree:
    """S(scope 1) -> T(scope 1, selector) -> U(unscoped) -> S, with limits that never block."""
    return tree(
        [
            node("S", [item("a", multiplier=2, limit=100), item("b", limit=100)], [edge("T", limit=100)], limit=100, scopes=(1,)),
            node("T", [item("c", limit=100), item("d", multiplier=3, limit=100)], [edge("U", limit=100)], kind=NodeKind.SELECTOR, limit=100, scopes=(1,)),
            node("U", [item("e", limit=100)], [edge("S", limit=100)], limit=100),
        ],
        roots=["S"],
        scopes=(1,),
        name="Cycle",
    )


def sample_mapping() -> dict:
    return {
        "summary": {"id": "pt_1", "name": "Evening Mix", "createdBy": "listener", "access": "public"},
        "playnodes": {
            "intro": {
                "id": "intro",
                "type": "sequence",
                "name": "Intro",
                "limit": 1,
                "playscopes": [1],
                "playitems": [
                    {
                        "id": "s1",
                        "type": {"source": "local", "plurality": "single"},
                        "uri": "local://s1.mp3",
                        "creatorURI": "",
                        "name": "Opening",
                        "creator": "Band",
                        "multiplier": 2,
                        "limit": -1,
                    }
                ],
                "next": [{"targetID": "mix", "priority": 0, "shares": 1, "limit": -1}],
            },
            "mix": {
                "id": "mix",
                "type": "selector",
                "name": "Mix",
                "playitems": [
                    {"id": "s2", "name": "Second", "multiplier": 1},
                    {"id": "s3", "name": "Third", "multiplier": 3, "limit": 2},
                ],
                "next": [{"targetID": "intro"}],
            },
        },
        "playroots": {"intro": {"index": 0, "name": "Main"}},
        "playscopes": [{"id": 1, "name": "Opening set", "color": "red"}],
    }


def request(action: ActionType, payload: dict | None = None) -> ActionRequest:
    return ActionRequest(make_id("req"), action, payload or {})


def position(engine) -> tuple[str, int | None, int]:
    playhead = engine.playhead()
    return playhead.node_id, playhead.item_index, playhead.mult_index
