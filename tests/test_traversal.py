from __future__ import annotations

from playtree.contracts import CounterKind, NodeKind
from playtree.engine import AdvancePolicy, CounterLayout, EdgeTraversal, resolve_scopes
from tests.helpers import edge, item, node, tree


def _traversal(playtree, loop_limit: int = 10_000):
    maps = resolve_scopes(playtree)
    return EdgeTraversal(playtree, maps, AdvancePolicy(maps), loop_limit), CounterLayout.build(playtree, maps).seed()


def _priority_tree():
    return tree(
        [
            node("S", [item("s")], [edge("P1", priority=1), edge("P0", priority=0, limit=2)]),
            node("P0", [item("p0")], [edge("S")]),
            node("P1", [item("p1")], [edge("S")]),
        ],
        roots=["S"],
    )


def test_lowest_priority_group_wins_while_eligible():
    traversal, counters = _traversal(_priority_tree())
    for rand in (0.0, 0.99):
        group = traversal.eligible_group("S", _priority_tree().playnodes["S"], counters)
        assert [e.target_id for e in group] == ["P0"]
        assert traversal.choose_edge("S", _priority_tree().playnodes["S"], counters, rand).target_id == "P0"


def test_exhausted_priority_group_falls_to_next_group():
    traversal, counters = _traversal(_priority_tree())
    first = traversal.traverse("S", counters, 0.0, 0.99)
    second = traversal.traverse("S", counters, 0.0, 0.99)
    third = traversal.traverse("S", counters, 0.0, 0.99)
    assert [first.node_id, second.node_id, third.node_id] == ["P0", "P0", "P1"]
    assert first.messages == ["Traversing playedge 'S => P0' (1 / 2)"]
    assert second.messages == ["Traversing playedge 'S => P0' (2 / 2)"]
    assert third.messages == ["Traversing playedge 'S => P1'"]
    assert counters.read(CounterKind.EDGE, -1, "S", "P0") == 2


def test_shares_split_within_a_group():
    playtree = tree(
        [
            node("S", [item("s")], [edge("A", shares=1), edge("B", shares=3)]),
            node("A", [item("a")]),
            node("B", [item("b")]),
        ],
        roots=["S"],
    )
    traversal, counters = _traversal(playtree)
    assert traversal.traverse("S", counters, 0.0, 0.2).node_id == "A"
    assert traversal.traverse("S", counters, 0.0, 0.3).node_id == "B"


def test_pass_through_nodes_without_songs_or_over_limit():
    playtree = tree(
        [
            node("S", [item("s")], [edge("empty")]),
            node("empty", [], [edge("full")]),
            node("full", [item("f")], [edge("spent")], limit=0),
            node("spent", [item("x", limit=0)], [edge("T")]),
            node("T", [item("t")]),
        ],
        roots=["S"],
    )
    traversal, counters = _traversal(playtree)
    outcome = traversal.traverse("S", counters, 0.0, 0.0)
    assert outcome.success
    assert outcome.node_id == "T"
    assert outcome.edge.target_id == "T"
    assert [hop.source_id for hop in outcome.hops] == ["S", "empty", "full", "spent"]
    assert "Passing through playnode 'empty' with no songs..." in outcome.messages
    assert "Passing through playnode 'full' whose play count has been exceeded..." in outcome.messages
    assert "Passing through playnode 'spent' whose songs have all exceeded play count..." in outcome.messages


def test_exhausted_selector_passes_through_to_its_edges():
    playtree = tree(
        [
            node("S", [item("s")], [edge("Sel")]),
            node("Sel", [item("a", limit=0), item("b", limit=0)], [edge("N")], kind=NodeKind.SELECTOR),
            node("N", [item("n")]),
        ],
        roots=["S"],
    )
    traversal, counters = _traversal(playtree)
    outcome = traversal.traverse("S", counters, 0.0, 0.0)
    assert outcome.node_id == "N"
    assert outcome.item_index == 0


def test_no_outgoing_edges_fails():
    playtree = tree([node("S", [item("s")])], roots=["S"])
    traversal, counters = _traversal(playtree)
    outcome = traversal.traverse("S", counters, 0.0, 0.0)
    assert not outcome.success
    assert outcome.reason == "Playnode S has no outgoing edges. Resetting playhead."


def test_all_edges_exhausted_fails():
    playtree = tree([node("S", [item("s")], [edge("T", limit=0)]), node("T", [item("t")])], roots=["S"])
    traversal, counters = _traversal(playtree)
    outcome = traversal.traverse("S", counters, 0.0, 0.0)
    assert not outcome.success
    assert outcome.reason == "Playnode S has no available outgoing edges. Resetting playhead."


def test_dangling_edges_are_never_chosen():
    playtree = tree([node("S", [item("s")], [edge("ghost"), edge("T", priority=1)]), node("T", [item("t")])], roots=["S"])
    traversal, counters = _traversal(playtree)
    assert traversal.traverse("S", counters, 0.0, 0.0).node_id == "T"


def test_group_without_positive_shares_takes_its_first_edge():
    playtree = tree(
        [
            node("S", [item("s")], [edge("A", shares=-2), edge("B", shares=-1), edge("C", priority=1)]),
            node("A", [item("a")]),
            node("B", [item("b")]),
            node("C", [item("c")]),
        ],
        roots=["S"],
    )
    traversal, counters = _traversal(playtree)
    for rand in (0.0, 0.99):
        assert traversal.choose_edge("S", playtree.playnodes["S"], counters, rand).target_id == "A"
    outcome = traversal.traverse("S", counters, 0.0, 0.5)
    assert outcome.success
    assert outcome.node_id == "A"


def test_songless_cycle_stops_at_loop_limit():
    playtree = tree(
        [
            node("S", [item("s")], [edge("A")]),
            node("A", [], [edge("B")]),
            node("B", [], [edge("A")]),
        ],
        roots=["S"],
    )
    traversal, counters = _traversal(playtree, loop_limit=6)
    outcome = traversal.traverse("S", counters, 0.0, 0.0)
    assert not outcome.success
    assert len(outcome.hops) == 6
    assert outcome.reason == "Too many playnodes have been passed through with no song to play. Resetting playhead."


def test_leaving_a_scope_caches_and_zeroes_it():
    playtree = tree(
        [
            node("X", [item("x")], [edge("Y")], limit=3, scopes=(1,)),
            node("Y", [item("y")], [edge("X")]),
        ],
        roots=["X"],
        scopes=(1,),
    )
    traversal, counters = _traversal(playtree)
    counters.increment(CounterKind.NODE, 1, "X")
    outcome = traversal.traverse("X", counters, 0.0, 0.0)
    assert outcome.node_id == "Y"
    assert list(outcome.cached_scopes) == [1]
    assert outcome.cached_scopes[1].counts == {(1, CounterKind.NODE, ("X",)): 1}
    assert counters.read(CounterKind.NODE, 1, "X") == 0
