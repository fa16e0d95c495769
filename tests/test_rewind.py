from __future__ import annotations

import pytest

from playtree.contracts import CounterKind, NodeKind, PlayEvent
from playtree.core import DecisionRandomness, seeded_random
from playtree.engine import PlayheadEngine
from tests.helpers import cycle_tree, edge, item, node, position, tree


def _state(engine: PlayheadEngine):
    playhead = engine.playhead()
    return position(engine), playhead.counters.counts()


def test_advances_then_rewinds_restore_every_intermediate_state():
    engine = PlayheadEngine()
    engine.load(cycle_tree())
    randomness = DecisionRandomness(seeded_random(3))

    states = [_state(engine)]
    for _ in range(15):
        draw = randomness.draw()
        engine.advance(PlayEvent.SONG_ENDED, draw.selector_rand, draw.edge_rand)
        states.append(_state(engine))
    assert engine.playhead().history

    for expected in reversed(states[:-1]):
        engine.rewind()
        assert _state(engine) == expected
    assert engine.playhead().history == []


def _nested_scope_tree():
    """Scope 2 {T, gap} nests in scope 1 {S, T, gap}; gap and V are songless."""
    return tree(
        [
            node("S", [item("a", multiplier=2, limit=1), item("b")], [edge("T", limit=1), edge("gap", priority=1, limit=3)], limit=4, scopes=(1,)),
            node("T", [item("c", limit=1), item("d", multiplier=2)], [edge("S", limit=2), edge("V", priority=1)], kind=NodeKind.SELECTOR, limit=3, scopes=(1, 2)),
            node("gap", [], [edge("V", limit=2), edge("U", priority=1)], scopes=(1, 2)),
            node("V", [], [edge("U")]),
            node("U", [item("e")], [edge("S", limit=2), edge("T", shares=3)], limit=5),
        ],
        roots=["S"],
        scopes=(1, 2),
    )


def _pass_through_tree():
    return tree(
        [
            node("A", [item("a")], [edge("B")], limit=1),
            node("B", [item("b", limit=2), item("c")], [edge("A", limit=3), edge("C", priority=1)], kind=NodeKind.SELECTOR),
            node("C", [item("d", multiplier=0)], [edge("A"), edge("B", limit=1)], limit=2),
        ],
        roots=["A"],
    )


@pytest.mark.parametrize("build", [_nested_scope_tree, _pass_through_tree])
@pytest.mark.parametrize("seed", [1, 7, 42])
def test_each_advance_is_undone_exactly_while_limits_bind(build, seed):
    engine = PlayheadEngine()
    engine.load(build())
    randomness = DecisionRandomness(seeded_random(seed))

    segment = [_state(engine)]
    for step in range(60):
        event = PlayEvent.SKIPPED_FORWARD if step % 3 == 2 else PlayEvent.SONG_ENDED
        draw = randomness.draw()
        before = _state(engine)
        engine.advance(event, draw.selector_rand, draw.edge_rand)
        after = _state(engine)
        if not engine.playhead().history:
            segment = [after]
            continue

        engine.rewind()
        assert _state(engine) == before
        engine.advance(event, draw.selector_rand, draw.edge_rand)
        assert _state(engine) == after
        segment.append(after)

    for expected in reversed(segment[:-1]):
        engine.rewind()
        assert _state(engine) == expected
    assert engine.playhead().history == []


def test_rewind_restores_a_scope_zeroed_on_exit():
    playtree = tree(
        [
            node("X", [item("x")], [edge("W", limit=5)], limit=3, scopes=(1,)),
            node("W", [item("w")], [edge("Y")], scopes=(1,)),
            node("Y", [item("y")], [edge("X")]),
        ],
        roots=["X"],
        scopes=(1,),
    )
    engine = PlayheadEngine()
    engine.load(playtree)
    counters = engine.playhead().counters

    engine.advance(PlayEvent.SONG_ENDED, 0.0, 0.0)
    assert counters.read(CounterKind.NODE, 1, "X") == 1
    assert counters.read(CounterKind.EDGE, 1, "X", "W") == 1

    engine.advance(PlayEvent.SONG_ENDED, 0.0, 0.0)
    assert engine.playhead().node_id == "Y"
    assert counters.read(CounterKind.NODE, 1, "X") == 0
    assert counters.read(CounterKind.EDGE, 1, "X", "W") == 0

    engine.rewind()
    assert position(engine) == ("W", 0, 0)
    assert counters.read(CounterKind.NODE, 1, "X") == 1
    assert counters.read(CounterKind.EDGE, 1, "X", "W") == 1
    assert engine.messages[-1] == "Skipping backward to playnode 'W'."

    engine.rewind()
    assert position(engine) == ("X", 0, 0)
    assert counters.read(CounterKind.NODE, 1, "X") == 0
    assert counters.read(CounterKind.EDGE, 1, "X", "W") == 0


def test_staying_inside_a_scope_keeps_its_counts():
    playtree = tree(
        [
            node("X", [item("x")], [edge("Y")], limit=3, scopes=(1,)),
            node("Y", [item("y")], [edge("X")], scopes=(1,)),
        ],
        roots=["X"],
        scopes=(1,),
    )
    engine = PlayheadEngine()
    engine.load(playtree)
    engine.advance(PlayEvent.SONG_ENDED, 0.0, 0.0)
    engine.advance(PlayEvent.SONG_ENDED, 0.0, 0.0)
    assert engine.playhead().counters.read(CounterKind.NODE, 1, "X") == 1


def test_rewind_undoes_pass_through_edge_counts():
    playtree = tree(
        [
            node("S", [item("s")], [edge("gap", limit=4)]),
            node("gap", [], [edge("T", limit=4)]),
            node("T", [item("t")], [edge("S")]),
        ],
        roots=["S"],
    )
    engine = PlayheadEngine()
    engine.load(playtree)
    engine.advance(PlayEvent.SONG_ENDED, 0.0, 0.0)
    counters = engine.playhead().counters
    assert counters.read(CounterKind.EDGE, -1, "S", "gap") == 1
    assert counters.read(CounterKind.EDGE, -1, "gap", "T") == 1

    engine.rewind()
    assert counters.read(CounterKind.EDGE, -1, "S", "gap") == 0
    assert counters.read(CounterKind.EDGE, -1, "gap", "T") == 0


def test_rewind_with_empty_history_is_a_no_op():
    engine = PlayheadEngine()
    engine.load(tree([node("A", [item("a")])], roots=["A"]))
    before = engine.snapshot()
    assert engine.rewind() == before


def test_reset_clears_history_so_rewind_stops_at_the_start():
    engine = PlayheadEngine()
    engine.load(tree([node("A", [item("a"), item("b")])], roots=["A"]))
    engine.advance(PlayEvent.SONG_ENDED, 0.0, 0.0)
    assert engine.playhead().history
    engine.advance(PlayEvent.SONG_ENDED, 0.0, 0.0)
    assert engine.playhead().history == []
    engine.rewind()
    assert position(engine) == ("A", 0, 0)


def test_rewind_decrements_an_edge_only_when_its_traversal_is_undone():
    playtree = tree(
        [
            node("S", [item("s")], [edge("T", limit=1), edge("U", priority=1)]),
            node("T", [item("t")], [edge("S")]),
            node("U", [item("u")], [edge("S")]),
        ],
        roots=["S"],
    )
    engine = PlayheadEngine()
    engine.load(playtree)
    counters = engine.playhead().counters
    engine.advance(PlayEvent.SONG_ENDED, 0.0, 0.0)
    engine.advance(PlayEvent.SONG_ENDED, 0.0, 0.0)
    engine.advance(PlayEvent.SONG_ENDED, 0.0, 0.0)
    assert engine.playhead().node_id == "U"
    assert counters.read(CounterKind.EDGE, -1, "S", "T") == 1

    engine.rewind()
    engine.rewind()
    assert counters.read(CounterKind.EDGE, -1, "S", "T") == 1
    engine.rewind()
    assert counters.read(CounterKind.EDGE, -1, "S", "T") == 0
    assert position(engine) == ("S", 0, 0)
