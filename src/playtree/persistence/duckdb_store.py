from __future__ import annotations

from pathlib import Path
from typing import Any

import duckdb

from playtree.contracts import CounterKind, PlayDecision
from playtree.engine.counters import CounterKey

JOURNAL_TABLES = ("play_decisions", "playhead_counters")


class PlayJournalStore:
    def __init__(self, db_path: Path) -> None:
        self.db_path = db_path
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    def connect(self) -> Any:
        return duckdb.connect(str(self.db_path))

    def initialize_schema(self) -> None:
        with self.connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS play_decisions (
                    decision_id VARCHAR PRIMARY KEY,
                    decision_seq INTEGER,
                    action VARCHAR,
                    playhead VARCHAR,
                    from_node VARCHAR,
                    to_node VARCHAR,
                    item_index INTEGER,
                    mult_index INTEGER,
                    selector_rand DOUBLE,
                    edge_rand DOUBLE,
                    was_reset BOOLEAN,
                    message VARCHAR,
                    recorded_at TIMESTAMP
                );

                CREATE TABLE IF NOT EXISTS playhead_counters (
                    decision_id VARCHAR,
                    playhead VARCHAR,
                    counter_kind VARCHAR,
                    scope_id INTEGER,
                    node_id VARCHAR,
                    target VARCHAR,
                    value INTEGER,
                    PRIMARY KEY(decision_id, playhead, counter_kind, scope_id, node_id, target)
                );
                """
            )

    def record_decision(self, decision: PlayDecision, counters: dict[CounterKey, int] | None = None) -> None:
        counter_rows = []
        for (scope_id, kind, path), value in sorted((counters or {}).items(), key=lambda kv: (kv[0][0], kv[0][1].value, kv[0][2])):
            counter_rows.append(
                (
                    decision.decision_id,
                    decision.playhead,
                    kind.value,
                    scope_id,
                    path[0],
                    path[1] if len(path) > 1 else "",
                    value,
                )
            )
        with self.connect() as conn:
            conn.execute("DELETE FROM play_decisions WHERE decision_id = ?", [decision.decision_id])
            conn.execute(
                "INSERT INTO play_decisions VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                [
                    decision.decision_id,
                    decision.sequence,
                    decision.action,
                    decision.playhead,
                    decision.from_node,
                    decision.to_node,
                    decision.item_index,
                    decision.mult_index,
                    decision.selector_rand,
                    decision.edge_rand,
                    decision.reset,
                    decision.message,
                    decision.recorded_at.replace(tzinfo=None),
                ],
            )
            if counter_rows:
                conn.execute("DELETE FROM playhead_counters WHERE decision_id = ?", [decision.decision_id])
                conn.executemany("INSERT INTO playhead_counters VALUES (?, ?, ?, ?, ?, ?, ?)", counter_rows)

    def decision_count(self, action: str | None = None) -> int:
        with self.connect() as conn:
            if action is None:
                row = conn.execute("SELECT COUNT(*) FROM play_decisions").fetchone()
            else:
                row = conn.execute("SELECT COUNT(*) FROM play_decisions WHERE action = ?", [action]).fetchone()
        return int(row[0])

    def decisions(self) -> list[dict[str, Any]]:
        with self.connect() as conn:
            cursor = conn.execute(
                """
                SELECT decision_seq, action, playhead, from_node, to_node, item_index, mult_index, was_reset, message
                FROM play_decisions
                ORDER BY decision_seq
                """
            )
            columns = [c[0] for c in cursor.description]
            return [dict(zip(columns, row)) for row in cursor.fetchall()]

    def playcount_by_node(self, playhead: str | None = None) -> dict[str, int]:
        """Songs finished or skipped per playnode, read from the decision log."""
        query = """
            SELECT from_node, COUNT(*) AS plays
            FROM play_decisions
            WHERE action IN ('song_ended', 'skip_forward') AND from_node IS NOT NULL
        """
        params: list[Any] = []
        if playhead is not None:
            query += " AND playhead = ?"
            params.append(playhead)
        query += " GROUP BY from_node ORDER BY from_node"
        with self.connect() as conn:
            rows = conn.execute(query, params).fetchall()
        return {str(r[0]): int(r[1]) for r in rows}

    def latest_counters(self, playhead: str, kind: CounterKind | None = None) -> list[tuple[int, str, str, str, int]]:
        query = """
            SELECT c.scope_id, c.counter_kind, c.node_id, c.target, c.value
            FROM playhead_counters c
            JOIN play_decisions d ON d.decision_id = c.decision_id
            WHERE c.playhead = ?
              AND d.decision_seq = (
                  SELECT MAX(d2.decision_seq)
                  FROM play_decisions d2
                  JOIN playhead_counters c2 ON c2.decision_id = d2.decision_id
                  WHERE c2.playhead = ?
              )
        """
        params: list[Any] = [playhead, playhead]
        if kind is not None:
            query += " AND c.counter_kind = ?"
            params.append(kind.value)
        query += " ORDER BY c.scope_id, c.counter_kind, c.node_id, c.target"
        with self.connect() as conn:
            rows = conn.execute(query, params).fetchall()
        return [(int(r[0]), str(r[1]), str(r[2]), str(r[3]), int(r[4])) for r in rows]
