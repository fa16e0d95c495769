from __future__ import annotations

import argparse
import logging
from pathlib import Path

from playtree.contracts import ActionRequest, ActionResult, ActionType
from playtree.core import DEFAULT_LOOP_LIMIT, EngineConfig, make_id
from playtree.simulation import PlayerRuntime


def _send(runtime: PlayerRuntime, action: ActionType, payload: dict | None = None) -> ActionResult:
    return runtime.handle_action(ActionRequest(make_id("req"), action, payload or {}))


def _print_snapshot(data: dict) -> None:
    print(f"Playtree: {data['playtree_name']}")
    for view in data["playheads"]:
        marker = "*" if view["key"] == data["current_playhead"] else " "
        item = view["item_name"] if view["item_name"] is not None else "-"
        plays = "" if view["node_playcount"] is None else f" plays={view['node_playcount']}/{view['node_limit']}"
        stopped = " (stopped)" if view["stopped"] else ""
        print(f"{marker} {view['name']}: {view['node_name']} / {item}{plays}{stopped}")


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Playtree playback engine")
    parser.add_argument("--file", type=Path, required=True, help="playtree JSON file")
    parser.add_argument("--root", type=Path, default=None, help="runtime root directory for the play journal and exports")
    parser.add_argument("--seed", type=int, default=None, help="seed for deterministic playback")
    parser.add_argument("--steps", type=int, default=10, help="number of songs to play through")
    parser.add_argument("--skip", action="store_true", help="skip songs instead of letting them end")
    parser.add_argument("--loop-limit", type=int, default=DEFAULT_LOOP_LIMIT, help="pass-through bound per advance")
    parser.add_argument("--export", action="store_true", help="export the play journal as CSV and Parquet")
    parser.add_argument("--verbose", action="store_true", help="enable debug logging")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING, format="%(levelname)s %(name)s: %(message)s")

    runtime = PlayerRuntime(root=args.root, seed=args.seed, config=EngineConfig(loop_limit=args.loop_limit))
    loaded = _send(runtime, ActionType.LOAD_PLAYTREE, {"path": str(args.file)})
    if not loaded.success:
        print(loaded.message)
        for issue in loaded.data.get("issues", []):
            print(f"- {issue['code']} {issue['field_path']}: {issue['message']}")
        return 1
    for message in loaded.data["messages"]:
        print(message)

    action = ActionType.SKIP_FORWARD if args.skip else ActionType.SONG_ENDED
    result = loaded
    for _ in range(args.steps):
        result = _send(runtime, action)
        if not result.success:
            print(result.message)
            return 1
        for message in result.data["messages"]:
            print(message)

    _print_snapshot(result.data)

    if args.export:
        exported = _send(runtime, ActionType.EXPORT)
        if not exported.success:
            print(exported.message)
            return 1
        print("Exported datasets:")
        for p in exported.data["paths"]:
            print(f"- {p}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
