from __future__ import annotations

import logging
from collections import defaultdict
from datetime import UTC, datetime
from typing import Any, Callable, DefaultDict
from uuid import uuid4

from playtree.contracts import PlaybackEvent

logger = logging.getLogger(__name__)

PlaybackHandler = Callable[[PlaybackEvent], None]


def now_utc() -> datetime:
    return datetime.now(UTC)


def make_id(prefix: str) -> str:
    return f"{prefix}_{uuid4().hex[:12]}"


def make_event(scope: str, event_type: str, message: str, playhead: str | None = None, **details: Any) -> PlaybackEvent:
    return PlaybackEvent(
        event_id=make_id("evt"),
        time=now_utc(),
        scope=scope,
        event_type=event_type,
        playhead=playhead,
        message=message,
        details=dict(details),
    )


class EventBus:
    def __init__(self) -> None:
        self._handlers: list[PlaybackHandler] = []
        self._counter: DefaultDict[str, int] = defaultdict(int)

    def subscribe(self, handler: PlaybackHandler) -> None:
        self._handlers.append(handler)

    def publish(self, event: PlaybackEvent) -> None:
        self._counter[event.event_type] += 1
        logger.debug("%s/%s: %s", event.scope, event.event_type, event.message)
        for handler in self._handlers:
            handler(event)

    def emitted_count(self, event_type: str | None = None) -> int:
        if event_type is None:
            return sum(self._counter.values())
        return self._counter[event_type]
