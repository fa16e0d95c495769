from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Mapping, Protocol, Sequence

DEFAULT_SCOPE_ID = -1
UNLIMITED = -1


class NodeKind(str, Enum):
    SEQUENCER = "sequencer"
    SELECTOR = "selector"


class PlayEvent(str, Enum):
    SONG_ENDED = "song_ended"
    SKIPPED_FORWARD = "skipped_forward"


class CounterKind(str, Enum):
    ITEM = "item"
    NODE = "node"
    EDGE = "edge"


class ActionType(str, Enum):
    LOAD_PLAYTREE = "load_playtree"
    SONG_ENDED = "song_ended"
    SKIP_FORWARD = "skip_forward"
    SKIP_BACKWARD = "skip_backward"
    NEXT_PLAYHEAD = "next_playhead"
    PREVIOUS_PLAYHEAD = "previous_playhead"
    SELECT_PLAYHEAD = "select_playhead"
    PLAY = "play"
    PAUSE = "pause"
    GET_SNAPSHOT = "get_snapshot"
    EXPORT = "export"


class RandomSource(Protocol):
    def rand(self) -> float: ...

    def spawn(self, substream_id: str) -> RandomSource: ...


@dataclass(frozen=True, slots=True)
class Playscope:
    scope_id: int
    name: str
    color: str = "white"


@dataclass(frozen=True, slots=True)
class Playitem:
    item_id: str
    name: str
    uri: str = ""
    multiplier: int = 1
    limit: int = UNLIMITED
    creator: str = ""
    creator_uri: str = ""
    source: str = "local"
    plurality: str = "single"


@dataclass(frozen=True, slots=True)
class Playedge:
    target_id: str
    priority: int = 0
    shares: int = 1
    limit: int = UNLIMITED

    @property
    def weight(self) -> int:
        return self.shares if self.shares else 1


@dataclass(frozen=True, slots=True)
class Playnode:
    node_id: str
    name: str
    kind: NodeKind
    playitems: tuple[Playitem, ...] = ()
    next: tuple[Playedge, ...] = ()
    limit: int = UNLIMITED
    playscopes: tuple[int, ...] = ()


@dataclass(frozen=True, slots=True)
class Playroot:
    index: int
    name: str


@dataclass(frozen=True, slots=True)
class PlaytreeSummary:
    playtree_id: str
    name: str
    created_by: str = ""
    access: str = "private"


@dataclass(frozen=True, slots=True)
class Playtree:
    summary: PlaytreeSummary
    playnodes: Mapping[str, Playnode]
    playroots: Mapping[str, Playroot]
    playscopes: tuple[Playscope, ...] = ()

    @property
    def name(self) -> str:
        return self.summary.name


@dataclass(slots=True)
class PlaybackEvent:
    event_id: str
    time: datetime
    scope: str
    event_type: str
    playhead: str | None
    message: str
    details: dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class PlayheadView:
    key: str
    name: str
    node_id: str
    node_name: str
    item_index: int | None
    mult_index: int
    item_id: str | None
    item_name: str | None
    item_uri: str | None
    node_playcount: int | None
    node_limit: int
    item_playcount: int | None
    item_limit: int | None
    scope_id: int
    stopped: bool
    history_depth: int


@dataclass(slots=True)
class PlayerSnapshot:
    playtree_name: str
    current_playhead: str | None
    playheads: list[PlayheadView]
    messages: list[str]
    playing: bool = False

    @property
    def current(self) -> PlayheadView | None:
        for view in self.playheads:
            if view.key == self.current_playhead:
                return view
        return None


@dataclass(slots=True)
class ActionRequest:
    request_id: str
    action_type: ActionType | str
    payload: dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class ActionResult:
    request_id: str
    success: bool
    message: str
    data: dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class PlayDecision:
    decision_id: str
    sequence: int
    action: str
    playhead: str | None
    from_node: str | None
    to_node: str | None
    item_index: int | None
    mult_index: int
    selector_rand: float | None
    edge_rand: float | None
    reset: bool
    message: str
    recorded_at: datetime


@dataclass(slots=True)
class ValidationIssue:
    code: str
    severity: str
    field_path: str
    entity_id: str
    message: str


@dataclass(slots=True)
class ValidationResult:
    ok: bool
    issues: list[ValidationIssue]

    @property
    def blocking(self) -> list[ValidationIssue]:
        return [i for i in self.issues if i.severity == "blocking"]

    @property
    def warnings(self) -> list[ValidationIssue]:
        return [i for i in self.issues if i.severity == "warning"]


class ValidationError(ValueError):
    def __init__(self, issues: list[ValidationIssue]) -> None:
        message = "; ".join(f"{i.code}:{i.entity_id}:{i.message}" for i in issues)
        super().__init__(message)
        self.issues = issues


@dataclass(slots=True)
class ForensicArtifact:
    artifact_id: str
    timestamp: datetime
    engine_scope: str
    error_code: str
    message: str
    state_snapshot: Mapping[str, Any]
    context: Mapping[str, Any]
    identifiers: Mapping[str, str]
    causal_fragment: Sequence[str]
