from .types import (
    DEFAULT_SCOPE_ID,
    UNLIMITED,
    ActionRequest,
    ActionResult,
    ActionType,
    CounterKind,
    ForensicArtifact,
    NodeKind,
    PlaybackEvent,
    PlayDecision,
    PlayerSnapshot,
    Playedge,
    PlayEvent,
    PlayheadView,
    Playitem,
    Playnode,
    Playroot,
    Playscope,
    Playtree,
    PlaytreeSummary,
    RandomSource,
    ValidationError,
    ValidationIssue,
    ValidationResult,
)

__all__ = [
    "DEFAULT_SCOPE_ID",
    "UNLIMITED",
    "ActionRequest",
    "ActionResult",
    "ActionType",
    "CounterKind",
    "ForensicArtifact",
    "NodeKind",
    "PlayEvent",
    "PlaybackEvent",
    "PlayDecision",
    "PlayerSnapshot",
    "Playedge",
    "PlayheadView",
    "Playitem",
    "Playnode",
    "Playroot",
    "Playscope",
    "Playtree",
    "PlaytreeSummary",
    "RandomSource",
    "ValidationError",
    "ValidationIssue",
    "ValidationResult",
]
