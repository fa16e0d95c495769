from .config import DEFAULT_LOOP_LIMIT, EngineConfig, RuntimePaths, config_from_mapping
from .errors import (
    EngineIntegrityError,
    PlaybackContractError,
    build_forensic_artifact,
    contract_violation,
    persist_forensic_artifact,
)
from .events import EventBus, make_event, make_id, now_utc
from .randomness import DecisionRandomness, PythonRandomSource, RandomDraw, playback_random, seeded_random

__all__ = [
    "DEFAULT_LOOP_LIMIT",
    "DecisionRandomness",
    "EngineConfig",
    "EngineIntegrityError",
    "EventBus",
    "PlaybackContractError",
    "PythonRandomSource",
    "RandomDraw",
    "RuntimePaths",
    "build_forensic_artifact",
    "config_from_mapping",
    "contract_violation",
    "make_event",
    "make_id",
    "now_utc",
    "persist_forensic_artifact",
    "playback_random",
    "seeded_random",
]
