from __future__ import annotations

from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

DEFAULT_LOOP_LIMIT = 10_000


@dataclass(slots=True)
class EngineConfig:
    loop_limit: int = DEFAULT_LOOP_LIMIT
    journal_enabled: bool = True

    def validate(self) -> None:
        if self.loop_limit < 1:
            raise ValueError("loop_limit must be at least 1")


def config_from_mapping(config: dict[str, Any]) -> EngineConfig:
    known = {f.name for f in fields(EngineConfig)}
    unknown = sorted(set(config) - known)
    if unknown:
        raise ValueError(f"unknown engine configuration keys: {', '.join(unknown)}")
    engine_config = EngineConfig(**config)
    engine_config.validate()
    return engine_config


class RuntimePaths:
    def __init__(self, root: Path) -> None:
        self.root = root

    @property
    def journal_path(self) -> Path:
        return self.root / "data" / "journal.duckdb"

    @property
    def export_dir(self) -> Path:
        return self.root / "exports"

    @property
    def forensic_dir(self) -> Path:
        return self.root / "forensics"
