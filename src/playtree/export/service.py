from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import duckdb

from playtree.persistence import JOURNAL_TABLES

logger = logging.getLogger(__name__)


class ExportService:
    def __init__(self, journal_db: Path) -> None:
        self.journal_db = journal_db

    def export_journal(self, output_dir: Path) -> list[Path]:
        if not self.journal_db.exists():
            raise RuntimeError(f"no play journal at {self.journal_db}")
        output_dir.mkdir(parents=True, exist_ok=True)
        outputs: list[Path] = []
        with duckdb.connect(str(self.journal_db)) as conn:
            for table in JOURNAL_TABLES:
                outputs.extend(self._export_table(conn, table, output_dir / table))
        logger.info("exported %d files to %s", len(outputs), output_dir)
        return outputs

    def _export_table(self, conn: Any, table: str, stem: Path) -> list[Path]:
        csv_path = stem.with_suffix(".csv")
        parquet_path = stem.with_suffix(".parquet")
        conn.execute(f"COPY (SELECT * FROM {table}) TO '{csv_path.as_posix()}' (HEADER, DELIMITER ',')")
        conn.execute(f"COPY (SELECT * FROM {table}) TO '{parquet_path.as_posix()}' (FORMAT PARQUET)")
        return [csv_path, parquet_path]
