from .duckdb_store import JOURNAL_TABLES, PlayJournalStore

__all__ = ["JOURNAL_TABLES", "PlayJournalStore"]
