from .entry_repository import EntryRepository, ensure_entries_table
from .statement_repository import StatementRepository, ensure_statements_table
from .refinement_session_repository import (
    RefinementSessionRepository,
    ensure_refinement_session_tables,
)

__all__ = [
    "EntryRepository",
    "StatementRepository",
    "RefinementSessionRepository",
    "ensure_entries_table",
    "ensure_statements_table",
    "ensure_refinement_session_tables",
]
