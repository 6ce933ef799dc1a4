import logging
import uuid
from typing import List, Optional, Sequence

from ai_agents.services.errors import NotFound
from ai_agents.services.models import PERFORMANCE_CATEGORIES, Entry
from storage.sqlite.database import dict_row_factory, get_connection

logger = logging.getLogger(__name__)

_COLUMNS = "id, category, action, impact, result, created_at"


def ensure_entries_table() -> None:
    with get_connection() as conn:
        cur = conn.cursor()
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS entries (
                id TEXT PRIMARY KEY,
                category TEXT NOT NULL,
                action TEXT NOT NULL,
                impact TEXT NOT NULL,
                result TEXT NOT NULL,
                created_at TEXT DEFAULT (datetime('now'))
            )
            """
        )
        cur.execute("CREATE INDEX IF NOT EXISTS idx_entries_created ON entries(created_at DESC)")
        conn.commit()


def _to_entry(row: dict) -> Entry:
    return Entry(**row)


class EntryRepository:
    def __init__(self) -> None:
        ensure_entries_table()

    def create_entry(self, *, category: str, action: str, impact: str, result: str) -> Entry:
        if category not in PERFORMANCE_CATEGORIES:
            raise ValueError(f"Unknown performance category '{category}'")
        fields = {"action": action, "impact": impact, "result": result}
        blank = [name for name, value in fields.items() if not (value or "").strip()]
        if blank:
            raise ValueError(f"Entry fields must not be blank: {', '.join(blank)}")

        entry_id = str(uuid.uuid4())
        with get_connection() as conn:
            cur = conn.cursor()
            cur.execute(
                "INSERT INTO entries (id, category, action, impact, result) VALUES (?, ?, ?, ?, ?)",
                (entry_id, category, action.strip(), impact.strip(), result.strip()),
            )
            conn.commit()
        entry = self.get_entry(entry_id)
        if entry is None:
            raise NotFound("entry", entry_id)
        return entry

    def get_entry(self, entry_id: str) -> Optional[Entry]:
        with get_connection() as conn:
            conn.row_factory = dict_row_factory
            cur = conn.cursor()
            cur.execute(f"SELECT {_COLUMNS} FROM entries WHERE id = ?", (entry_id,))
            row = cur.fetchone()
        return _to_entry(row) if row else None

    def list_entries(self) -> List[Entry]:
        with get_connection() as conn:
            conn.row_factory = dict_row_factory
            cur = conn.cursor()
            cur.execute(f"SELECT {_COLUMNS} FROM entries ORDER BY datetime(created_at) DESC, rowid DESC")
            rows = cur.fetchall()
        return [_to_entry(row) for row in rows]

    def get_entries_by_ids(self, ids: Sequence[str]) -> List[Entry]:
        wanted = list(dict.fromkeys(str(i) for i in ids if i))
        if not wanted:
            return []
        placeholders = ", ".join("?" for _ in wanted)
        with get_connection() as conn:
            conn.row_factory = dict_row_factory
            cur = conn.cursor()
            cur.execute(f"SELECT {_COLUMNS} FROM entries WHERE id IN ({placeholders})", wanted)
            found = {row["id"]: _to_entry(row) for row in cur.fetchall()}

        missing = [entry_id for entry_id in wanted if entry_id not in found]
        if missing:
            logger.warning("Skipping %s unknown entry id(s): %s", len(missing), ", ".join(missing))
        return [found[entry_id] for entry_id in wanted if entry_id in found]
