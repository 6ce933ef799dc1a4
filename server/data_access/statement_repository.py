import json
import logging
import uuid
from typing import Any, Dict, List, Optional

from ai_agents.services.errors import NotFound
from ai_agents.services.models import Statement
from storage.sqlite.database import dict_row_factory, get_connection

logger = logging.getLogger(__name__)

_COLUMNS = "id, content, category, source_entry_ids_json, completed, ai_score, created_at, updated_at"
_UPDATABLE = {"content", "category", "completed", "ai_score", "source_entry_ids"}


def ensure_statements_table() -> None:
    with get_connection() as conn:
        cur = conn.cursor()
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS statements (
                id TEXT PRIMARY KEY,
                content TEXT NOT NULL,
                category TEXT NOT NULL,
                source_entry_ids_json TEXT,
                completed INTEGER DEFAULT 0,
                ai_score INTEGER,
                created_at TEXT DEFAULT (datetime('now')),
                updated_at TEXT DEFAULT (datetime('now'))
            )
            """
        )
        cur.execute("CREATE INDEX IF NOT EXISTS idx_statements_created ON statements(created_at DESC)")
        conn.commit()


def _to_statement(row: Dict[str, Any]) -> Statement:
    try:
        source_ids = json.loads(row.pop("source_entry_ids_json") or "[]")
    except json.JSONDecodeError:
        logger.warning("Statement %s has unreadable source_entry_ids_json; treating as empty", row["id"])
        source_ids = []
    return Statement(
        id=row["id"],
        content=row["content"],
        category=row["category"],
        source_entry_ids=[str(i) for i in source_ids],
        completed=bool(row["completed"]),
        ai_score=row["ai_score"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


class StatementRepository:
    def __init__(self) -> None:
        ensure_statements_table()

    def create(self, statement: Statement) -> Statement:
        statement_id = statement.id or str(uuid.uuid4())
        with get_connection() as conn:
            cur = conn.cursor()
            cur.execute(
                """
                INSERT INTO statements (id, content, category, source_entry_ids_json, completed, ai_score)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    statement_id,
                    statement.content,
                    statement.category,
                    json.dumps(list(statement.source_entry_ids), ensure_ascii=False),
                    int(statement.completed),
                    statement.ai_score,
                ),
            )
            conn.commit()
        created = self.get(statement_id)
        if created is None:
            raise NotFound("statement", statement_id)
        return created

    def get(self, statement_id: str) -> Optional[Statement]:
        with get_connection() as conn:
            conn.row_factory = dict_row_factory
            cur = conn.cursor()
            cur.execute(f"SELECT {_COLUMNS} FROM statements WHERE id = ?", (statement_id,))
            row = cur.fetchone()
        return _to_statement(row) if row else None

    def list_statements(self, *, completed: Optional[bool] = None) -> List[Statement]:
        query = f"SELECT {_COLUMNS} FROM statements"
        params: tuple = ()
        if completed is not None:
            query += " WHERE completed = ?"
            params = (int(completed),)
        query += " ORDER BY datetime(created_at) DESC, rowid DESC"
        with get_connection() as conn:
            conn.row_factory = dict_row_factory
            cur = conn.cursor()
            cur.execute(query, params)
            rows = cur.fetchall()
        return [_to_statement(row) for row in rows]

    def update(self, statement_id: str, **fields: Any) -> Statement:
        unknown = set(fields) - _UPDATABLE
        if unknown:
            raise ValueError(f"Cannot update statement field(s): {', '.join(sorted(unknown))}")

        assignments = []
        params: List[Any] = []
        for name, value in fields.items():
            if name == "source_entry_ids":
                assignments.append("source_entry_ids_json = ?")
                params.append(json.dumps(list(value), ensure_ascii=False))
            elif name == "completed":
                assignments.append("completed = ?")
                params.append(int(bool(value)))
            else:
                assignments.append(f"{name} = ?")
                params.append(value)
        assignments.append("updated_at = datetime('now')")

        with get_connection() as conn:
            cur = conn.cursor()
            cur.execute(
                f"UPDATE statements SET {', '.join(assignments)} WHERE id = ?",
                (*params, statement_id),
            )
            conn.commit()
            updated_rows = cur.rowcount
        if not updated_rows:
            raise NotFound("statement", statement_id)
        updated = self.get(statement_id)
        if updated is None:
            raise NotFound("statement", statement_id)
        return updated

    def delete(self, statement_id: str) -> bool:
        with get_connection() as conn:
            cur = conn.cursor()
            cur.execute("DELETE FROM statements WHERE id = ?", (statement_id,))
            conn.commit()
            return cur.rowcount > 0
