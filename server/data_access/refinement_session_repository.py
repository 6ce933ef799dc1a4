import json
from typing import Optional

from ai_agents.services.errors import NotFound
from ai_agents.services.models import RefinementSession
from storage.sqlite.database import dict_row_factory, get_connection


def ensure_refinement_session_tables() -> None:
    with get_connection() as conn:
        cur = conn.cursor()
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS refinement_sessions (
                statement_id TEXT PRIMARY KEY,
                current_stage INTEGER NOT NULL DEFAULT 1,
                completed INTEGER DEFAULT 0,
                state_json TEXT NOT NULL,
                created_at TEXT DEFAULT (datetime('now')),
                updated_at TEXT DEFAULT (datetime('now')),
                FOREIGN KEY (statement_id) REFERENCES statements(id) ON DELETE CASCADE
            )
            """
        )
        conn.commit()


class RefinementSessionRepository:
    """One row per statement; the full session is kept as JSON in ``state_json``."""

    def __init__(self) -> None:
        ensure_refinement_session_tables()

    def create(self, statement_id: str, initial_draft: Optional[str] = None) -> RefinementSession:
        session = RefinementSession.create(statement_id, initial_draft=initial_draft)
        with get_connection() as conn:
            cur = conn.cursor()
            cur.execute(
                """
                INSERT INTO refinement_sessions (statement_id, current_stage, completed, state_json)
                VALUES (?, ?, ?, ?)
                """,
                (statement_id, int(session.current_stage), int(session.completed), self._dump(session)),
            )
            conn.commit()
        return session

    def get(self, statement_id: str) -> Optional[RefinementSession]:
        with get_connection() as conn:
            conn.row_factory = dict_row_factory
            cur = conn.cursor()
            cur.execute("SELECT state_json FROM refinement_sessions WHERE statement_id = ?", (statement_id,))
            row = cur.fetchone()
        if not row:
            return None
        return RefinementSession.from_dict(json.loads(row["state_json"]))

    def update(self, statement_id: str, session: RefinementSession) -> RefinementSession:
        with get_connection() as conn:
            cur = conn.cursor()
            cur.execute(
                """
                UPDATE refinement_sessions
                SET current_stage = ?, completed = ?, state_json = ?, updated_at = datetime('now')
                WHERE statement_id = ?
                """,
                (int(session.current_stage), int(session.completed), self._dump(session), statement_id),
            )
            conn.commit()
            updated_rows = cur.rowcount
        if not updated_rows:
            raise NotFound("refinement session", statement_id)
        return session

    @staticmethod
    def _dump(session: RefinementSession) -> str:
        return json.dumps(session.to_dict(), ensure_ascii=False, sort_keys=True)
