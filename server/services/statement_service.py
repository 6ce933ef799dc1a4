from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from ai_agents.services.collaborators import EntryStore, SessionStore, StatementStore, TextGenerator
from ai_agents.services.errors import NotFound
from ai_agents.services.models import Entry, Statement

logger = logging.getLogger(__name__)

DRAFT_MODES = ("combine", "separate")


class StatementService:
    """
    Creates statements in the drafted state from stored entries.

    ``combine`` folds every entry into one statement; ``separate`` drafts one
    statement per entry. Each new statement gets its refinement session.
    """

    def __init__(
        self,
        entries: EntryStore,
        statements: StatementStore,
        sessions: SessionStore,
        generator: TextGenerator,
    ) -> None:
        self._entries = entries
        self._statements = statements
        self._sessions = sessions
        self._generator = generator

    def generate(self, entry_ids: Sequence[str], mode: str = "combine") -> List[Statement]:
        if mode not in DRAFT_MODES:
            raise ValueError(f"mode must be one of {', '.join(DRAFT_MODES)}")
        entries = self._entries.get_entries_by_ids(entry_ids)
        if not entries:
            raise NotFound("entries", ", ".join(str(i) for i in entry_ids) or "<none>")

        groups: List[Sequence[Entry]] = [entries] if mode == "combine" else [[entry] for entry in entries]
        # draft everything first so a generation failure creates nothing
        drafts = [(group, self._generator.first_draft(group)) for group in groups]

        created = []
        for group, content in drafts:
            statement = self._statements.create(
                Statement(
                    id="",
                    content=content,
                    category=group[0].category,
                    source_entry_ids=[entry.id for entry in group],
                )
            )
            self._sessions.create(statement.id, initial_draft=statement.content)
            created.append(statement)
        logger.info("Drafted %s statement(s) from %s entries (mode=%s)", len(created), len(entries), mode)
        return created

    def get(self, statement_id: str) -> Optional[Statement]:
        return self._statements.get(statement_id)
