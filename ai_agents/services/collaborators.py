"""
Contracts for the collaborators the refinement workflow depends on.
"""
from __future__ import annotations

from typing import Any, List, Mapping, Optional, Protocol, Sequence, runtime_checkable

from .models import Critique, Entry, FollowUpQuestion, RefinementSession, Statement, SynonymSuggestion


@runtime_checkable
class EntryStore(Protocol):
    def get_entries_by_ids(self, ids: Sequence[str]) -> List[Entry]:
        """Resolve entries in request order; unknown ids are skipped."""
        ...


@runtime_checkable
class StatementStore(Protocol):
    def create(self, statement: Statement) -> Statement:
        ...

    def get(self, statement_id: str) -> Optional[Statement]:
        ...

    def update(self, statement_id: str, **fields: Any) -> Statement:
        ...


@runtime_checkable
class SessionStore(Protocol):
    def create(self, statement_id: str, initial_draft: Optional[str] = None) -> RefinementSession:
        ...

    def get(self, statement_id: str) -> Optional[RefinementSession]:
        ...

    def update(self, statement_id: str, session: RefinementSession) -> RefinementSession:
        ...


@runtime_checkable
class TextGenerator(Protocol):
    """One operation per generator role. Every method raises ``GenerationFailed`` on failure."""

    def first_draft(self, entries: Sequence[Entry]) -> str:
        ...

    def follow_up_questions(self, content: str) -> List[FollowUpQuestion]:
        ...

    def merge_answers(self, content: str, answers: Mapping[str, str]) -> str:
        ...

    def critique_style(self, content: str) -> Critique:
        ...

    def polish(self, content: str, improvements: Sequence[str], facts: Sequence[str]) -> str:
        ...

    def synonyms(self, content: str) -> List[SynonymSuggestion]:
        ...
