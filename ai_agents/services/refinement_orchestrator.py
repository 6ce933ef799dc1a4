"""
Refinement orchestrator: the operation set exposed to callers.

Loads a statement and its session, runs one pure transition from
``refinement_workflow``, then writes the result back. Transitions against
the same statement are serialised with a per-statement lock; different
statements proceed in parallel.
"""
from __future__ import annotations

import logging
import threading
import weakref
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Dict, Iterator, Optional, Tuple

from . import gating
from . import refinement_workflow as workflow
from .collaborators import SessionStore, StatementStore, TextGenerator
from .config import RefinementConfig
from .errors import InvalidTransition, NotFound
from .models import RefinementSession, Statement

logger = logging.getLogger(__name__)


@dataclass
class RefinementView:
    """What a caller sees after each operation."""

    statement: Statement
    session: RefinementSession
    answered_count: int
    can_advance: bool
    can_refine_again: bool
    over_length: bool
    artifact: Any = None

    def to_dict(self) -> Dict[str, Any]:
        artifact = self.artifact
        if hasattr(artifact, "to_dict"):
            artifact = artifact.to_dict()
        elif isinstance(artifact, list):
            artifact = [item.to_dict() if hasattr(item, "to_dict") else item for item in artifact]
        return {
            "statement": self.statement.to_dict(),
            "session": self.session.to_dict(),
            "stage_name": workflow.describe_stage(self.session.current_stage),
            "answered_count": self.answered_count,
            "can_advance": self.can_advance,
            "can_refine_again": self.can_refine_again,
            "over_length": self.over_length,
            "artifact": artifact,
        }


class RefinementOrchestrator:
    def __init__(
        self,
        statements: StatementStore,
        sessions: SessionStore,
        generator: TextGenerator,
        config: Optional[RefinementConfig] = None,
    ) -> None:
        self._statements = statements
        self._sessions = sessions
        self._generator = generator
        self._config = config or RefinementConfig()
        # entries disappear once no caller holds the lock
        self._locks: "weakref.WeakValueDictionary[str, threading.Lock]" = weakref.WeakValueDictionary()
        self._locks_guard = threading.Lock()

    @property
    def config(self) -> RefinementConfig:
        return self._config

    # ---------- operation set ----------
    def start_refinement(self, statement_id: str) -> RefinementView:
        """Open (or resume) the refinement session for a statement."""
        with self._serialised(statement_id):
            statement = self._get_statement(statement_id)
            session = self._sessions.get(statement_id)
            if session is None:
                session = self._sessions.create(statement_id, initial_draft=statement.content)
                logger.info("Started refinement for statement %s", statement_id)
            return self._view(statement, session, artifact=statement.content)

    def submit_answer(self, statement_id: str, question_id: str, text: str) -> RefinementView:
        with self._serialised(statement_id):
            statement, session = self._load(statement_id)
            result = workflow.submit_answer(session, question_id, text)
            return self._commit(statement, session, result)

    def request_questions(self, statement_id: str) -> RefinementView:
        with self._serialised(statement_id):
            statement, session = self._load(statement_id)
            result = workflow.request_questions(session, statement.content, self._generator)
            return self._commit(statement, session, result)

    def advance_stage(self, statement_id: str) -> RefinementView:
        with self._serialised(statement_id):
            statement, session = self._load(statement_id)
            result = workflow.advance(session, statement.content, self._generator, self._config)
            return self._commit(statement, session, result)

    def loop_back(self, statement_id: str) -> RefinementView:
        with self._serialised(statement_id):
            statement, session = self._load(statement_id)
            result = workflow.loop_back(session)
            if result.session.loop_count > self._config.max_loopbacks:
                logger.info(
                    "Statement %s looped back %s times (soft cap %s)",
                    statement_id,
                    result.session.loop_count,
                    self._config.max_loopbacks,
                )
            return self._commit(statement, session, result)

    def complete(self, statement_id: str) -> RefinementView:
        with self._serialised(statement_id):
            statement, session = self._load(statement_id)
            result = workflow.complete(session)
            return self._commit(statement, session, result)

    def suggest_synonyms(self, statement_id: str) -> RefinementView:
        with self._serialised(statement_id):
            statement, session = self._load(statement_id)
            result = workflow.suggest_synonyms(session, statement.content, self._generator)
            return self._commit(statement, session, result)

    def get_view(self, statement_id: str) -> RefinementView:
        with self._serialised(statement_id):
            statement, session = self._load(statement_id)
            return self._view(statement, session)

    # ---------- internals ----------
    @contextmanager
    def _serialised(self, statement_id: str) -> Iterator[None]:
        with self._locks_guard:
            lock = self._locks.get(statement_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[statement_id] = lock
        with lock:
            yield

    def _get_statement(self, statement_id: str) -> Statement:
        statement = self._statements.get(statement_id)
        if statement is None:
            raise NotFound("statement", statement_id)
        return statement

    def _load(self, statement_id: str) -> Tuple[Statement, RefinementSession]:
        statement = self._get_statement(statement_id)
        session = self._sessions.get(statement_id)
        if session is None:
            raise NotFound("refinement session", statement_id)
        return statement, session

    def _commit(self, statement: Statement, previous: RefinementSession, result: workflow.TransitionResult) -> RefinementView:
        session = self._sessions.update(statement.id, result.session)
        if result.statement_changes:
            try:
                statement = self._statements.update(statement.id, **result.statement_changes)
            except Exception:
                logger.error("Statement %s update failed; restoring session state", statement.id)
                self._sessions.update(statement.id, previous)
                raise
        return self._view(statement, session, artifact=result.artifact)

    def _view(self, statement: Statement, session: RefinementSession, artifact: Any = None) -> RefinementView:
        try:
            gating.check_can_advance(session, self._config.min_answers)
            can_advance = True
        except InvalidTransition:
            can_advance = False
        return RefinementView(
            statement=statement,
            session=session,
            answered_count=gating.answered_count(session),
            can_advance=can_advance,
            can_refine_again=gating.can_refine_again(session, self._config.max_loopbacks),
            over_length=gating.over_length(statement.content, self._config.max_length),
            artifact=artifact,
        )
