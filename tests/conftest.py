import os
import sys
from typing import Callable, Dict, List, Mapping, Optional, Sequence

import pytest

ROOT_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT_DIR not in sys.path:
    sys.path.insert(0, ROOT_DIR)

from ai_agents.services.config import RefinementConfig
from ai_agents.services.errors import GenerationFailed
from ai_agents.services.models import Critique, Entry, FollowUpQuestion, Stage, Statement, SynonymSuggestion
from ai_agents.services.refinement_orchestrator import RefinementOrchestrator
from server.data_access import EntryRepository, RefinementSessionRepository, StatementRepository
from storage.sqlite import database

os.environ.setdefault("GEMINI_API_KEY", "test-key")

_ROLE_STAGES = {
    "first_draft": Stage.DRAFTED,
    "follow_up_questions": Stage.QUESTIONING,
    "merge_answers": Stage.COMPARING,
    "critique_style": Stage.COMPARING,
    "polish": Stage.COMPARING,
    "synonyms": Stage.FEEDBACK_REVIEW,
}


class FakeGenerator:
    """Deterministic stand-in for the Gemini-backed generator."""

    def __init__(self) -> None:
        self.calls: List[str] = []
        self.fail_on: set = set()
        self.overrides: Dict[str, Callable] = {}

    def _call(self, role: str, default: Callable, *args):
        self.calls.append(role)
        if role in self.fail_on:
            raise GenerationFailed(_ROLE_STAGES[role], f"{role} unavailable")
        return self.overrides.get(role, default)(*args)

    def first_draft(self, entries: Sequence[Entry]) -> str:
        return self._call(
            "first_draft",
            lambda es: "; ".join(f"{e.action}--{e.impact}--{e.result}" for e in es),
            entries,
        )

    def follow_up_questions(self, content: str) -> List[FollowUpQuestion]:
        return self._call(
            "follow_up_questions",
            lambda _: [
                FollowUpQuestion("q1", "How many people did you lead?", "leadership", "Led 8 Amn"),
                FollowUpQuestion("q2", "What was the wider mission impact?", "strategic", "Enabled 3 wings"),
                FollowUpQuestion("q3", "What did it save?", "quantitative", "Saved $10K"),
            ],
            content,
        )

    def merge_answers(self, content: str, answers: Mapping[str, str]) -> str:
        return self._call(
            "merge_answers",
            lambda c, a: "; ".join([c] + [text.strip() for text in a.values()]),
            content,
            answers,
        )

    def critique_style(self, content: str) -> Critique:
        return self._call(
            "critique_style",
            lambda _: Critique(score=8, strengths=("Strong action verb",), improvements=("Tighten the opener",)),
            content,
        )

    def polish(self, content: str, improvements: Sequence[str], facts: Sequence[str]) -> str:
        return self._call("polish", lambda c, _i, _f: c, content, improvements, facts)

    def synonyms(self, content: str) -> List[SynonymSuggestion]:
        return self._call(
            "synonyms",
            lambda _: [SynonymSuggestion("Managed", ("Directed", "Orchestrated"), 0)],
            content,
        )


@pytest.fixture
def temp_db(tmp_path, monkeypatch):
    db_path = tmp_path / "test_statements.db"
    monkeypatch.setattr(database, "DB_PATH", db_path)
    return db_path


@pytest.fixture
def fake_generator() -> FakeGenerator:
    return FakeGenerator()


@pytest.fixture
def refinement_config() -> RefinementConfig:
    return RefinementConfig(api_key="test-key", max_loopbacks=2)


@pytest.fixture
def repositories(temp_db):
    return {
        "entries": EntryRepository(),
        "statements": StatementRepository(),
        "sessions": RefinementSessionRepository(),
    }


@pytest.fixture
def orchestrator(repositories, fake_generator, refinement_config) -> RefinementOrchestrator:
    return RefinementOrchestrator(
        repositories["statements"],
        repositories["sessions"],
        fake_generator,
        refinement_config,
    )


@pytest.fixture
def make_statement(repositories) -> Callable[..., str]:
    """Create a drafted statement (and its session) and return its id."""

    def _make(content: str = "Managed supply account--improved readiness", category: str = "Managing Resources") -> str:
        statement = repositories["statements"].create(Statement(id="", content=content, category=category))
        repositories["sessions"].create(statement.id, initial_draft=statement.content)
        return statement.id

    return _make


@pytest.fixture
def drive_to_stage(orchestrator):
    """Walk a statement forward along the happy path until it reaches ``stage``."""

    def _drive(statement_id: str, stage: int, answers: Optional[Dict[str, str]] = None):
        answers = answers or {"q1": "Led 12 personnel", "q3": "saved $40K"}
        view = orchestrator.start_refinement(statement_id)
        while view.session.current_stage < stage:
            if view.session.current_stage == Stage.QUESTIONING:
                if view.session.questions is None:
                    view = orchestrator.request_questions(statement_id)
                if view.answered_count < orchestrator.config.min_answers:
                    for question_id, text in answers.items():
                        view = orchestrator.submit_answer(statement_id, question_id, text)
            view = orchestrator.advance_stage(statement_id)
        return view

    return _drive
