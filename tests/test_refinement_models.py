import pytest

from ai_agents.services.errors import InvalidTransition
from ai_agents.services.models import Critique, FollowUpQuestion, RefinementSession, Stage, StagedArtifacts


def _questions():
    return [
        FollowUpQuestion("q1", "How many?", "quantitative"),
        FollowUpQuestion("q2", "Who did you lead?", "leadership"),
        FollowUpQuestion("q3", "Why did it matter?", "strategic"),
    ]


def test_new_session_starts_drafted_with_initial_draft():
    session = RefinementSession.create("stmt-1", initial_draft="Managed account")

    assert session.current_stage == Stage.DRAFTED
    assert session.staged_artifacts.initial_draft == "Managed account"
    assert session.answers == {}
    assert session.questions is None
    assert session.loop_count == 0
    assert not session.completed


def test_advance_moves_one_stage_at_a_time():
    session = RefinementSession.create("stmt-1")
    session.advance(Stage.QUESTIONING)
    assert session.current_stage == Stage.QUESTIONING

    with pytest.raises(InvalidTransition) as excinfo:
        session.advance(Stage.FEEDBACK_REVIEW)
    assert excinfo.value.from_stage == 2
    assert session.current_stage == Stage.QUESTIONING

    with pytest.raises(InvalidTransition):
        session.advance(Stage.DRAFTED)


def test_advance_allows_only_loop_back_from_final_stage():
    session = RefinementSession("stmt-1", current_stage=Stage.SAVE_OR_LOOP)

    with pytest.raises(InvalidTransition):
        session.advance(6)
    with pytest.raises(InvalidTransition):
        session.advance(Stage.COMPARING)

    session.advance(Stage.QUESTIONING)
    assert session.current_stage == Stage.QUESTIONING


def test_completed_session_refuses_any_stage_change():
    session = RefinementSession("stmt-1", current_stage=Stage.SAVE_OR_LOOP, completed=True)

    with pytest.raises(InvalidTransition) as excinfo:
        session.advance(Stage.QUESTIONING)
    assert "completed" in excinfo.value.reason


def test_reset_clears_round_but_keeps_draft_and_questions():
    session = RefinementSession(
        "stmt-1",
        current_stage=Stage.SAVE_OR_LOOP,
        answers={"q1": "12 Amn"},
        questions=_questions(),
        feedback=Critique(score=7),
        staged_artifacts=StagedArtifacts(initial_draft="draft", post_answer="merged", polished="polished"),
        loop_count=1,
    )

    session.reset()

    assert session.current_stage == Stage.QUESTIONING
    assert session.answers == {}
    assert session.feedback is None
    assert session.staged_artifacts == StagedArtifacts(initial_draft="draft")
    assert session.question_ids() == ["q1", "q2", "q3"]
    assert session.loop_count == 1


def test_session_survives_dict_round_trip():
    session = RefinementSession(
        "stmt-1",
        current_stage=Stage.COMPARING,
        answers={"q1": "12 Amn", "q2": "Led flight"},
        questions=_questions(),
        feedback=Critique(score=8, strengths=("Clear",), improvements=("Shorter",), has_quantitative_data=True),
        staged_artifacts=StagedArtifacts(initial_draft="a", post_answer="b", polished="c"),
        loop_count=2,
    )

    restored = RefinementSession.from_dict(session.to_dict())

    assert restored == session
    assert restored.current_stage is Stage.COMPARING
