"""
Pure transition functions for the five-stage refinement workflow.

Each function takes the current session (plus whatever the transition
needs) and returns a ``TransitionResult`` holding a *new* session, the
artifact produced, and the statement fields to write. Inputs are never
mutated, so a raised error leaves the caller's state exactly as it was.
"""
from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from . import gating
from .collaborators import TextGenerator
from .config import RefinementConfig
from .errors import GenerationFailed
from .models import Critique, FollowUpQuestion, RefinementSession, Stage

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransitionResult:
    session: RefinementSession
    artifact: Any = None
    statement_changes: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class RegenerationArtifact:
    post_answer: str
    feedback: Critique
    polished: str
    over_length: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "post_answer": self.post_answer,
            "feedback": self.feedback.to_dict(),
            "polished": self.polished,
            "over_length": self.over_length,
        }


def _clone(session: RefinementSession) -> RefinementSession:
    return copy.deepcopy(session)


def submit_answer(session: RefinementSession, question_id: str, text: str) -> TransitionResult:
    gating.check_can_submit_answer(session, question_id)
    updated = _clone(session)
    updated.record_answer(question_id, text)
    return TransitionResult(session=updated, artifact={"answered_count": gating.answered_count(updated)})


def request_questions(session: RefinementSession, content: str, generator: TextGenerator) -> TransitionResult:
    gating.check_can_request_questions(session)
    questions: List[FollowUpQuestion] = generator.follow_up_questions(content)

    updated = _clone(session)
    updated.questions = list(questions)
    kept = {q.id for q in questions}
    updated.answers = {qid: text for qid, text in updated.answers.items() if qid in kept}
    logger.info("Generated %s follow-up questions for statement %s", len(questions), session.statement_id)
    return TransitionResult(session=updated, artifact=list(questions))


def advance(
    session: RefinementSession,
    content: str,
    generator: TextGenerator,
    config: RefinementConfig,
) -> TransitionResult:
    target = gating.check_can_advance(session, config.min_answers)

    if target == Stage.COMPARING:
        return _regenerate(session, content, generator, config)

    updated = _clone(session)
    if target == Stage.QUESTIONING and updated.staged_artifacts.initial_draft is None:
        updated.staged_artifacts.initial_draft = content
    updated.advance(target)
    logger.info("Statement %s moved to stage %s", session.statement_id, int(target))

    artifact: Any = None
    if target == Stage.QUESTIONING:
        artifact = updated.staged_artifacts.initial_draft
    elif target == Stage.FEEDBACK_REVIEW:
        artifact = updated.feedback
    return TransitionResult(session=updated, artifact=artifact)


def _regenerate(
    session: RefinementSession,
    content: str,
    generator: TextGenerator,
    config: RefinementConfig,
) -> TransitionResult:
    answered = {
        q.question: session.answers[q.id]
        for q in session.questions or []
        if gating.is_answered(session.answers.get(q.id))
    }

    post_answer = generator.merge_answers(content, answered)
    if config.verify_facts:
        expected = gating.numeric_tokens(content)
        for text in answered.values():
            expected.extend(gating.numeric_tokens(text))
        dropped = gating.missing_tokens(dict.fromkeys(expected), post_answer)
        if dropped:
            raise GenerationFailed(Stage.COMPARING, f"merged draft dropped facts: {', '.join(dropped)}")

    feedback = generator.critique_style(post_answer)

    facts = gating.fact_tokens(post_answer)
    polished = generator.polish(post_answer, list(feedback.improvements), facts)
    if config.verify_facts:
        dropped = gating.missing_tokens(facts, polished)
        if dropped:
            raise GenerationFailed(Stage.COMPARING, f"polished draft dropped facts: {', '.join(dropped)}")

    over_length = gating.over_length(polished, config.max_length)
    if over_length:
        logger.info(
            "Polished statement %s is %s chars (ceiling %s); keeping facts over length",
            session.statement_id,
            len(polished),
            config.max_length,
        )

    updated = _clone(session)
    updated.staged_artifacts.post_answer = post_answer
    updated.staged_artifacts.polished = polished
    updated.feedback = feedback
    updated.advance(Stage.COMPARING)
    logger.info("Statement %s regenerated (score %s) and moved to stage 3", session.statement_id, feedback.score)

    return TransitionResult(
        session=updated,
        artifact=RegenerationArtifact(post_answer=post_answer, feedback=feedback, polished=polished, over_length=over_length),
        statement_changes={"content": polished, "ai_score": feedback.score},
    )


def loop_back(session: RefinementSession) -> TransitionResult:
    gating.check_can_loop_back(session)
    updated = _clone(session)
    previous = updated.staged_artifacts.polished
    updated.staged_artifacts.initial_draft = previous
    updated.advance(Stage.QUESTIONING)
    updated.reset()
    updated.loop_count += 1
    logger.info("Statement %s looped back to stage 2 (loop %s)", session.statement_id, updated.loop_count)
    return TransitionResult(session=updated, artifact=previous)


def complete(session: RefinementSession) -> TransitionResult:
    gating.check_can_complete(session)
    updated = _clone(session)
    updated.completed = True
    logger.info("Statement %s completed after %s loop(s)", session.statement_id, session.loop_count)
    return TransitionResult(session=updated, statement_changes={"completed": True})


def suggest_synonyms(session: RefinementSession, content: str, generator: TextGenerator) -> TransitionResult:
    gating.check_can_suggest_synonyms(session)
    suggestions = generator.synonyms(content)
    updated = _clone(session)
    updated.synonyms = list(suggestions)
    return TransitionResult(session=updated, artifact=list(suggestions))


def describe_stage(stage: Optional[int]) -> str:
    if stage is None:
        return "unknown"
    return Stage(stage).name.lower()
