"""
Gating rules for the refinement workflow.

Every check either returns quietly or raises ``InvalidTransition``; none of
them touch the session. Fact-token helpers back the fact-fidelity checks of
the regeneration pipeline.
"""
from __future__ import annotations

import re
from typing import Iterable, List, Optional

from .errors import InvalidTransition
from .models import RefinementSession, Stage

_NUMBER_RE = re.compile(r"[$€£]?\d[\d,]*(?:\.\d+)?(?:%|\+|[KkMmBb]\b)?")
_WORD_RE = re.compile(r"[A-Za-z][A-Za-z0-9&'\-]*")
_ACRONYM_RE = re.compile(r"^[A-Z][A-Z0-9&\-]+$")
_SENTENCE_BREAK_RE = re.compile(r"(?:^|[.!?;:•]|--|\s-)\s*$")


# ---------- answer gating ----------
def is_answered(text: Optional[str]) -> bool:
    return bool(text and text.strip())


def answered_count(session: RefinementSession) -> int:
    known = set(session.question_ids())
    return sum(1 for qid, text in session.answers.items() if qid in known and is_answered(text))


def meets_answer_threshold(session: RefinementSession, min_answers: int) -> bool:
    return session.questions is not None and answered_count(session) >= min_answers


def _ensure_open(session: RefinementSession, requested: str) -> None:
    if session.completed:
        raise InvalidTransition(session.current_stage, requested, "session is completed")


def check_can_request_questions(session: RefinementSession) -> None:
    _ensure_open(session, "generate questions")
    if session.current_stage != Stage.QUESTIONING:
        raise InvalidTransition(session.current_stage, "generate questions", "questions are generated at stage 2")


def check_can_submit_answer(session: RefinementSession, question_id: str) -> None:
    _ensure_open(session, "submit answer")
    if session.current_stage != Stage.QUESTIONING:
        raise InvalidTransition(session.current_stage, "submit answer", "answers are accepted at stage 2")
    if session.questions is None:
        raise InvalidTransition(session.current_stage, "submit answer", "questions have not been generated")
    if question_id not in session.question_ids():
        raise InvalidTransition(session.current_stage, "submit answer", f"unknown question '{question_id}'")


def check_can_advance(session: RefinementSession, min_answers: int) -> Stage:
    """Return the stage an ``advance`` would move to, or raise."""
    _ensure_open(session, "advance")
    stage = session.current_stage
    if stage == Stage.SAVE_OR_LOOP:
        raise InvalidTransition(stage, "advance", "stage 5 is terminal; complete or loop back")
    if stage == Stage.QUESTIONING:
        if session.questions is None:
            raise InvalidTransition(stage, "advance", "questions have not been generated")
        answered = answered_count(session)
        if answered < min_answers:
            raise InvalidTransition(
                stage,
                "advance",
                f"{answered} of {len(session.questions)} questions answered; {min_answers} required",
            )
    return Stage(stage + 1)


def check_can_loop_back(session: RefinementSession) -> None:
    _ensure_open(session, "loop back")
    if session.current_stage != Stage.SAVE_OR_LOOP:
        raise InvalidTransition(session.current_stage, "loop back", "loop-back is only offered at stage 5")
    if session.staged_artifacts.polished is None:
        raise InvalidTransition(session.current_stage, "loop back", "no polished draft to refine again")


def check_can_complete(session: RefinementSession) -> None:
    _ensure_open(session, "complete")
    if session.current_stage != Stage.SAVE_OR_LOOP:
        raise InvalidTransition(session.current_stage, "complete", "completion happens at stage 5")


def check_can_suggest_synonyms(session: RefinementSession) -> None:
    _ensure_open(session, "suggest synonyms")
    if session.current_stage < Stage.COMPARING:
        raise InvalidTransition(session.current_stage, "suggest synonyms", "synonyms are offered after regeneration")


def can_refine_again(session: RefinementSession, max_loopbacks: int) -> bool:
    return (
        not session.completed
        and session.current_stage == Stage.SAVE_OR_LOOP
        and session.loop_count < max_loopbacks
    )


# ---------- fact tokens ----------
def _unique(tokens: Iterable[str]) -> List[str]:
    return list(dict.fromkeys(t for t in tokens if t))


def numeric_tokens(text: str) -> List[str]:
    return _unique(match.group(0).rstrip(",") for match in _NUMBER_RE.finditer(text or ""))


def proper_noun_tokens(text: str) -> List[str]:
    """Capitalised words that do not open a sentence, plus acronyms anywhere."""
    text = text or ""
    found = []
    for match in _WORD_RE.finditer(text):
        word = match.group(0).rstrip("-'")
        if _ACRONYM_RE.match(word):
            found.append(word)
            continue
        if not word[0].isupper():
            continue
        if _SENTENCE_BREAK_RE.search(text[: match.start()]):
            continue
        found.append(word)
    return _unique(found)


def fact_tokens(text: str) -> List[str]:
    return _unique(numeric_tokens(text) + proper_noun_tokens(text))


def _token_pattern(token: str) -> "re.Pattern[str]":
    # "12" must not match inside "120", "$12" or "12.5"
    return re.compile(r"(?<![\w$€£])(?<!\d[.,])" + re.escape(token) + r"(?![\w%+]|[.,]\d)")


def missing_tokens(tokens: Iterable[str], text: str) -> List[str]:
    """Tokens that do not appear in ``text`` as whole tokens."""
    text = text or ""
    return [token for token in tokens if not _token_pattern(token).search(text)]


def over_length(text: Optional[str], max_length: int) -> bool:
    return bool(text) and len(text) > max_length
