"""
Gemini-backed generators for each role in the refinement workflow.

Structured output is parsed strictly: anything that does not match the
expected shape is a ``GenerationFailed``, never a silent fallback.
"""
from __future__ import annotations

import concurrent.futures
import logging
import math
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, TypeVar

from ai_agents.llm.gemini_client import GeminiError, GeminiText, RetryConfig

from . import prompts
from .config import RefinementConfig
from .errors import GenerationFailed
from .models import QUESTION_CATEGORIES, Critique, Entry, FollowUpQuestion, Stage, SynonymSuggestion

logger = logging.getLogger(__name__)

T = TypeVar("T")


class StatementGenerator:
    """Text-generation collaborator: one method per generator role."""

    def __init__(
        self,
        config: RefinementConfig,
        text_client: Optional[GeminiText] = None,
        *,
        max_workers: int = 4,
    ) -> None:
        self._config = config
        self._text = text_client or GeminiText(
            api_key=config.api_key,
            model=config.model,
            timeout=config.timeout_seconds,
            retry=RetryConfig(max_attempts=config.max_attempts),
        )
        self._executor = concurrent.futures.ThreadPoolExecutor(max_workers=max_workers)
        # default: one request timeout per attempt plus backoff slack
        self._deadline = config.deadline_seconds or config.timeout_seconds * max(1, config.max_attempts) + 5.0

    # ---------- roles ----------
    def first_draft(self, entries: Sequence[Entry]) -> str:
        prompt = prompts.build_first_draft_prompt(
            entries,
            max_length=self._config.max_length,
            banned_phrases=self._config.banned_phrases,
        )
        return self._text_call(Stage.DRAFTED, prompt, prompts.DRAFT_SYSTEM_PROMPT, temperature=0.5)

    def follow_up_questions(self, content: str) -> List[FollowUpQuestion]:
        data = self._json_call(
            Stage.QUESTIONING,
            prompts.build_questions_prompt(content),
            prompts.QUESTION_SYSTEM_PROMPT,
            temperature=0.7,
        )
        return _parse_questions(data)

    def merge_answers(self, content: str, answers: Mapping[str, str]) -> str:
        prompt = prompts.build_merge_prompt(
            content,
            answers,
            soft_max_length=self._config.merge_max_length,
            banned_phrases=self._config.banned_phrases,
        )
        return self._text_call(Stage.COMPARING, prompt, prompts.DRAFT_SYSTEM_PROMPT, temperature=0.3)

    def critique_style(self, content: str) -> Critique:
        data = self._json_call(
            Stage.COMPARING,
            prompts.build_critique_prompt(content, max_length=self._config.max_length),
            prompts.CRITIQUE_SYSTEM_PROMPT,
            temperature=0.2,
        )
        return _parse_critique(data)

    def polish(self, content: str, improvements: Sequence[str], facts: Sequence[str]) -> str:
        prompt = prompts.build_polish_prompt(
            content,
            improvements,
            facts,
            max_length=self._config.max_length,
            banned_phrases=self._config.banned_phrases,
        )
        return self._text_call(Stage.COMPARING, prompt, prompts.DRAFT_SYSTEM_PROMPT, temperature=0.2)

    def synonyms(self, content: str) -> List[SynonymSuggestion]:
        data = self._json_call(
            Stage.FEEDBACK_REVIEW,
            prompts.build_synonyms_prompt(content),
            prompts.CRITIQUE_SYSTEM_PROMPT,
            temperature=0.5,
        )
        return _parse_synonyms(data)

    # ---------- plumbing ----------
    def _system(self, template: str) -> str:
        return template.format(voice=self._config.voice)

    def _text_call(self, stage: Stage, prompt: str, system: str, *, temperature: float) -> str:
        raw = self._run(
            stage,
            lambda: self._text.chat(prompt, system_prompt=self._system(system), temperature=temperature),
        )
        text = _clean_statement(raw)
        if not text:
            raise GenerationFailed(stage, "empty output")
        return text

    def _json_call(self, stage: Stage, prompt: str, system: str, *, temperature: float) -> Dict[str, Any]:
        return self._run(
            stage,
            lambda: self._text.chat_json(prompt, system_prompt=self._system(system), temperature=temperature),
        )

    def _run(self, stage: Stage, call: Callable[[], T]) -> T:
        future = self._executor.submit(call)
        try:
            return future.result(timeout=self._deadline)
        except concurrent.futures.TimeoutError as exc:
            logger.warning("Generation at stage %s exceeded %.1fs deadline", int(stage), self._deadline)
            raise GenerationFailed(stage, f"timed out after {self._deadline:g}s") from exc
        except GeminiError as exc:
            logger.warning("Generation at stage %s failed: %s", int(stage), exc)
            raise GenerationFailed(stage, str(exc)) from exc


# ---------- strict parsers ----------
def _clean_statement(raw: str) -> str:
    text = (raw or "").strip()
    if len(text) >= 2 and text[0] == text[-1] and text[0] in "\"'":
        text = text[1:-1].strip()
    return text


def _as_list_str(value: Any, *, field_name: str, stage: Stage) -> List[str]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise GenerationFailed(stage, f"'{field_name}' is not a list")
    return [str(item).strip() for item in value if str(item).strip()]


def _parse_questions(data: Mapping[str, Any]) -> List[FollowUpQuestion]:
    stage = Stage.QUESTIONING
    items = data.get("questions")
    if not isinstance(items, list) or len(items) != len(QUESTION_CATEGORIES):
        count = len(items) if isinstance(items, list) else 0
        raise GenerationFailed(stage, f"expected {len(QUESTION_CATEGORIES)} questions, got {count}")

    questions: List[FollowUpQuestion] = []
    for index, item in enumerate(items, start=1):
        if not isinstance(item, dict):
            raise GenerationFailed(stage, f"question {index} is not an object")
        text = str(item.get("question") or "").strip()
        category = str(item.get("category") or "").strip().lower()
        if not text:
            raise GenerationFailed(stage, f"question {index} is blank")
        if category not in QUESTION_CATEGORIES:
            raise GenerationFailed(stage, f"question {index} has unknown category '{category}'")
        questions.append(
            FollowUpQuestion(id=f"q{index}", question=text, category=category, example=str(item.get("example") or "").strip())
        )

    if {q.category for q in questions} != set(QUESTION_CATEGORIES):
        raise GenerationFailed(stage, "questions must cover each category exactly once")
    return questions


def _parse_critique(data: Mapping[str, Any]) -> Critique:
    stage = Stage.COMPARING
    score = data.get("score")
    if isinstance(score, bool) or not isinstance(score, (int, float)):
        raise GenerationFailed(stage, "critique score is missing or not a number")
    if not 0 <= score <= 10:
        raise GenerationFailed(stage, f"critique score {score} is outside 0-10")

    character_count = data.get("characterCount", data.get("character_count"))
    return Critique(
        score=int(round(score)),
        strengths=tuple(_as_list_str(data.get("strengths"), field_name="strengths", stage=stage)),
        improvements=tuple(_as_list_str(data.get("improvements"), field_name="improvements", stage=stage)),
        character_count=_optional_int(character_count),
        has_quantitative_data=_optional_bool(data.get("hasQuantitativeData", data.get("has_quantitative_data"))),
        follows_air_structure=_optional_bool(data.get("followsAirStructure", data.get("follows_air_structure"))),
    )


def _parse_synonyms(data: Mapping[str, Any]) -> List[SynonymSuggestion]:
    stage = Stage.FEEDBACK_REVIEW
    items = data.get("suggestions")
    if not isinstance(items, list):
        raise GenerationFailed(stage, "'suggestions' is not a list")
    suggestions = []
    for item in items:
        if not isinstance(item, dict) or not str(item.get("original") or "").strip():
            raise GenerationFailed(stage, "synonym suggestion is missing 'original'")
        position = item.get("position")
        suggestions.append(
            SynonymSuggestion(
                original=str(item["original"]).strip(),
                synonyms=tuple(_as_list_str(item.get("synonyms"), field_name="synonyms", stage=stage)),
                position=_optional_int(position),
            )
        )
    return suggestions


def _optional_bool(value: Any) -> Optional[bool]:
    return value if isinstance(value, bool) else None


def _optional_int(value: Any) -> Optional[int]:
    # JSON decoding accepts Infinity and NaN
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        return None
    return int(value)
