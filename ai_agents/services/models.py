"""
Shared data models for the statement refinement workflow.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Dict, List, Mapping, Optional, Sequence

from .errors import InvalidTransition

PERFORMANCE_CATEGORIES = (
    "Mission Execution",
    "Leading People",
    "Improving Unit",
    "Managing Resources",
    "Personal Development",
)

QUESTION_CATEGORIES = ("quantitative", "leadership", "strategic")


class Stage(IntEnum):
    DRAFTED = 1
    QUESTIONING = 2
    COMPARING = 3
    FEEDBACK_REVIEW = 4
    SAVE_OR_LOOP = 5


LOOP_BACK_TARGET = Stage.QUESTIONING


@dataclass(frozen=True)
class Entry:
    """A raw achievement record ("win"). Read-only to the workflow."""

    id: str
    category: str
    action: str
    impact: str
    result: str
    created_at: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "category": self.category,
            "action": self.action,
            "impact": self.impact,
            "result": self.result,
            "created_at": self.created_at,
        }


@dataclass
class Statement:
    id: str
    content: str
    category: str
    source_entry_ids: List[str] = field(default_factory=list)
    completed: bool = False
    ai_score: Optional[int] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "content": self.content,
            "category": self.category,
            "source_entry_ids": list(self.source_entry_ids),
            "completed": self.completed,
            "ai_score": self.ai_score,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }


@dataclass(frozen=True)
class FollowUpQuestion:
    id: str
    question: str
    category: str
    example: str = ""

    def to_dict(self) -> Dict[str, str]:
        return {"id": self.id, "question": self.question, "category": self.category, "example": self.example}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "FollowUpQuestion":
        return cls(
            id=str(data["id"]),
            question=str(data["question"]),
            category=str(data["category"]),
            example=str(data.get("example") or ""),
        )


@dataclass(frozen=True)
class Critique:
    """Style-only critique of a draft: score plus strengths and phrasing notes."""

    score: int
    strengths: Sequence[str] = field(default_factory=tuple)
    improvements: Sequence[str] = field(default_factory=tuple)
    character_count: Optional[int] = None
    has_quantitative_data: Optional[bool] = None
    follows_air_structure: Optional[bool] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "score": self.score,
            "strengths": list(self.strengths),
            "improvements": list(self.improvements),
            "character_count": self.character_count,
            "has_quantitative_data": self.has_quantitative_data,
            "follows_air_structure": self.follows_air_structure,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Critique":
        return cls(
            score=int(data["score"]),
            strengths=tuple(data.get("strengths") or ()),
            improvements=tuple(data.get("improvements") or ()),
            character_count=data.get("character_count"),
            has_quantitative_data=data.get("has_quantitative_data"),
            follows_air_structure=data.get("follows_air_structure"),
        )


@dataclass(frozen=True)
class SynonymSuggestion:
    original: str
    synonyms: Sequence[str] = field(default_factory=tuple)
    position: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"original": self.original, "synonyms": list(self.synonyms), "position": self.position}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SynonymSuggestion":
        return cls(
            original=str(data["original"]),
            synonyms=tuple(data.get("synonyms") or ()),
            position=data.get("position"),
        )


@dataclass
class StagedArtifacts:
    """Intermediate drafts kept for before/after comparison."""

    initial_draft: Optional[str] = None
    post_answer: Optional[str] = None
    polished: Optional[str] = None

    def to_dict(self) -> Dict[str, Optional[str]]:
        return {"initial_draft": self.initial_draft, "post_answer": self.post_answer, "polished": self.polished}

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "StagedArtifacts":
        data = data or {}
        return cls(
            initial_draft=data.get("initial_draft"),
            post_answer=data.get("post_answer"),
            polished=data.get("polished"),
        )


@dataclass
class RefinementSession:
    """Durable state of one statement's refinement. Data access and simple mutation only."""

    statement_id: str
    current_stage: Stage = Stage.DRAFTED
    answers: Dict[str, str] = field(default_factory=dict)
    questions: Optional[List[FollowUpQuestion]] = None
    feedback: Optional[Critique] = None
    staged_artifacts: StagedArtifacts = field(default_factory=StagedArtifacts)
    synonyms: Optional[List[SynonymSuggestion]] = None
    loop_count: int = 0
    completed: bool = False

    @classmethod
    def create(cls, statement_id: str, initial_draft: Optional[str] = None) -> "RefinementSession":
        return cls(statement_id=statement_id, staged_artifacts=StagedArtifacts(initial_draft=initial_draft))

    def record_answer(self, question_id: str, text: str) -> None:
        self.answers[question_id] = text

    def advance(self, to_stage: int) -> None:
        current = self.current_stage
        if self.completed:
            raise InvalidTransition(current, f"advance to stage {int(to_stage)}", "session is completed")
        is_next = to_stage == current + 1 and to_stage <= Stage.SAVE_OR_LOOP
        is_loop_back = current == Stage.SAVE_OR_LOOP and to_stage == LOOP_BACK_TARGET
        if not (is_next or is_loop_back):
            raise InvalidTransition(current, f"advance to stage {int(to_stage)}", "stages move forward one at a time")
        self.current_stage = Stage(to_stage)

    def reset(self) -> None:
        self.answers = {}
        self.feedback = None
        self.staged_artifacts = StagedArtifacts(initial_draft=self.staged_artifacts.initial_draft)
        self.current_stage = LOOP_BACK_TARGET

    def question_ids(self) -> List[str]:
        return [q.id for q in self.questions or []]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "statement_id": self.statement_id,
            "current_stage": int(self.current_stage),
            "answers": dict(self.answers),
            "questions": [q.to_dict() for q in self.questions] if self.questions is not None else None,
            "feedback": self.feedback.to_dict() if self.feedback is not None else None,
            "staged_artifacts": self.staged_artifacts.to_dict(),
            "synonyms": [s.to_dict() for s in self.synonyms] if self.synonyms is not None else None,
            "loop_count": self.loop_count,
            "completed": self.completed,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "RefinementSession":
        questions = data.get("questions")
        feedback = data.get("feedback")
        synonyms = data.get("synonyms")
        return cls(
            statement_id=str(data["statement_id"]),
            current_stage=Stage(int(data.get("current_stage") or Stage.DRAFTED)),
            answers={str(k): str(v) for k, v in (data.get("answers") or {}).items()},
            questions=[FollowUpQuestion.from_dict(q) for q in questions] if questions is not None else None,
            feedback=Critique.from_dict(feedback) if feedback is not None else None,
            staged_artifacts=StagedArtifacts.from_dict(data.get("staged_artifacts")),
            synonyms=[SynonymSuggestion.from_dict(s) for s in synonyms] if synonyms is not None else None,
            loop_count=int(data.get("loop_count") or 0),
            completed=bool(data.get("completed")),
        )
