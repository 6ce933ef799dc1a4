from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Tuple

DEFAULT_BANNED_PHRASES: Tuple[str, ...] = (
    # filler intensifiers
    "very",
    "really",
    "extremely",
    # vague ownership
    "helped with",
    "assisted in",
    "was responsible for",
    # cliches
    "went above and beyond",
    "team player",
    "hard worker",
)


@dataclass(frozen=True)
class RefinementConfig:
    """Settings for generation calls and workflow policy.

    Built once by the caller and handed to the generator and orchestrator;
    nothing below reads the environment at call time.
    """

    api_key: Optional[str] = None
    model: str = "gemini-2.0-flash"
    timeout_seconds: float = 45.0
    max_attempts: int = 1
    deadline_seconds: Optional[float] = None
    max_length: int = 350
    merge_max_length: int = 500
    min_answers: int = 2
    max_loopbacks: int = 2
    verify_facts: bool = True
    banned_phrases: Tuple[str, ...] = field(default=DEFAULT_BANNED_PHRASES)
    voice: str = "Air Force enlisted performance statement"

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any]) -> "RefinementConfig":
        """Build from a flat settings mapping (e.g. Flask ``app.config``)."""
        keys = {
            "api_key": "GEMINI_API_KEY",
            "model": "LLM_MODEL",
            "timeout_seconds": "GENERATION_TIMEOUT_SECONDS",
            "max_attempts": "GENERATION_MAX_ATTEMPTS",
            "deadline_seconds": "GENERATION_DEADLINE_SECONDS",
            "max_length": "STATEMENT_MAX_LENGTH",
            "merge_max_length": "MERGE_MAX_LENGTH",
            "min_answers": "REFINEMENT_MIN_ANSWERS",
            "max_loopbacks": "REFINEMENT_MAX_LOOPBACKS",
            "verify_facts": "REFINEMENT_VERIFY_FACTS",
            "banned_phrases": "BANNED_PHRASES",
        }
        kwargs = {}
        for attr, key in keys.items():
            if mapping.get(key) is not None:
                kwargs[attr] = mapping[key]
        if "banned_phrases" in kwargs:
            kwargs["banned_phrases"] = tuple(kwargs["banned_phrases"])
        return cls(**kwargs)
