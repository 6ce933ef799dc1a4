"""
Error taxonomy for the refinement workflow.
"""
from __future__ import annotations

from typing import Mapping, Optional


class RefinementError(RuntimeError):
    """Base class for errors surfaced to callers of the refinement workflow."""

    code: str = "refinement_error"

    def __init__(self, message: str, *, code: Optional[str] = None, details: Optional[Mapping[str, object]] = None) -> None:
        super().__init__(message)
        if code:
            self.code = code
        self.details = dict(details or {})

    def to_dict(self) -> dict:
        payload = {"error": str(self), "code": self.code}
        payload.update(self.details)
        return payload


class NotFound(RefinementError):
    """A referenced entry, statement, or session does not exist."""

    code = "not_found"

    def __init__(self, kind: str, identifier: str) -> None:
        super().__init__(f"{kind} '{identifier}' not found", details={"kind": kind, "id": identifier})
        self.kind = kind
        self.identifier = identifier


class InvalidTransition(RefinementError):
    """The requested transition is not allowed from the session's current state."""

    code = "invalid_transition"

    def __init__(self, from_stage: int, requested: str, reason: str) -> None:
        super().__init__(
            f"Cannot {requested} from stage {int(from_stage)}: {reason}",
            details={"stage": int(from_stage), "requested": requested, "reason": reason},
        )
        self.from_stage = int(from_stage)
        self.requested = requested
        self.reason = reason


class GenerationFailed(RefinementError):
    """The text-generation collaborator failed, timed out, or returned unusable output."""

    code = "generation_failed"

    def __init__(self, stage: int, cause: str) -> None:
        super().__init__(f"Generation failed at stage {int(stage)}: {cause}", details={"stage": int(stage), "cause": cause})
        self.stage = int(stage)
        self.cause = cause
