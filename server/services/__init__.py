from .statement_service import DRAFT_MODES, StatementService

__all__ = [
    "DRAFT_MODES",
    "StatementService",
]
