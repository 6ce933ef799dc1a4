from .services.config import RefinementConfig
from .services.errors import GenerationFailed, InvalidTransition, NotFound, RefinementError
from .services.generators import StatementGenerator
from .services.refinement_orchestrator import RefinementOrchestrator, RefinementView

__all__ = [
    "RefinementConfig",
    "RefinementError",
    "NotFound",
    "InvalidTransition",
    "GenerationFailed",
    "StatementGenerator",
    "RefinementOrchestrator",
    "RefinementView",
]
