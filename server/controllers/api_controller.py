import logging
from typing import Mapping, Optional

from flask import Blueprint, jsonify, request

from ai_agents.services.collaborators import TextGenerator
from ai_agents.services.config import RefinementConfig
from ai_agents.services.errors import GenerationFailed, InvalidTransition, NotFound, RefinementError
from ai_agents.services.generators import StatementGenerator
from ai_agents.services.models import PERFORMANCE_CATEGORIES
from ai_agents.services.refinement_orchestrator import RefinementOrchestrator
from server.data_access import EntryRepository, RefinementSessionRepository, StatementRepository
from server.services.statement_service import StatementService

logger = logging.getLogger(__name__)

api_blueprint = Blueprint("api", __name__)

_STATUS_BY_ERROR = {
    NotFound: 404,
    InvalidTransition: 409,
    GenerationFailed: 502,
}

entry_repository: Optional[EntryRepository] = None
statement_service: Optional[StatementService] = None
refinement_orchestrator: Optional[RefinementOrchestrator] = None


def init_services(settings: Mapping[str, object], *, generator: Optional[TextGenerator] = None) -> None:
    """Wire repositories, the generator, and the orchestrator from app settings."""
    global entry_repository, statement_service, refinement_orchestrator

    config = RefinementConfig.from_mapping(settings)
    generator = generator or StatementGenerator(config)
    statements = StatementRepository()
    sessions = RefinementSessionRepository()

    entry_repository = EntryRepository()
    statement_service = StatementService(entry_repository, statements, sessions, generator)
    refinement_orchestrator = RefinementOrchestrator(statements, sessions, generator, config)


@api_blueprint.errorhandler(RefinementError)
def handle_refinement_error(exc: RefinementError):
    status = next((code for kind, code in _STATUS_BY_ERROR.items() if isinstance(exc, kind)), 500)
    if status >= 500:
        logger.warning("Refinement request failed: %s", exc)
    return jsonify(exc.to_dict()), status


@api_blueprint.get("/health")
def healthcheck():
    """Lightweight health probe for uptime checks."""
    return jsonify({"status": "ok"}), 200


@api_blueprint.get("/categories")
def list_categories():
    return jsonify(list(PERFORMANCE_CATEGORIES)), 200


# ---------- entries ----------
@api_blueprint.post("/entries")
def create_entry():
    payload = request.get_json(silent=True) or {}
    try:
        entry = entry_repository.create_entry(
            category=str(payload.get("category") or ""),
            action=str(payload.get("action") or ""),
            impact=str(payload.get("impact") or ""),
            result=str(payload.get("result") or ""),
        )
    except ValueError as exc:
        return jsonify({"error": str(exc)}), 400
    return jsonify(entry.to_dict()), 201


@api_blueprint.get("/entries")
def list_entries():
    return jsonify({"entries": [entry.to_dict() for entry in entry_repository.list_entries()]}), 200


# ---------- statements ----------
@api_blueprint.post("/statements/generate")
def generate_statements():
    """
    Draft statements from entries:
    {"entry_ids": ["..."], "mode": "combine" | "separate"}
    """
    payload = request.get_json(silent=True) or {}
    entry_ids = payload.get("entry_ids") or []
    if not isinstance(entry_ids, list) or not entry_ids:
        return jsonify({"error": "entry_ids must be a non-empty list"}), 400
    try:
        statements = statement_service.generate([str(i) for i in entry_ids], str(payload.get("mode") or "combine"))
    except ValueError as exc:
        return jsonify({"error": str(exc)}), 400
    return jsonify({"statements": [s.to_dict() for s in statements]}), 201


@api_blueprint.get("/statements/<statement_id>")
def get_statement(statement_id: str):
    statement = statement_service.get(statement_id)
    if statement is None:
        raise NotFound("statement", statement_id)
    return jsonify(statement.to_dict()), 200


# ---------- refinement workflow ----------
@api_blueprint.post("/refinement/<statement_id>/start")
def start_refinement(statement_id: str):
    return jsonify(refinement_orchestrator.start_refinement(statement_id).to_dict()), 200


@api_blueprint.get("/refinement/<statement_id>")
def get_refinement(statement_id: str):
    return jsonify(refinement_orchestrator.get_view(statement_id).to_dict()), 200


@api_blueprint.post("/refinement/<statement_id>/questions")
def request_questions(statement_id: str):
    return jsonify(refinement_orchestrator.request_questions(statement_id).to_dict()), 200


@api_blueprint.put("/refinement/<statement_id>/answers/<question_id>")
def submit_answer(statement_id: str, question_id: str):
    payload = request.get_json(silent=True) or {}
    text = payload.get("text")
    if not isinstance(text, str):
        return jsonify({"error": "text must be a string"}), 400
    return jsonify(refinement_orchestrator.submit_answer(statement_id, question_id, text).to_dict()), 200


@api_blueprint.post("/refinement/<statement_id>/advance")
def advance_stage(statement_id: str):
    return jsonify(refinement_orchestrator.advance_stage(statement_id).to_dict()), 200


@api_blueprint.post("/refinement/<statement_id>/loop-back")
def loop_back(statement_id: str):
    return jsonify(refinement_orchestrator.loop_back(statement_id).to_dict()), 200


@api_blueprint.post("/refinement/<statement_id>/complete")
def complete_refinement(statement_id: str):
    return jsonify(refinement_orchestrator.complete(statement_id).to_dict()), 200


@api_blueprint.post("/refinement/<statement_id>/synonyms")
def suggest_synonyms(statement_id: str):
    return jsonify(refinement_orchestrator.suggest_synonyms(statement_id).to_dict()), 200
