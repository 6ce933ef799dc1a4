import logging

import pytest

from ai_agents.services.collaborators import EntryStore, SessionStore, StatementStore
from ai_agents.services.errors import NotFound
from ai_agents.services.models import Stage, Statement
from storage.sqlite.database import get_connection


def test_entry_repository_cycle(repositories):
    repo = repositories["entries"]
    first = repo.create_entry(
        category="Managing Resources",
        action="Managed $2M account",
        impact="zero discrepancies",
        result="passed audit",
    )
    second = repo.create_entry(
        category="Leading People",
        action=" Trained 4 Amn ",
        impact="cut errors 30%",
        result="unit ready",
    )

    assert repo.get_entry(second.id).action == "Trained 4 Amn"
    assert {e.id for e in repo.list_entries()} == {first.id, second.id}
    assert [e.id for e in repo.get_entries_by_ids([second.id, "missing", first.id])] == [second.id, first.id]


def test_entry_repository_validates_input(repositories):
    repo = repositories["entries"]

    with pytest.raises(ValueError):
        repo.create_entry(category="Cooking", action="a", impact="b", result="c")
    with pytest.raises(ValueError):
        repo.create_entry(category="Leading People", action="a", impact="  ", result="c")


def test_statement_repository_updates_allowed_fields(repositories):
    repo = repositories["statements"]
    created = repo.create(
        Statement(id="", content="Led 4 Amn", category="Leading People", source_entry_ids=["e1", "e2"])
    )
    assert created.id
    assert created.source_entry_ids == ["e1", "e2"]
    assert not created.completed

    updated = repo.update(created.id, content="Led 12 Amn", ai_score=8, completed=True)

    assert updated.content == "Led 12 Amn"
    assert updated.ai_score == 8
    assert updated.completed
    assert [s.id for s in repo.list_statements(completed=True)] == [created.id]
    assert repo.list_statements(completed=False) == []


def test_statement_repository_rejects_bad_updates(repositories):
    repo = repositories["statements"]
    created = repo.create(Statement(id="", content="Led 4 Amn", category="Leading People"))

    with pytest.raises(ValueError):
        repo.update(created.id, id="other")
    with pytest.raises(NotFound):
        repo.update("missing", content="x")


def test_session_repository_round_trip_and_cascade(repositories):
    statements = repositories["statements"]
    sessions = repositories["sessions"]
    statement = statements.create(Statement(id="", content="Led 4 Amn", category="Leading People"))

    session = sessions.create(statement.id, initial_draft=statement.content)
    session.advance(Stage.QUESTIONING)
    session.record_answer("q1", "Led 12 personnel")
    sessions.update(statement.id, session)

    stored = sessions.get(statement.id)
    assert stored == session

    assert statements.delete(statement.id)
    assert sessions.get(statement.id) is None


def test_session_repository_update_requires_existing_row(repositories):
    statement = repositories["statements"].create(Statement(id="", content="Led 4 Amn", category="Leading People"))
    session = repositories["sessions"].create(statement.id)
    session.statement_id = "missing"

    with pytest.raises(NotFound):
        repositories["sessions"].update("missing", session)


def test_repositories_satisfy_store_contracts(repositories):
    assert isinstance(repositories["entries"], EntryStore)
    assert isinstance(repositories["statements"], StatementStore)
    assert isinstance(repositories["sessions"], SessionStore)


def test_unreadable_source_ids_are_logged(repositories, caplog):
    repo = repositories["statements"]
    created = repo.create(Statement(id="", content="Led 4 Amn", category="Leading People", source_entry_ids=["e1"]))
    with get_connection() as conn:
        conn.execute("UPDATE statements SET source_entry_ids_json = ? WHERE id = ?", ("{not json", created.id))
        conn.commit()

    with caplog.at_level(logging.WARNING, logger="server.data_access.statement_repository"):
        stored = repo.get(created.id)

    assert stored.source_entry_ids == []
    assert created.id in caplog.text
