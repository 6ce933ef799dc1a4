import pytest

from server import create_app


@pytest.fixture
def client(temp_db, fake_generator):
    app = create_app("testing", generator=fake_generator)
    with app.test_client() as client:
        yield client


def _create_entries(client):
    ids = []
    for payload in (
        {"category": "Managing Resources", "action": "Managed supply account", "impact": "improved readiness", "result": "passed audit"},
        {"category": "Leading People", "action": "Trained 4 Amn", "impact": "cut errors 30%", "result": "unit ready"},
    ):
        response = client.post("/api/entries", json=payload)
        assert response.status_code == 201
        ids.append(response.get_json()["id"])
    return ids


def _generate_statement(client):
    response = client.post("/api/statements/generate", json={"entry_ids": _create_entries(client)})
    assert response.status_code == 201
    return response.get_json()["statements"][0]["id"]


def test_categories_and_health(client):
    assert client.get("/api/health").get_json() == {"status": "ok"}
    categories = client.get("/api/categories").get_json()
    assert "Leading People" in categories


def test_refinement_flow_over_http(client):
    statement_id = _generate_statement(client)

    body = client.post(f"/api/refinement/{statement_id}/start").get_json()
    assert body["session"]["current_stage"] == 1
    assert body["stage_name"] == "drafted"

    body = client.post(f"/api/refinement/{statement_id}/advance").get_json()
    assert body["session"]["current_stage"] == 2

    body = client.post(f"/api/refinement/{statement_id}/questions").get_json()
    assert [q["id"] for q in body["artifact"]] == ["q1", "q2", "q3"]

    client.put(f"/api/refinement/{statement_id}/answers/q1", json={"text": "Led 12 personnel"})
    response = client.put(f"/api/refinement/{statement_id}/answers/q3", json={"text": "saved $40K"})
    body = response.get_json()
    assert body["answered_count"] == 2
    assert body["can_advance"] is True

    response = client.post(f"/api/refinement/{statement_id}/advance")
    assert response.status_code == 200
    body = response.get_json()
    assert body["stage_name"] == "comparing"
    assert "$40K" in body["artifact"]["polished"]
    assert body["statement"]["ai_score"] == 8

    client.post(f"/api/refinement/{statement_id}/advance")
    body = client.post(f"/api/refinement/{statement_id}/advance").get_json()
    assert body["session"]["current_stage"] == 5
    assert body["can_refine_again"] is True

    body = client.post(f"/api/refinement/{statement_id}/complete").get_json()
    assert body["statement"]["completed"] is True

    response = client.post(f"/api/refinement/{statement_id}/loop-back")
    assert response.status_code == 409
    assert response.get_json()["code"] == "invalid_transition"

    stored = client.get(f"/api/statements/{statement_id}").get_json()
    assert stored["completed"] is True


def test_gating_failure_is_conflict(client):
    statement_id = _generate_statement(client)
    client.post(f"/api/refinement/{statement_id}/advance")
    client.post(f"/api/refinement/{statement_id}/questions")
    client.put(f"/api/refinement/{statement_id}/answers/q1", json={"text": "Led 12 personnel"})

    response = client.post(f"/api/refinement/{statement_id}/advance")

    assert response.status_code == 409
    assert response.get_json()["stage"] == 2
    assert client.get(f"/api/refinement/{statement_id}").get_json()["session"]["current_stage"] == 2


def test_generation_failure_is_bad_gateway(client, fake_generator):
    statement_id = _generate_statement(client)
    client.post(f"/api/refinement/{statement_id}/advance")
    fake_generator.fail_on.add("follow_up_questions")

    response = client.post(f"/api/refinement/{statement_id}/questions")

    assert response.status_code == 502
    body = response.get_json()
    assert body["code"] == "generation_failed"
    assert body["stage"] == 2


def test_unknown_statement_is_not_found(client):
    assert client.post("/api/refinement/missing/start").status_code == 404
    assert client.get("/api/statements/missing").status_code == 404


def test_bad_payloads_are_rejected(client):
    assert client.post("/api/entries", json={"category": "Cooking"}).status_code == 400
    assert client.post("/api/statements/generate", json={"entry_ids": []}).status_code == 400

    statement_id = _generate_statement(client)
    response = client.put(f"/api/refinement/{statement_id}/answers/q1", json={"text": 12})
    assert response.status_code == 400

    response = client.post("/api/statements/generate", json={"entry_ids": ["x"], "mode": "merge"})
    assert response.status_code == 400
