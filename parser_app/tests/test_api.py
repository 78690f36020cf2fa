import pytest
from fastapi.testclient import TestClient

from shared.domain import ExerciseEntry

from parser_app.src import api_server
from parser_app.src.api_server import ChatSessions, app, get_components
from parser_app.src.container import build_components


WORKOUT_REPLY = {
    "workouts": [
        {
            "name": "Chest & Triceps",
            "date": "2026-10-17T00:00:00Z",
            "exercises": [{"name": "Bench Press", "sets": 3, "reps": 10, "weight": 185, "rpe": 7}],
        }
    ]
}


@pytest.fixture
def components(fake_completion):
    return build_components(database_url="sqlite://", api_key="sk-test", completion=fake_completion)


@pytest.fixture
def client(components):
    app.dependency_overrides[get_components] = lambda: components
    api_server.sessions.clear()
    yield TestClient(app)
    app.dependency_overrides.clear()
    api_server.sessions.clear()


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    body = resp.json()
    assert body["database"] == "connected"
    assert body["llm_configured"] is True


def test_parse_workout_returns_camel_case_records(client, fake_completion):
    fake_completion.queue(WORKOUT_REPLY)

    resp = client.post("/workouts/parse", json={"text": "bench 3x10 at 185"})

    assert resp.status_code == 200
    [workout] = resp.json()["workouts"]
    assert workout["isTemplate"] is False
    assert workout["exercises"][0]["name"] == "Bench Press"
    assert workout["exercises"][0]["order"] == 0
    assert resp.json()["save"] is None


def test_parse_and_save_workout(client, components, fake_completion):
    fake_completion.queue(WORKOUT_REPLY)

    resp = client.post("/workouts/parse", json={"text": "bench 3x10 at 185", "save": True})

    assert resp.json()["save"] == {"saved": 1, "failed": 0, "message": "Saved 1 workout(s)"}
    assert len(components.workouts.fetch_all()) == 1


def test_parse_meal(client, fake_completion):
    fake_completion.queue({"meals": [{"mealType": "dinner", "foodItems": [{"name": "Salmon", "calories": 350}]}]})
    resp = client.post("/meals/parse", json={"text": "salmon for dinner"})
    assert resp.status_code == 200
    assert resp.json()["meals"][0]["mealType"] == "dinner"


def test_missing_key_maps_to_503(fake_completion):
    components = build_components(database_url="sqlite://", api_key="", completion=fake_completion)
    app.dependency_overrides[get_components] = lambda: components
    try:
        resp = TestClient(app).post("/workouts/parse", json={"text": "bench"})
    finally:
        app.dependency_overrides.clear()

    assert resp.status_code == 503
    assert resp.json() == {
        "error": "NoCredentialError",
        "message": "No API key found. Please configure your OpenAI API key.",
        "retryable": False,
    }
    assert fake_completion.call_count == 0


def test_malformed_reply_maps_to_502(client, fake_completion):
    fake_completion.queue({"foo": 1})
    resp = client.post("/workouts/parse", json={"text": "bench"})
    assert resp.status_code == 502
    assert resp.json()["error"] == "DecodeError"
    assert resp.json()["retryable"] is True


def test_blank_text_maps_to_422(client):
    resp = client.post("/meals/parse", json={"text": "  "})
    assert resp.status_code == 422
    assert resp.json()["message"] == "No speech detected. Please try again."


def test_query_session_lifecycle(client, components, fake_completion):
    resp = client.post("/workouts/query", json={"question": "How many workouts?"})
    assert resp.status_code == 200
    session_id = resp.json()["session_id"]
    assert "don't see any workout data" in resp.json()["answer"]

    components.workouts.save_template("Push Day", [ExerciseEntry(name="Bench Press", sets=3, reps=10)])
    fake_completion.queue(WORKOUT_REPLY)
    client.post("/workouts/parse", json={"text": "bench", "save": True})
    fake_completion.queue("One workout so far.")

    resp = client.post("/workouts/query", json={"question": "And now?", "session_id": session_id})
    assert resp.json() == {"session_id": session_id, "answer": "One workout so far."}
    assert "User: How many workouts?" in fake_completion.calls[-1]["prompt"]

    assert client.delete(f"/sessions/{session_id}").status_code == 200
    assert client.delete(f"/sessions/{session_id}").status_code == 404


def test_query_error_maps_status(client, components, fake_completion):
    from parser_app.agents.errors import RateLimitedError

    fake_completion.queue(WORKOUT_REPLY)
    client.post("/workouts/parse", json={"text": "bench", "save": True})
    fake_completion.queue(RateLimitedError())

    resp = client.post("/workouts/query", json={"question": "Progress?"})
    assert resp.status_code == 429
    assert resp.json()["retryable"] is True


def test_templates_with_match(client, components):
    components.workouts.save_template("Push Day A", [ExerciseEntry(name="Bench Press", sets=3, reps=10)])
    components.workouts.save_template("Leg Day", [ExerciseEntry(name="Squat", sets=5, reps=5)])

    assert [t["name"] for t in client.get("/templates/workouts").json()] == ["Leg Day", "Push Day A"]
    assert [t["name"] for t in client.get("/templates/workouts", params={"match": "push day"}).json()] == ["Push Day A"]
    assert client.get("/templates/meals").json() == []


def test_backup_download(client, components):
    components.workouts.save_template("Leg Day", [ExerciseEntry(name="Squat", sets=5, reps=5)])
    body = client.get("/backup").json()
    assert body["version"] == "1.0"
    assert "exportDate" in body
    assert body["meals"] == []
    assert body["workouts"][0]["isTemplate"] is True


def test_chat_sessions_evict_least_recently_used(components):
    store = ChatSessions(max_sessions=2)
    first = store.get("workouts", "a", components)
    store.get("meals", "b", components)
    assert store.get("workouts", "a", components) is first

    store.get("workouts", "c", components)

    assert len(store) == 2
    assert store.get("workouts", "a", components) is first
    assert store.drop("b") == 0


def test_unnamed_queries_stay_within_session_cap(client, monkeypatch):
    monkeypatch.setattr(api_server, "sessions", ChatSessions(max_sessions=3))
    for _ in range(5):
        assert client.post("/meals/query", json={"question": "Protein today?"}).status_code == 200
    assert len(api_server.sessions) == 3
