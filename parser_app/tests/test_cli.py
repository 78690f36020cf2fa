import json

import pytest
from typer.testing import CliRunner

from shared.domain import ExerciseEntry

from parser_app.src import main
from parser_app.src.container import build_components


runner = CliRunner()


@pytest.fixture
def components(fake_completion, monkeypatch):
    built = build_components(database_url="sqlite://", api_key="sk-test", completion=fake_completion)
    monkeypatch.setattr(main, "build_components", lambda **kwargs: built)
    return built


def test_parse_workout_and_save(components, fake_completion):
    fake_completion.queue(
        {"workouts": [{"name": "Cardio", "exercises": [{"name": "Run", "sets": 1, "reps": 20, "weight": 0}]}]}
    )

    result = runner.invoke(main.app, ["parse-workout", "went for a 20 minute run", "--save"])

    assert result.exit_code == 0, result.output
    assert "Run" in result.output
    assert "Saved" in result.output and "workout(s)" in result.output
    assert [w.name for w in components.workouts.fetch_all()] == ["Cardio"]


def test_parse_meal_without_save(components, fake_completion):
    fake_completion.queue({"meals": [{"mealType": "breakfast", "foodItems": [{"name": "Oatmeal", "calories": 150}]}]})

    result = runner.invoke(main.app, ["parse-meal", "oatmeal for breakfast"])

    assert result.exit_code == 0, result.output
    assert "Oatmeal" in result.output
    assert components.meals.fetch_all() == []


def test_missing_key_exits_non_zero(fake_completion, monkeypatch):
    built = build_components(database_url="sqlite://", api_key="", completion=fake_completion)
    monkeypatch.setattr(main, "build_components", lambda **kwargs: built)

    result = runner.invoke(main.app, ["parse-workout", "bench"])

    assert result.exit_code == 1
    assert "No API key found" in result.output
    assert fake_completion.call_count == 0


def test_ask_without_history(components, fake_completion):
    result = runner.invoke(main.app, ["ask", "How many workouts?"])
    assert result.exit_code == 0, result.output
    assert "don't see any workout data" in result.output
    assert fake_completion.call_count == 0


def test_chat_new_and_quit(components):
    result = runner.invoke(main.app, ["chat", "--meals"], input="/new\n/quit\n")
    assert result.exit_code == 0, result.output
    assert "nutrition history" in result.output
    assert "Bye" in result.output


def test_templates_match(components):
    components.workouts.save_template("Push Day A", [ExerciseEntry(name="Bench Press", sets=3, reps=10)])
    components.workouts.save_template("Leg Day", [ExerciseEntry(name="Squat", sets=5, reps=5)])

    result = runner.invoke(main.app, ["templates", "--match", "push day"])

    assert result.exit_code == 0, result.output
    assert "Push Day A" in result.output
    assert "Leg Day" not in result.output


def test_export_then_import(components, tmp_path):
    components.workouts.save_template("Leg Day", [ExerciseEntry(name="Squat", sets=5, reps=5)])
    target = tmp_path / "backup.json"

    result = runner.invoke(main.app, ["export", str(target)])
    assert result.exit_code == 0, result.output
    data = json.loads(target.read_text())
    assert data["version"] == "1.0"

    result = runner.invoke(main.app, ["import", str(target)])
    assert result.exit_code == 0, result.output
    assert "Import Results" in result.output


def test_import_bad_file(components, tmp_path):
    bad = tmp_path / "bad.json"
    bad.write_text("{not json")
    result = runner.invoke(main.app, ["import", str(bad)])
    assert result.exit_code == 1
    assert "could not be read" in result.output
