import json
from datetime import datetime, timezone

import pytest

from shared.domain import ExerciseEntry, FoodEntry, MealSession, MealType, WorkoutSession

from parser_app.src.backup import (
    BACKUP_VERSION,
    InvalidBackupError,
    export_backup,
    import_backup,
    parse_backup,
    read_backup,
    write_backup,
)


def _seed(workout_repo, meal_repo):
    workout = WorkoutSession(
        date=datetime(2026, 10, 16, 16, 0, tzinfo=timezone.utc),
        name="Leg Day",
        exercises=[ExerciseEntry(name="Squat", sets=5, reps=5, weight=225, order=0)],
    )
    meal = MealSession(
        date=datetime(2026, 10, 17, 15, 0, tzinfo=timezone.utc),
        meal_type=MealType.BREAKFAST,
        food_items=[FoodEntry(name="Eggs", portion_size="2 eggs", calories=140)],
    )
    workout_repo.save(workout)
    workout_repo.save_template("Push Day A", [ExerciseEntry(name="Bench Press", sets=3, reps=10)])
    meal_repo.save(meal)
    return workout, meal


def test_export_includes_templates(workout_repo, meal_repo):
    _seed(workout_repo, meal_repo)
    doc = export_backup(workout_repo, meal_repo)

    assert doc.version == BACKUP_VERSION
    assert len(doc.workouts) == 2
    assert any(w.is_template for w in doc.workouts)
    assert len(doc.meals) == 1

    data = json.loads(doc.to_json())
    assert set(data) == {"version", "exportDate", "workouts", "meals"}
    assert data["workouts"][0]["exercises"][0]["order"] == 0
    assert "isTemplate" in data["workouts"][0]


def test_round_trip_preserves_records(workout_repo, meal_repo):
    workout, meal = _seed(workout_repo, meal_repo)
    doc = parse_backup(export_backup(workout_repo, meal_repo).to_json())

    restored = next(w for w in doc.workouts if w.id == workout.id)
    assert restored == workout
    assert doc.meals[0] == meal


def test_legacy_nutrition_data_key_is_accepted():
    raw = json.dumps(
        {
            "version": "1.0",
            "exportDate": "2026-10-18T12:00:00Z",
            "workouts": [],
            "nutritionData": [{"date": "2026-10-17T15:00:00Z", "foodItems": [{"name": "Toast"}]}],
        }
    )
    doc = parse_backup(raw)
    assert doc.meals[0].food_items[0].name == "Toast"


def test_invalid_document_raises():
    with pytest.raises(InvalidBackupError):
        parse_backup('{"workouts": "nope"}')
    with pytest.raises(InvalidBackupError):
        parse_backup("not json")


def test_write_read_and_import(tmp_path, workout_repo, meal_repo):
    _seed(workout_repo, meal_repo)
    path = write_backup(export_backup(workout_repo, meal_repo), tmp_path)
    assert path.parent == tmp_path
    assert path.name.startswith("FitLog_Backup_")

    from shared.database import NutritionRepository, WorkoutRepository, build_engine, build_session_factory, create_all_tables

    engine = build_engine("sqlite://")
    create_all_tables(engine)
    factory = build_session_factory(engine)
    target_workouts, target_meals = WorkoutRepository(factory), NutritionRepository(factory)

    result = import_backup(read_backup(path), target_workouts, target_meals)

    assert result.success
    assert (result.workouts_imported, result.workouts_total) == (2, 2)
    assert (result.meals_imported, result.meals_total) == (1, 1)
    assert len(target_workouts.fetch_templates()) == 1

    # Importing again updates in place instead of duplicating
    import_backup(read_backup(path), target_workouts, target_meals)
    assert len(target_workouts.fetch_all(exclude_templates=False)) == 2


def test_missing_file_raises(tmp_path):
    with pytest.raises(InvalidBackupError):
        read_backup(tmp_path / "missing.json")
