"""Checks run on user-edited records right before they are saved.

Each validator raises ``RecordValidationError`` for the first problem found,
with a message fit to show next to the save button and the offending
``field``/``index``. Batch validators prefix messages with the record's
1-based position ("Workout 2, Exercise 1 ...").
"""

from __future__ import annotations

from typing import Sequence

from shared.domain import MealSession, WorkoutSession

from parser_app.agents.errors import RecordValidationError


def _blank(value: str | None) -> bool:
    return not (value or "").strip()


def _check_exercises(workout: WorkoutSession, prefix: str = "") -> None:
    if not workout.exercises:
        raise RecordValidationError(f"{prefix}Please add at least one exercise", field="exercises")

    for index, exercise in enumerate(workout.exercises):
        label = f"{prefix}Exercise {index + 1}"
        if _blank(exercise.name):
            raise RecordValidationError(f"{label} needs a name", field="name", index=index)
        if exercise.sets <= 0:
            raise RecordValidationError(f"{label} must have at least 1 set", field="sets", index=index)
        if exercise.reps <= 0:
            raise RecordValidationError(f"{label} must have at least 1 rep", field="reps", index=index)
        if exercise.weight < 0:
            raise RecordValidationError(f"{label} cannot have negative weight", field="weight", index=index)
        if not 0 <= exercise.rpe <= 10:
            raise RecordValidationError(f"{label} RPE must be between 0-10", field="rpe", index=index)


def _check_food_items(meal: MealSession, prefix: str = "") -> None:
    if not meal.food_items:
        raise RecordValidationError(f"{prefix}Please add at least one food item", field="food_items")

    for index, item in enumerate(meal.food_items):
        label = f"{prefix}Food item {index + 1}"
        if _blank(item.name):
            raise RecordValidationError(f"{label} needs a name", field="name", index=index)
        for macro in ("calories", "protein", "carbs", "fat"):
            value = getattr(item, macro)
            if value is not None and value < 0:
                raise RecordValidationError(f"{label} cannot have negative {macro}", field=macro, index=index)


def validate_template_name(name: str | None) -> str:
    """Return the trimmed template name or raise if it is blank."""
    if _blank(name):
        raise RecordValidationError("Template name cannot be empty", field="name")
    return name.strip()


# --------- Workouts ---------

def validate_workout(workout: WorkoutSession) -> None:
    _check_exercises(workout)


def validate_workouts(workouts: Sequence[WorkoutSession]) -> None:
    if not workouts:
        raise RecordValidationError("No workouts to save", field="workouts")
    for position, workout in enumerate(workouts):
        if not workout.exercises:
            raise RecordValidationError(
                f"Workout {position + 1} needs at least one exercise", field="exercises", index=position
            )
        _check_exercises(workout, prefix=f"Workout {position + 1}, ")


def validate_workout_template(name: str | None, template: WorkoutSession) -> str:
    clean = validate_template_name(name)
    _check_exercises(template)
    return clean


# --------- Meals ---------

def validate_meal(meal: MealSession) -> None:
    _check_food_items(meal)


def validate_meals(meals: Sequence[MealSession]) -> None:
    if not meals:
        raise RecordValidationError("No meals to save", field="meals")
    for position, meal in enumerate(meals):
        if not meal.food_items:
            raise RecordValidationError(
                f"Meal {position + 1} needs at least one food item", field="food_items", index=position
            )
        _check_food_items(meal, prefix=f"Meal {position + 1}, ")


def validate_meal_template(name: str | None, template: MealSession) -> str:
    clean = validate_template_name(name)
    _check_food_items(template)
    return clean
