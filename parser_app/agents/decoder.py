"""Decode the model's JSON replies into domain records.

Decoding is all-or-nothing: one structurally invalid element fails the whole
reply with ``DecodeError`` and nothing is returned. Optional fields the model
left out are filled with defaults, and dates go through the date resolver.
"""

from __future__ import annotations

import logging
from datetime import datetime, tzinfo
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, ValidationError
from pydantic.alias_generators import to_camel

from shared.domain import ExerciseEntry, FoodEntry, MealSession, MealType, WorkoutSession, reindex

from parser_app.agents.date_resolver import ANCHOR_HOUR, meal_anchor_hour, resolve_date
from parser_app.agents.errors import DecodeError


logger = logging.getLogger(__name__)


class _Payload(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore", allow_inf_nan=False)


class ExercisePayload(_Payload):
    name: str
    sets: int
    reps: int
    weight: Optional[float] = None
    rpe: Optional[float] = None
    notes: Optional[str] = None


class WorkoutPayload(_Payload):
    name: Optional[str] = None
    date: Optional[str] = None
    exercises: List[ExercisePayload]


class WorkoutsReply(_Payload):
    workouts: List[WorkoutPayload]


class FoodPayload(_Payload):
    name: str
    portion_size: Optional[str] = None
    calories: Optional[float] = None
    protein: Optional[float] = None
    carbs: Optional[float] = None
    fat: Optional[float] = None
    notes: Optional[str] = None


class MealPayload(_Payload):
    meal_type: Optional[str] = None
    date: Optional[str] = None
    food_items: List[FoodPayload]


class MealsReply(_Payload):
    meals: List[MealPayload]


def _validate(model: type, raw: str, kind: str):
    try:
        return model.model_validate_json(raw or "")
    except ValidationError as e:
        logger.error(f"❌ Could not decode {kind} reply: {e.error_count()} problem(s)")
        logger.debug(f"Raw {kind} reply: {raw!r}")
        raise DecodeError() from e


def _clean_text(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def _clamp_rpe(value: Optional[float]) -> int:
    if value is None:
        return 0
    return max(0, min(10, int(round(value))))


def _meal_type(value: Optional[str]) -> Optional[MealType]:
    if not value:
        return None
    try:
        return MealType(value.strip().lower())
    except ValueError:
        logger.warning(f"⚠️ Unknown meal type {value!r}; leaving it unset")
        return None


def _resolve(raw: Optional[str], now: datetime, local_zone: tzinfo, anchor_hour: int) -> datetime:
    resolved = resolve_date(raw, now, local_zone, anchor_hour)
    if resolved.warning:
        logger.warning(f"⚠️ {resolved.warning}")
    return resolved.value


def decode_workouts(
    raw: str,
    *,
    now: datetime,
    local_zone: tzinfo,
    anchor_hour: int = ANCHOR_HOUR,
) -> List[WorkoutSession]:
    """Parse a ``{"workouts": [...]}`` reply into new, unsaved sessions."""
    reply = _validate(WorkoutsReply, raw, "workout")

    sessions: List[WorkoutSession] = []
    for payload in reply.workouts:
        exercises = [
            ExerciseEntry(
                name=ex.name.strip(),
                sets=ex.sets,
                reps=ex.reps,
                weight=max(0.0, ex.weight or 0.0),
                rpe=_clamp_rpe(ex.rpe),
                notes=_clean_text(ex.notes),
            )
            for ex in payload.exercises
        ]
        reindex(exercises)
        sessions.append(
            WorkoutSession(
                date=_resolve(payload.date, now, local_zone, anchor_hour),
                name=_clean_text(payload.name),
                is_template=False,
                exercises=exercises,
            )
        )

    logger.info(f"✅ Decoded {len(sessions)} workout(s)")
    return sessions


def decode_meals(
    raw: str,
    *,
    now: datetime,
    local_zone: tzinfo,
    anchor_hour: int = ANCHOR_HOUR,
) -> List[MealSession]:
    """Parse a ``{"meals": [...]}`` reply into new, unsaved meals.

    A meal with a known type is anchored at that meal's default hour.
    """
    reply = _validate(MealsReply, raw, "meal")

    meals: List[MealSession] = []
    for payload in reply.meals:
        meal_type = _meal_type(payload.meal_type)
        items = [
            FoodEntry(
                name=item.name.strip(),
                portion_size=_clean_text(item.portion_size),
                calories=item.calories,
                protein=item.protein,
                carbs=item.carbs,
                fat=item.fat,
                notes=_clean_text(item.notes),
            )
            for item in payload.food_items
        ]
        reindex(items)
        meals.append(
            MealSession(
                date=_resolve(payload.date, now, local_zone, meal_anchor_hour(meal_type, anchor_hour)),
                meal_type=meal_type,
                is_template=False,
                food_items=items,
            )
        )

    logger.info(f"✅ Decoded {len(meals)} meal(s)")
    return meals
