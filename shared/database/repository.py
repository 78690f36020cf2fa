"""
Repositories mapping domain records onto the database tables.

Both repositories upsert by record id: saving a record that already exists
replaces its fields and its child rows, keeping the child ids the caller
supplied. Mutations return ``True``/``False`` and log failures rather than
raising, so batch callers can count partial successes.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import List, Optional, Sequence
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import selectinload, sessionmaker

from shared.domain import ExerciseEntry, FoodEntry, MealSession, WorkoutSession

from .connection import session_scope
from .models import Exercises, FoodItems, Meals, Workouts


logger = logging.getLogger(__name__)


def _to_db_time(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def _from_db_time(value: datetime) -> datetime:
    return value.replace(tzinfo=timezone.utc)


class WorkoutRepository:
    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory

    def save(self, workout: WorkoutSession) -> bool:
        """Create the workout or update the existing row with the same id."""
        try:
            with session_scope(self._session_factory) as db:
                row = db.get(Workouts, workout.id)
                if row is None:
                    logger.debug(f"➕ Creating new workout: {workout.id}")
                    row = Workouts(id=workout.id)
                    db.add(row)
                else:
                    logger.debug(f"🔄 Updating existing workout: {workout.id}")
                row.date = _to_db_time(workout.date)
                row.name = workout.name
                row.is_template = workout.is_template

                existing = {child.id: child for child in row.exercises}
                children = []
                for ex in workout.exercises:
                    child = existing.pop(ex.id, None) or Exercises(id=ex.id)
                    child.name = ex.name
                    child.sets = ex.sets
                    child.reps = ex.reps
                    child.weight = ex.weight
                    child.rpe = ex.rpe
                    child.notes = ex.notes
                    child.order = ex.order
                    children.append(child)
                row.exercises = children
                db.commit()
            return True
        except SQLAlchemyError:
            logger.exception(f"❌ Failed to save workout {workout.id}")
            return False

    def fetch_all(self, exclude_templates: bool = True) -> List[WorkoutSession]:
        """All workouts, newest first."""
        with session_scope(self._session_factory) as db:
            q = db.query(Workouts).options(selectinload(Workouts.exercises))
            if exclude_templates:
                q = q.filter(Workouts.is_template.is_(False))
            return [self._to_domain(row) for row in q.order_by(Workouts.date.desc()).all()]

    def fetch_by_range(self, start: datetime, end: datetime) -> List[WorkoutSession]:
        """Non-template workouts with ``start <= date <= end``, newest first."""
        with session_scope(self._session_factory) as db:
            rows = (
                db.query(Workouts)
                .options(selectinload(Workouts.exercises))
                .filter(
                    Workouts.is_template.is_(False),
                    Workouts.date >= _to_db_time(start),
                    Workouts.date <= _to_db_time(end),
                )
                .order_by(Workouts.date.desc())
                .all()
            )
            return [self._to_domain(row) for row in rows]

    def fetch_latest(self) -> Optional[WorkoutSession]:
        with session_scope(self._session_factory) as db:
            row = (
                db.query(Workouts)
                .options(selectinload(Workouts.exercises))
                .filter(Workouts.is_template.is_(False))
                .order_by(Workouts.date.desc())
                .first()
            )
            return self._to_domain(row) if row else None

    def fetch_templates(self) -> List[WorkoutSession]:
        with session_scope(self._session_factory) as db:
            rows = (
                db.query(Workouts)
                .options(selectinload(Workouts.exercises))
                .filter(Workouts.is_template.is_(True))
                .order_by(Workouts.name.asc())
                .all()
            )
            return [self._to_domain(row) for row in rows]

    def delete_by_id(self, workout_id: UUID) -> bool:
        try:
            with session_scope(self._session_factory) as db:
                row = db.get(Workouts, workout_id)
                if row is None:
                    logger.warning(f"⚠️ Workout not found for deletion: {workout_id}")
                    return False
                db.delete(row)
                db.commit()
            return True
        except SQLAlchemyError:
            logger.exception(f"❌ Failed to delete workout {workout_id}")
            return False

    def save_template(self, name: str, exercises: Sequence[ExerciseEntry]) -> Optional[WorkoutSession]:
        template = WorkoutSession(exercises=list(exercises)).as_template(name.strip())
        return template if self.save(template) else None

    def update_template(self, template_id: UUID, name: str, exercises: Sequence[ExerciseEntry]) -> bool:
        """Replace a template's name and exercises, keeping its id."""
        existing = self._fetch_one(template_id)
        if existing is None or not existing.is_template:
            logger.warning(f"⚠️ Template not found for update: {template_id}")
            return False
        existing.name = name.strip()
        existing.exercises = list(exercises)
        existing.reindex()
        return self.save(existing)

    def _fetch_one(self, workout_id: UUID) -> Optional[WorkoutSession]:
        with session_scope(self._session_factory) as db:
            row = db.get(Workouts, workout_id)
            return self._to_domain(row) if row else None

    @staticmethod
    def _to_domain(row: Workouts) -> WorkoutSession:
        return WorkoutSession(
            id=row.id,
            date=_from_db_time(row.date),
            name=row.name,
            is_template=bool(row.is_template),
            exercises=[
                ExerciseEntry(
                    id=ex.id,
                    name=ex.name,
                    sets=ex.sets,
                    reps=ex.reps,
                    weight=ex.weight or 0.0,
                    rpe=ex.rpe or 0,
                    notes=ex.notes,
                    order=ex.order,
                )
                for ex in sorted(row.exercises, key=lambda e: e.order)
            ],
        )


class NutritionRepository:
    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory

    def save(self, meal: MealSession) -> bool:
        """Create the meal or update the existing row with the same id."""
        try:
            with session_scope(self._session_factory) as db:
                row = db.get(Meals, meal.id)
                if row is None:
                    logger.debug(f"➕ Creating new meal: {meal.id}")
                    row = Meals(id=meal.id)
                    db.add(row)
                else:
                    logger.debug(f"🔄 Updating existing meal: {meal.id}")
                row.date = _to_db_time(meal.date)
                row.meal_type = meal.meal_type.value if meal.meal_type else None
                row.name = meal.name
                row.is_template = meal.is_template

                existing = {child.id: child for child in row.food_items}
                children = []
                for item in meal.food_items:
                    child = existing.pop(item.id, None) or FoodItems(id=item.id)
                    child.name = item.name
                    child.portion_size = item.portion_size
                    child.calories = item.calories
                    child.protein = item.protein
                    child.carbs = item.carbs
                    child.fat = item.fat
                    child.notes = item.notes
                    child.order = item.order
                    children.append(child)
                row.food_items = children
                db.commit()
            return True
        except SQLAlchemyError:
            logger.exception(f"❌ Failed to save meal {meal.id}")
            return False

    def fetch_all(self, exclude_templates: bool = True) -> List[MealSession]:
        with session_scope(self._session_factory) as db:
            q = db.query(Meals).options(selectinload(Meals.food_items))
            if exclude_templates:
                q = q.filter(Meals.is_template.is_(False))
            return [self._to_domain(row) for row in q.order_by(Meals.date.desc()).all()]

    def fetch_by_range(self, start: datetime, end: datetime) -> List[MealSession]:
        with session_scope(self._session_factory) as db:
            rows = (
                db.query(Meals)
                .options(selectinload(Meals.food_items))
                .filter(
                    Meals.is_template.is_(False),
                    Meals.date >= _to_db_time(start),
                    Meals.date <= _to_db_time(end),
                )
                .order_by(Meals.date.desc())
                .all()
            )
            return [self._to_domain(row) for row in rows]

    def fetch_latest(self) -> Optional[MealSession]:
        with session_scope(self._session_factory) as db:
            row = (
                db.query(Meals)
                .options(selectinload(Meals.food_items))
                .filter(Meals.is_template.is_(False))
                .order_by(Meals.date.desc())
                .first()
            )
            return self._to_domain(row) if row else None

    def fetch_templates(self) -> List[MealSession]:
        with session_scope(self._session_factory) as db:
            rows = (
                db.query(Meals)
                .options(selectinload(Meals.food_items))
                .filter(Meals.is_template.is_(True))
                .order_by(Meals.name.asc())
                .all()
            )
            return [self._to_domain(row) for row in rows]

    def delete_by_id(self, meal_id: UUID) -> bool:
        try:
            with session_scope(self._session_factory) as db:
                row = db.get(Meals, meal_id)
                if row is None:
                    logger.warning(f"⚠️ Meal not found for deletion: {meal_id}")
                    return False
                db.delete(row)
                db.commit()
            return True
        except SQLAlchemyError:
            logger.exception(f"❌ Failed to delete meal {meal_id}")
            return False

    def save_template(
        self,
        name: str,
        food_items: Sequence[FoodEntry],
        meal_type=None,
    ) -> Optional[MealSession]:
        template = MealSession(food_items=list(food_items), meal_type=meal_type).as_template(name.strip())
        return template if self.save(template) else None

    def update_template(self, template_id: UUID, name: str, food_items: Sequence[FoodEntry]) -> bool:
        existing = self._fetch_one(template_id)
        if existing is None or not existing.is_template:
            logger.warning(f"⚠️ Meal template not found for update: {template_id}")
            return False
        existing.name = name.strip()
        existing.food_items = list(food_items)
        existing.reindex()
        return self.save(existing)

    def _fetch_one(self, meal_id: UUID) -> Optional[MealSession]:
        with session_scope(self._session_factory) as db:
            row = db.get(Meals, meal_id)
            return self._to_domain(row) if row else None

    @staticmethod
    def _to_domain(row: Meals) -> MealSession:
        return MealSession(
            id=row.id,
            date=_from_db_time(row.date),
            meal_type=row.meal_type,
            name=row.name,
            is_template=bool(row.is_template),
            food_items=[
                FoodEntry(
                    id=item.id,
                    name=item.name,
                    portion_size=item.portion_size,
                    calories=item.calories,
                    protein=item.protein,
                    carbs=item.carbs,
                    fat=item.fat,
                    notes=item.notes,
                    order=item.order,
                )
                for item in sorted(row.food_items, key=lambda f: f.order)
            ],
        )
