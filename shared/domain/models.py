"""
Domain records for workouts, meals and chat turns.

Records are mutable during review/editing, but an entry's ``id`` never changes
once assigned so the record store can upsert by id. Positions inside a session
are tracked by ``order`` and kept as a dense 0..n-1 sequence by every editing
helper below.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, List, Optional, Sequence
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def _now() -> datetime:
    return datetime.now(timezone.utc)


def reindex(items: Sequence[Any]) -> None:
    """Rewrite ``order`` on each item to match its list position."""
    for position, item in enumerate(items):
        item.order = position


class _Record(BaseModel):
    # camelCase on the wire (backup files), snake_case in Python
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class MealType(str, Enum):
    BREAKFAST = "breakfast"
    LUNCH = "lunch"
    DINNER = "dinner"
    SNACK = "snack"


class ExerciseEntry(_Record):
    id: UUID = Field(default_factory=uuid4)
    name: str
    sets: int
    reps: int  # minutes for cardio entries
    weight: float = 0.0  # pounds; 0 = bodyweight, cardio or recovery
    rpe: int = 0  # effort scale 0-10, 0 = unset
    notes: Optional[str] = None
    order: int = 0

    @property
    def volume(self) -> int:
        return self.sets * self.reps


class FoodEntry(_Record):
    id: UUID = Field(default_factory=uuid4)
    name: str
    portion_size: Optional[str] = None
    # None means "unknown", which is not the same as zero
    calories: Optional[float] = None
    protein: Optional[float] = None
    carbs: Optional[float] = None
    fat: Optional[float] = None
    notes: Optional[str] = None
    order: int = 0


class WorkoutSession(_Record):
    id: UUID = Field(default_factory=uuid4)
    date: datetime = Field(default_factory=_now)
    name: Optional[str] = None
    is_template: bool = False
    exercises: List[ExerciseEntry] = Field(default_factory=list)

    @property
    def total_sets(self) -> int:
        return sum(ex.sets for ex in self.exercises)

    @property
    def total_reps(self) -> int:
        return sum(ex.volume for ex in self.exercises)

    def add_exercise(self, exercise: ExerciseEntry | None = None) -> ExerciseEntry:
        """Append an exercise (a blank 3x10 one by default) at the end."""
        if exercise is None:
            exercise = ExerciseEntry(name="New Exercise", sets=3, reps=10)
        exercise.order = len(self.exercises)
        self.exercises.append(exercise)
        return exercise

    def update_exercise(self, index: int, **changes: Any) -> ExerciseEntry:
        """Replace fields of the exercise at ``index``; id and order are kept."""
        current = self.exercises[index]
        changes.pop("id", None)
        changes.pop("order", None)
        updated = current.model_copy(update=changes)
        self.exercises[index] = updated
        return updated

    def remove_exercise(self, index: int) -> ExerciseEntry:
        removed = self.exercises.pop(index)
        reindex(self.exercises)
        return removed

    def reindex(self) -> None:
        reindex(self.exercises)

    def as_template(self, name: str) -> "WorkoutSession":
        """Copy this session's exercises into a new named template."""
        return WorkoutSession(
            name=name,
            is_template=True,
            exercises=_fresh_copies(self.exercises),
        )

    def instantiate(self, when: datetime | None = None) -> "WorkoutSession":
        """Start a new, non-template session pre-filled from this template."""
        return WorkoutSession(
            date=when or _now(),
            name=self.name,
            is_template=False,
            exercises=_fresh_copies(self.exercises),
        )


class MealSession(_Record):
    id: UUID = Field(default_factory=uuid4)
    date: datetime = Field(default_factory=_now)
    meal_type: Optional[MealType] = None
    name: Optional[str] = None
    is_template: bool = False
    food_items: List[FoodEntry] = Field(default_factory=list)

    # Unknown macros count as 0 in sums; entries keep their None.
    @property
    def total_calories(self) -> float:
        return sum(item.calories or 0.0 for item in self.food_items)

    @property
    def total_protein(self) -> float:
        return sum(item.protein or 0.0 for item in self.food_items)

    @property
    def total_carbs(self) -> float:
        return sum(item.carbs or 0.0 for item in self.food_items)

    @property
    def total_fat(self) -> float:
        return sum(item.fat or 0.0 for item in self.food_items)

    def add_food_item(self, item: FoodEntry | None = None) -> FoodEntry:
        if item is None:
            item = FoodEntry(name="New Food Item")
        item.order = len(self.food_items)
        self.food_items.append(item)
        return item

    def update_food_item(self, index: int, **changes: Any) -> FoodEntry:
        current = self.food_items[index]
        changes.pop("id", None)
        changes.pop("order", None)
        updated = current.model_copy(update=changes)
        self.food_items[index] = updated
        return updated

    def remove_food_item(self, index: int) -> FoodEntry:
        removed = self.food_items.pop(index)
        reindex(self.food_items)
        return removed

    def reindex(self) -> None:
        reindex(self.food_items)

    def as_template(self, name: str) -> "MealSession":
        return MealSession(
            name=name,
            meal_type=self.meal_type,
            is_template=True,
            food_items=_fresh_copies(self.food_items),
        )

    def instantiate(self, when: datetime | None = None) -> "MealSession":
        # Loaded templates must not keep template status or the template name
        return MealSession(
            date=when or _now(),
            meal_type=self.meal_type,
            is_template=False,
            food_items=_fresh_copies(self.food_items),
        )


class ConversationTurn(_Record):
    id: UUID = Field(default_factory=uuid4)
    content: str
    is_user: bool
    timestamp: datetime = Field(default_factory=_now)

    @property
    def speaker(self) -> str:
        return "User" if self.is_user else "Assistant"


def _fresh_copies(items: Sequence[Any]) -> list:
    copies = [item.model_copy(update={"id": uuid4()}) for item in items]
    reindex(copies)
    return copies
