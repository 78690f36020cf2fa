"""Saving several decoded records at once.

A batch is validated as a whole first; any invalid record blocks the save.
The records are then saved one by one and independently, so a batch can end
half-saved. ``BatchSaveResult`` reports that as its own outcome.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, List, Optional, Sequence
from uuid import UUID

from shared.domain import MealSession, WorkoutSession

from parser_app.agents.validation import validate_meals, validate_workouts


logger = logging.getLogger(__name__)


@dataclass
class BatchSaveResult:
    kind: str
    saved: List[UUID] = field(default_factory=list)
    failed: List[UUID] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.saved) + len(self.failed)

    @property
    def all_saved(self) -> bool:
        return not self.failed

    @property
    def partial(self) -> bool:
        return bool(self.saved) and bool(self.failed)

    @property
    def message(self) -> str:
        if self.all_saved:
            return f"Saved {len(self.saved)} {self.kind}(s)"
        if self.partial:
            return f"Saved {len(self.saved)} {self.kind}(s), but {len(self.failed)} failed"
        return f"Failed to save {self.kind}s"


def _save_each(records: Sequence, save: Callable[[object], bool], kind: str) -> BatchSaveResult:
    result = BatchSaveResult(kind=kind)
    for record in records:
        if save(record):
            result.saved.append(record.id)
            logger.info(f"✅ {kind.capitalize()} {record.id} saved")
        else:
            result.failed.append(record.id)
            logger.error(f"❌ Failed to save {kind} {record.id}")
    logger.info(f"📦 Batch save completed: {len(result.saved)} succeeded, {len(result.failed)} failed")
    return result


def save_workouts(
    repository,
    workouts: Sequence[WorkoutSession],
    shared_date: Optional[datetime] = None,
) -> BatchSaveResult:
    """Validate every workout, optionally give them one date, then save each.

    Raises ``RecordValidationError`` before anything is saved.
    """
    validate_workouts(workouts)
    if shared_date is not None:
        for workout in workouts:
            workout.date = shared_date
    return _save_each(workouts, repository.save, "workout")


def save_meals(
    repository,
    meals: Sequence[MealSession],
    shared_date: Optional[datetime] = None,
) -> BatchSaveResult:
    validate_meals(meals)
    if shared_date is not None:
        for meal in meals:
            meal.date = shared_date
    return _save_each(meals, repository.save, "meal")
