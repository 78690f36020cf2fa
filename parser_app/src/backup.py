"""
Backup export/import for FitLog.

A backup is one JSON document holding every workout and meal, templates
included:

    {"version": "1.0", "exportDate": "...", "workouts": [...], "meals": [...]}

Older backups stored meals under ``nutritionData``; both keys are read.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import List

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from shared.domain import MealSession, WorkoutSession
from shared.database import NutritionRepository, WorkoutRepository

from parser_app.agents.errors import FitLogError


logger = logging.getLogger(__name__)

BACKUP_VERSION = "1.0"


class InvalidBackupError(FitLogError):
    default_message = "The backup file could not be read."


class BackupDocument(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    version: str = BACKUP_VERSION
    export_date: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    workouts: List[WorkoutSession] = Field(default_factory=list)
    meals: List[MealSession] = Field(
        default_factory=list,
        validation_alias=AliasChoices("meals", "nutritionData"),
    )

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, indent=2)


@dataclass
class ImportResult:
    workouts_imported: int = 0
    workouts_total: int = 0
    meals_imported: int = 0
    meals_total: int = 0

    @property
    def success(self) -> bool:
        return self.workouts_imported == self.workouts_total and self.meals_imported == self.meals_total


def backup_filename(now: datetime | None = None) -> str:
    now = now or datetime.now()
    return f"FitLog_Backup_{now.strftime('%Y-%m-%d_%H%M%S')}.json"


def export_backup(workouts: WorkoutRepository, meals: NutritionRepository) -> BackupDocument:
    """Snapshot every record, templates included."""
    doc = BackupDocument(
        workouts=workouts.fetch_all(exclude_templates=False),
        meals=meals.fetch_all(exclude_templates=False),
    )
    logger.info(f"📦 Exported {len(doc.workouts)} workouts and {len(doc.meals)} meals")
    return doc


def write_backup(doc: BackupDocument, path: Path) -> Path:
    path = Path(path)
    if path.is_dir():
        path = path / backup_filename(doc.export_date)
    path.write_text(doc.to_json(), encoding="utf-8")
    logger.info(f"💾 Backup written to {path}")
    return path


def read_backup(path: Path) -> BackupDocument:
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError as e:
        logger.error(f"❌ Could not open backup {path}: {e}")
        raise InvalidBackupError(f"Could not open backup file: {path}") from e
    return parse_backup(text)


def parse_backup(text: str) -> BackupDocument:
    try:
        doc = BackupDocument.model_validate_json(text)
    except ValidationError as e:
        logger.error(f"❌ Invalid backup document: {e.error_count()} problem(s)")
        raise InvalidBackupError() from e
    if doc.version != BACKUP_VERSION:
        logger.warning(f"⚠️ Backup version {doc.version} differs from {BACKUP_VERSION}; importing anyway")
    return doc


def import_backup(doc: BackupDocument, workouts: WorkoutRepository, meals: NutritionRepository) -> ImportResult:
    """Upsert every record from ``doc`` and count how many made it."""
    result = ImportResult(workouts_total=len(doc.workouts), meals_total=len(doc.meals))
    for workout in doc.workouts:
        if workouts.save(workout):
            result.workouts_imported += 1
    for meal in doc.meals:
        if meals.save(meal):
            result.meals_imported += 1

    logger.info(
        f"📥 Import finished: workouts {result.workouts_imported}/{result.workouts_total}, "
        f"meals {result.meals_imported}/{result.meals_total}"
    )
    return result
