"""
Shared database module for the FitLog system
"""

from .connection import (
    Base,
    build_engine,
    build_session_factory,
    session_scope,
    test_connection,
    create_all_tables,
    drop_all_tables,
)

from .models import (
    Workouts,
    Exercises,
    Meals,
    FoodItems,
)

from .repository import (
    WorkoutRepository,
    NutritionRepository,
)

__all__ = [
    "Base",
    "build_engine",
    "build_session_factory",
    "session_scope",
    "test_connection",
    "create_all_tables",
    "drop_all_tables",
    "Workouts",
    "Exercises",
    "Meals",
    "FoodItems",
    "WorkoutRepository",
    "NutritionRepository",
]
