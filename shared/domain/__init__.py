"""
Shared domain records for the FitLog system
"""

from .models import (
    ConversationTurn,
    ExerciseEntry,
    FoodEntry,
    MealSession,
    MealType,
    WorkoutSession,
    reindex,
)

__all__ = [
    "ConversationTurn",
    "ExerciseEntry",
    "FoodEntry",
    "MealSession",
    "MealType",
    "WorkoutSession",
    "reindex",
]
