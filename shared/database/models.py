"""
Database models for the FitLog record store
"""

from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Float, ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.orm import relationship

from .connection import Base


class Workouts(Base):
    __tablename__ = "workouts"

    id = Column(Uuid, primary_key=True)
    date = Column(DateTime, nullable=False, index=True)  # naive UTC
    name = Column(String)
    is_template = Column(Boolean, nullable=False, default=False, index=True)

    exercises = relationship(
        "Exercises",
        back_populates="workout",
        cascade="all, delete-orphan",
        order_by="Exercises.order",
    )

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class Exercises(Base):
    __tablename__ = "exercises"

    id = Column(Uuid, primary_key=True)
    workout_id = Column(Uuid, ForeignKey("workouts.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String, nullable=False)
    sets = Column(Integer, nullable=False)
    reps = Column(Integer, nullable=False)
    weight = Column(Float, nullable=False, default=0.0)
    rpe = Column(Integer, nullable=False, default=0)
    notes = Column(Text)
    order = Column(Integer, nullable=False, default=0)

    workout = relationship("Workouts", back_populates="exercises")


class Meals(Base):
    __tablename__ = "meals"

    id = Column(Uuid, primary_key=True)
    date = Column(DateTime, nullable=False, index=True)  # naive UTC
    meal_type = Column(String)
    name = Column(String)
    # Explicit flag; template status is never inferred from ``name``
    is_template = Column(Boolean, nullable=False, default=False, index=True)

    food_items = relationship(
        "FoodItems",
        back_populates="meal",
        cascade="all, delete-orphan",
        order_by="FoodItems.order",
    )

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class FoodItems(Base):
    __tablename__ = "food_items"

    id = Column(Uuid, primary_key=True)
    meal_id = Column(Uuid, ForeignKey("meals.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String, nullable=False)
    portion_size = Column(String)
    calories = Column(Float)
    protein = Column(Float)
    carbs = Column(Float)
    fat = Column(Float)
    notes = Column(Text)
    order = Column(Integer, nullable=False, default=0)

    meal = relationship("Meals", back_populates="food_items")
