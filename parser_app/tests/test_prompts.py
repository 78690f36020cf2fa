from datetime import datetime, timedelta, timezone

from shared.domain import ExerciseEntry, FoodEntry, MealSession, MealType, WorkoutSession

from parser_app.agents.memory import ConversationMemory
from parser_app.agents.prompts import (
    MEAL_PARSER_ROLE,
    WORKOUT_ANALYST_ROLE,
    WORKOUT_PARSER_ROLE,
    format_meal,
    format_workout,
    meal_parsing_prompt,
    meal_query_prompt,
    workout_parsing_prompt,
    workout_query_prompt,
)


ZONE = timezone(timedelta(hours=-8))
NOW = datetime(2026, 10, 18, 7, 30, tzinfo=ZONE)


def _push_template():
    return WorkoutSession(
        name="Push Day A",
        is_template=True,
        exercises=[
            ExerciseEntry(name="Bench Press", sets=3, reps=10, weight=185, rpe=7, order=0),
            ExerciseEntry(name="Overhead Press", sets=3, reps=8, weight=95, order=1),
        ],
    )


def test_workout_prompt_has_date_weekday_and_input():
    prompt = workout_parsing_prompt("did bench 3 by 10 at 185", NOW)
    assert prompt.system == WORKOUT_PARSER_ROLE
    assert "2026-10-18 (Sunday)" in prompt.user
    assert 'User input: "did bench 3 by 10 at 185"' in prompt.user
    assert '"workouts"' in prompt.user


def test_workout_prompt_encodes_business_rules():
    text = workout_parsing_prompt("sauna for 20 minutes", NOW).user
    assert "even when there is only one workout" in text
    assert "sauna, stretching, foam rolling, ice bath" in text
    assert "sets = 1, reps = 1, weight = 0" in text
    assert "reps = duration in minutes" in text
    assert "same as last time" in text
    assert "short descriptive" in text


def test_template_section_only_when_templates_exist():
    bare = workout_parsing_prompt("leg day", NOW).user
    assert "Template Usage Rules" not in bare

    template = _push_template()
    text = workout_parsing_prompt("push day but skip overhead press", NOW, templates=[template], referenced=[template]).user
    assert "Template Usage Rules" in text
    assert 'Template: "Push Day A"' in text
    assert "Bench Press: 3 sets × 10 reps @ 185lbs (RPE 7)" in text
    assert 'most closely matches: "Push Day A"' in text


def test_previous_workout_included_for_same_as_last_time():
    previous = WorkoutSession(
        date=datetime(2026, 10, 16, 16, 0, tzinfo=timezone.utc),
        name="Leg Day",
        exercises=[ExerciseEntry(name="Squat", sets=5, reps=5, weight=225)],
    )
    text = workout_parsing_prompt("same as last time", NOW, previous=previous).user
    assert "Previous workout" in text
    assert "Workout on Oct 16, 2026 at 08:00 AM (Leg Day):" in text
    assert "Squat: 5 sets × 5 reps @ 225lbs" in text


def test_meal_prompt_default_times_and_estimates():
    prompt = meal_parsing_prompt("breakfast was eggs, lunch was a salad", NOW)
    assert prompt.system == MEAL_PARSER_ROLE
    assert "breakfast 08:00, lunch 12:00, snack 15:00, dinner 18:00" in prompt.user
    assert "estimates" in prompt.user
    assert '"meals"' in prompt.user
    assert '"foodItems"' in prompt.user


def test_format_meal_counts_unknown_macros_as_zero_in_totals():
    meal = MealSession(
        date=datetime(2026, 10, 18, 15, 0, tzinfo=timezone.utc),
        meal_type=MealType.BREAKFAST,
        food_items=[
            FoodEntry(name="Scrambled Eggs", portion_size="2 eggs", calories=140, protein=12, carbs=2, fat=10),
            FoodEntry(name="Black Coffee"),
        ],
    )
    text = format_meal(meal, NOW)
    assert text.startswith("Breakfast on Oct 18, 2026 at 07:00 AM:")
    assert "Scrambled Eggs (2 eggs): 140 cal, 12g protein, 2g carbs, 10g fat" in text
    assert "  - Black Coffee" in text
    assert "Totals: 140 cal, 12g protein, 2g carbs, 10g fat" in text


def test_query_prompt_embeds_history_and_conversation():
    memory = ConversationMemory()
    memory.add_user_message("How many workouts this week?")
    memory.add_assistant_reply("You did two.")
    workout = WorkoutSession(
        date=datetime(2026, 10, 17, 16, 0, tzinfo=timezone.utc),
        exercises=[ExerciseEntry(name="Run", sets=1, reps=30)],
    )

    prompt = workout_query_prompt("And last week?", [workout], NOW, memory)
    assert prompt.system == WORKOUT_ANALYST_ROLE
    assert "2-3 paragraphs" in prompt.user
    assert "User: How many workouts this week?\nAssistant: You did two." in prompt.user
    assert "Run: 1 sets × 30 reps" in prompt.user
    assert 'Current User Question: "And last week?"' in prompt.user
    assert "tables" in prompt.user


def test_query_prompt_without_memory_or_data():
    text = meal_query_prompt("What did I eat?", [], NOW).user
    assert "(no entries)" in text
    assert "Previous Conversation" not in text


def test_format_workout_bodyweight_has_no_weight():
    workout = WorkoutSession(
        date=NOW,
        exercises=[ExerciseEntry(name="Pull-ups", sets=3, reps=8, notes="strict form")],
    )
    text = format_workout(workout, NOW)
    assert "Pull-ups: 3 sets × 8 reps - Notes: strict form" in text
    assert "lbs" not in text
