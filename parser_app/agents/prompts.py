"""Prompt construction for parsing and history questions.

Every builder is a pure function of its inputs and returns a ``Prompt`` with
a short system role and the full instruction text. ``now`` must be an aware
datetime in the user's zone; it supplies today's date and weekday and the zone
used to display stored entries.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, NamedTuple, Optional, Sequence

from shared.domain import ExerciseEntry, FoodEntry, MealSession, WorkoutSession

from parser_app.agents.date_resolver import describe_today
from parser_app.agents.memory import ConversationMemory


WORKOUT_PARSER_ROLE = "You are a workout data parser. Respond only with valid JSON."
MEAL_PARSER_ROLE = "You are a nutrition data parser. Respond only with valid JSON."
WORKOUT_ANALYST_ROLE = "You are a helpful fitness data analyst."
NUTRITION_ANALYST_ROLE = "You are a helpful nutrition data analyst."


class Prompt(NamedTuple):
    system: str
    user: str


# --------- Formatting helpers ---------

def _num(value: float) -> str:
    return f"{value:g}"


def _when(moment: datetime, now: datetime) -> str:
    local = moment.astimezone(now.tzinfo) if moment.tzinfo and now.tzinfo else moment
    return local.strftime("%b %d, %Y at %I:%M %p")


def _exercise_line(ex: ExerciseEntry, with_notes: bool = True) -> str:
    line = f"  - {ex.name}: {ex.sets} sets × {ex.reps} reps"
    if ex.weight > 0:
        line += f" @ {_num(ex.weight)}lbs"
    if ex.rpe > 0:
        line += f" (RPE {ex.rpe})"
    if with_notes and ex.notes:
        line += f" - Notes: {ex.notes}"
    return line


def _food_line(item: FoodEntry, with_notes: bool = True) -> str:
    line = f"  - {item.name}"
    if item.portion_size:
        line += f" ({item.portion_size})"
    macros = []
    if item.calories is not None:
        macros.append(f"{_num(item.calories)} cal")
    for label, value in (("protein", item.protein), ("carbs", item.carbs), ("fat", item.fat)):
        if value is not None:
            macros.append(f"{_num(value)}g {label}")
    if macros:
        line += ": " + ", ".join(macros)
    if with_notes and item.notes:
        line += f" - Notes: {item.notes}"
    return line


def format_workout(workout: WorkoutSession, now: datetime) -> str:
    header = f"Workout on {_when(workout.date, now)}"
    if workout.name:
        header += f" ({workout.name})"
    lines = [header + ":"]
    lines.extend(_exercise_line(ex) for ex in workout.exercises)
    return "\n".join(lines)


def format_workout_template(template: WorkoutSession) -> str:
    lines = [f'Template: "{template.name or "Unnamed Template"}"', "Exercises:"]
    lines.extend(_exercise_line(ex, with_notes=False) for ex in template.exercises)
    return "\n".join(lines)


def format_meal(meal: MealSession, now: datetime) -> str:
    label = meal.meal_type.value.capitalize() if meal.meal_type else "Meal"
    lines = [f"{label} on {_when(meal.date, now)}:"]
    lines.extend(_food_line(item) for item in meal.food_items)
    lines.append(
        f"  Totals: {_num(meal.total_calories)} cal, {_num(meal.total_protein)}g protein, "
        f"{_num(meal.total_carbs)}g carbs, {_num(meal.total_fat)}g fat"
    )
    return "\n".join(lines)


def format_meal_template(template: MealSession) -> str:
    header = f'Template: "{template.name or "Unnamed Template"}"'
    if template.meal_type:
        header += f" ({template.meal_type.value})"
    lines = [header, "Food items:"]
    lines.extend(_food_line(item, with_notes=False) for item in template.food_items)
    return "\n".join(lines)


# --------- Parsing prompts ---------

_WORKOUT_FORMAT = """{
  "workouts": [
    {
      "name": "Short Descriptive Name",
      "date": "2024-01-09T00:00:00Z",
      "exercises": [
        {
          "name": "Exercise Name",
          "sets": 3,
          "reps": 10,
          "weight": 185.0,
          "rpe": 7,
          "notes": "optional notes"
        }
      ]
    }
  ]
}"""

_WORKOUT_RULES = """Rules:
1. Always return an object with a "workouts" array, even when there is only one workout
2. If the user describes more than one workout (e.g. "I did push day and then cardio"), return one workout object per workout, in the order mentioned
3. Extract exercise names, sets, reps, weight in pounds, and RPE (Rate of Perceived Exertion, 1-10 scale)
4. If RPE is not mentioned, set it to null
5. If weight is not mentioned, use 0.0 (bodyweight)
6. Standardize exercise names (e.g. "benching" → "Bench Press", "pullups" → "Pull-ups", "went for a run" → "Run")
7. Cardio (running, biking, swimming, rowing, walking) is a valid exercise: sets = 1, reps = duration in minutes, weight = 0
8. Recovery activities (sauna, stretching, foam rolling, ice bath) are valid exercises: sets = 1, reps = 1, weight = 0; put any duration in notes
9. If the user says "same as last time", use the previous workout data provided below
10. Give every workout a short descriptive "name" based on its exercises (e.g. "Chest & Triceps", "Leg Day", "Cardio"); when a workout comes from a template, use the template's name
11. If the user says when the workout happened, set "date" to that calendar day as "YYYY-MM-DDT00:00:00Z". Resolve relative days ("yesterday", "this past Saturday") from today's date and weekday above. Otherwise set "date" to null
12. Infer reasonable values when data is incomplete
13. For notes, capture any relevant comments about form, difficulty, or how it felt
14. Return ONLY valid JSON, no additional text or explanation"""

_WORKOUT_TEMPLATE_RULES = """Template Usage Rules:
1. If the user references a template by name (e.g. "use my push day template", "do leg day", "load push day"), start with that template's exercises
2. Template names are case-insensitive and can be referenced partially (e.g. "push" matches "Push Day A")
3. If multiple templates match, choose the closest match based on the user's phrasing
4. If the template name doesn't match any available template, ignore the reference and parse as a normal workout
5. Apply any modifications the user mentions:
   - "add 5 pounds to bench press" → increase bench press weight by 5
   - "but do 12 reps instead" → change reps to 12 for the specified exercise
   - "skip overhead press" → remove overhead press from the output
6. If the user wants to add exercises, append them after the template exercises
7. If the user wants to remove exercises, exclude them from the output
8. Keep all unmodified exercises exactly as they are in the template"""

_MEAL_FORMAT = """{
  "meals": [
    {
      "mealType": "breakfast",
      "date": "2024-01-09T08:00:00Z",
      "foodItems": [
        {
          "name": "Food Name",
          "portionSize": "1 cup",
          "calories": 150.0,
          "protein": 5.0,
          "carbs": 27.0,
          "fat": 3.0,
          "notes": "optional notes"
        }
      ]
    }
  ]
}"""

_MEAL_RULES = """Rules:
1. Always return an object with a "meals" array, even when there is only one meal
2. If the user describes more than one meal (e.g. "breakfast was eggs, lunch was a salad"), return one meal object per meal, in the order mentioned
3. "mealType" must be one of "breakfast", "lunch", "dinner", "snack", or null when it cannot be inferred
4. Use these default times for each meal: breakfast 08:00, lunch 12:00, snack 15:00, dinner 18:00
5. If the user says when they ate, set "date" to that calendar day at the meal's default time as "YYYY-MM-DDTHH:MM:00Z". Resolve relative days ("yesterday", "this past Saturday") from today's date and weekday above. Otherwise set "date" to null
6. Standardize food names (e.g. "oatmeal w/ berries" → "Oatmeal with Berries")
7. Nutrition values are estimates when the user does not state them: estimate calories and protein, carbs, fat in grams for the stated portion
8. If a value cannot be estimated, set it to null rather than 0
9. Capture portion sizes as the user described them (e.g. "2 eggs", "1 cup")
10. If the user says "same as last time" or "the usual", use the previous meal data provided below
11. For notes, capture preparation details or comments (e.g. "cooked in butter")
12. Return ONLY valid JSON, no additional text or explanation"""

_MEAL_TEMPLATE_RULES = """Template Usage Rules:
1. If the user references a saved meal by name (e.g. "my usual breakfast", "protein shake"), start with that template's food items
2. Template names are case-insensitive and can be referenced partially
3. If the template name doesn't match any available template, ignore the reference and parse as a normal meal
4. Apply any modifications the user mentions (e.g. "but with two scoops", "no toast", "add a banana")
5. Keep all unmodified food items exactly as they are in the template, including their nutrition values"""


def _template_section(
    formatted: Sequence[str],
    referenced: Sequence[str],
    rules: str,
) -> List[str]:
    if not formatted:
        return []
    parts = ["Available Templates (you can use these if the user references them by name):", ""]
    for block in formatted:
        parts.extend([block, ""])
    if referenced:
        names = ", ".join(f'"{name}"' for name in referenced)
        parts.extend([f"The user's wording most closely matches: {names}", ""])
    parts.append(rules)
    return parts


def workout_parsing_prompt(
    text: str,
    now: datetime,
    previous: Optional[WorkoutSession] = None,
    templates: Sequence[WorkoutSession] = (),
    referenced: Sequence[WorkoutSession] = (),
) -> Prompt:
    parts = [
        "You are a workout parser. Convert the user's natural language workout description into structured JSON.",
        "",
        "The user will describe their workout using voice, so the text may be informal and include filler words.",
        "",
        f"Today's date: {describe_today(now)}",
        "",
        "Expected JSON format:",
        _WORKOUT_FORMAT,
        "",
        _WORKOUT_RULES,
        "",
    ]
    parts.extend(
        _template_section(
            [format_workout_template(t) for t in templates],
            [t.name for t in referenced if t.name],
            _WORKOUT_TEMPLATE_RULES,
        )
    )
    if previous is not None:
        parts.extend(["", 'Previous workout (for "same as last time" reference):', format_workout(previous, now), ""])
    parts.extend(["", f'User input: "{text}"', "", "Return the JSON now:"])
    return Prompt(WORKOUT_PARSER_ROLE, "\n".join(parts))


def meal_parsing_prompt(
    text: str,
    now: datetime,
    previous: Optional[MealSession] = None,
    templates: Sequence[MealSession] = (),
    referenced: Sequence[MealSession] = (),
) -> Prompt:
    parts = [
        "You are a nutrition parser. Convert the user's natural language meal description into structured JSON.",
        "",
        "The user will describe what they ate using voice, so the text may be informal and include filler words.",
        "",
        f"Today's date: {describe_today(now)}",
        "",
        "Expected JSON format:",
        _MEAL_FORMAT,
        "",
        _MEAL_RULES,
        "",
    ]
    parts.extend(
        _template_section(
            [format_meal_template(t) for t in templates],
            [t.name for t in referenced if t.name],
            _MEAL_TEMPLATE_RULES,
        )
    )
    if previous is not None:
        parts.extend(["", 'Previous meal (for "same as last time" reference):', format_meal(previous, now), ""])
    parts.extend(["", f'User input: "{text}"', "", "Return the JSON now:"])
    return Prompt(MEAL_PARSER_ROLE, "\n".join(parts))


# --------- History question prompts ---------

_QUERY_GUIDELINES = """Guidelines:
1. Be conversational, friendly, and concise (2-3 paragraphs max)
2. Use specific numbers, dates, and {subject} names from the data
3. Reference previous questions/answers when relevant for continuity
4. Identify trends, patterns, and progress over time
5. Provide actionable insights and encouragement
6. If the data doesn't support the question, explain what's missing
7. Avoid charts, tables, or complex formatting - use natural language only
8. Keep responses brief enough to fit in a chat bubble"""


def _query_prompt(
    intro: str,
    subject: str,
    data_label: str,
    data_blocks: Sequence[str],
    question: str,
    now: datetime,
    memory: Optional[ConversationMemory],
) -> str:
    parts = [
        intro,
        "",
        f"Today's date: {describe_today(now)}",
        "",
        _QUERY_GUIDELINES.format(subject=subject),
        "",
        f"{data_label}:",
        "\n\n".join(data_blocks) if data_blocks else "(no entries)",
        "",
    ]
    history = memory.format_for_prompt() if memory is not None else ""
    if history:
        parts.extend(["", "Previous Conversation:", history, ""])
    parts.extend(["", f'Current User Question: "{question}"', "", "Provide a concise, helpful answer:"])
    return "\n".join(parts)


def workout_query_prompt(
    question: str,
    workouts: Sequence[WorkoutSession],
    now: datetime,
    memory: Optional[ConversationMemory] = None,
) -> Prompt:
    text = _query_prompt(
        "You are a fitness data analyst having a conversation with a user about their workout history.",
        "exercise",
        "Workout History Data",
        [format_workout(w, now) for w in workouts],
        question,
        now,
        memory,
    )
    return Prompt(WORKOUT_ANALYST_ROLE, text)


def meal_query_prompt(
    question: str,
    meals: Sequence[MealSession],
    now: datetime,
    memory: Optional[ConversationMemory] = None,
) -> Prompt:
    text = _query_prompt(
        "You are a nutrition data analyst having a conversation with a user about their eating history.",
        "food",
        "Meal History Data",
        [format_meal(m, now) for m in meals],
        question,
        now,
        memory,
    )
    return Prompt(NUTRITION_ANALYST_ROLE, text)
