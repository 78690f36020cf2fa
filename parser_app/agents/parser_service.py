"""Text in, records out: the parse and history-question entry points.

``FitnessLogService`` glues the pieces together for one request:
prompt builder -> completion client -> response decoder. It holds no state
between calls apart from its collaborators, so one instance can serve every
session.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone, tzinfo
from typing import Callable, List, Optional, Sequence

from langsmith.run_helpers import traceable

from shared.domain import MealSession, WorkoutSession

from parser_app.config.settings import settings
from parser_app.agents import template_matcher
from parser_app.agents.credentials import CredentialProvider
from parser_app.agents.decoder import decode_meals, decode_workouts
from parser_app.agents.errors import NoCredentialError, RecordValidationError
from parser_app.agents.llm_utils import CompletionClient
from parser_app.agents.memory import ConversationMemory
from parser_app.agents.prompts import (
    Prompt,
    meal_parsing_prompt,
    meal_query_prompt,
    workout_parsing_prompt,
    workout_query_prompt,
)


logger = logging.getLogger(__name__)

NO_SPEECH_MESSAGE = "No speech detected. Please try again."


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class FitnessLogService:
    def __init__(
        self,
        completion: CompletionClient,
        credentials: CredentialProvider,
        local_zone: tzinfo | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.completion = completion
        self.credentials = credentials
        self.local_zone = local_zone or settings.local_timezone()
        self._clock = clock or _utc_now
        self.anchor_hour = settings.anchor_hour

    def now(self) -> datetime:
        """Current time in the user's zone."""
        return self._clock().astimezone(self.local_zone)

    # --------- Internals ---------

    def _require_credentials(self) -> None:
        # Fail before building prompts or touching the network
        if not self.credentials.get_api_key():
            logger.warning("⚠️ No API key configured")
            raise NoCredentialError()

    @staticmethod
    def _require_text(text: str) -> str:
        cleaned = (text or "").strip()
        if not cleaned:
            raise RecordValidationError(NO_SPEECH_MESSAGE, field="text")
        return cleaned

    def _parse(self, prompt: Prompt) -> str:
        return self.completion.complete(
            prompt.user,
            system=prompt.system,
            json_response=True,
            temperature=settings.parsing_temperature,
        )

    def _answer(self, prompt: Prompt) -> str:
        return self.completion.complete(
            prompt.user,
            system=prompt.system,
            temperature=settings.query_temperature,
            max_completion_tokens=settings.query_max_tokens,
        )

    # --------- Parsing ---------

    @traceable(name="parser.parse_workouts", run_type="chain")
    def parse_workouts(
        self,
        text: str,
        previous: Optional[WorkoutSession] = None,
        templates: Sequence[WorkoutSession] = (),
    ) -> List[WorkoutSession]:
        """Parse a spoken workout description into one or more sessions.

        ``previous`` backs "same as last time"; ``templates`` are offered to
        the model in full, with the locally matched ones called out.
        """
        text = self._require_text(text)
        self._require_credentials()

        now = self.now()
        referenced = template_matcher.match(templates, text)
        if referenced:
            logger.info(f"🧩 Template reference: {[t.name for t in referenced]}")
        prompt = workout_parsing_prompt(text, now, previous=previous, templates=templates, referenced=referenced)

        logger.info(f"🏋️ Parsing workout ({len(text)} chars, {len(templates)} templates)")
        raw = self._parse(prompt)
        return decode_workouts(raw, now=now, local_zone=self.local_zone, anchor_hour=self.anchor_hour)

    @traceable(name="parser.parse_meals", run_type="chain")
    def parse_meals(
        self,
        text: str,
        previous: Optional[MealSession] = None,
        templates: Sequence[MealSession] = (),
    ) -> List[MealSession]:
        text = self._require_text(text)
        self._require_credentials()

        now = self.now()
        referenced = template_matcher.match(templates, text)
        if referenced:
            logger.info(f"🧩 Meal template reference: {[t.name for t in referenced]}")
        prompt = meal_parsing_prompt(text, now, previous=previous, templates=templates, referenced=referenced)

        logger.info(f"🍽️ Parsing meal ({len(text)} chars, {len(templates)} templates)")
        raw = self._parse(prompt)
        return decode_meals(raw, now=now, local_zone=self.local_zone, anchor_hour=self.anchor_hour)

    def log_workouts(self, text: str, repository) -> List[WorkoutSession]:
        """``parse_workouts`` with templates and the last workout from the store."""
        self._require_text(text)
        return self.parse_workouts(
            text,
            previous=repository.fetch_latest(),
            templates=repository.fetch_templates(),
        )

    def log_meals(self, text: str, repository) -> List[MealSession]:
        self._require_text(text)
        return self.parse_meals(
            text,
            previous=repository.fetch_latest(),
            templates=repository.fetch_templates(),
        )

    # --------- History questions ---------

    @traceable(name="parser.query_workouts", run_type="chain")
    def query_workouts(
        self,
        question: str,
        workouts: Sequence[WorkoutSession],
        memory: Optional[ConversationMemory] = None,
    ) -> str:
        self._require_credentials()
        prompt = workout_query_prompt(question, workouts, self.now(), memory)
        logger.info(f"💬 Workout question over {len(workouts)} workout(s)")
        return self._answer(prompt)

    @traceable(name="parser.query_meals", run_type="chain")
    def query_meals(
        self,
        question: str,
        meals: Sequence[MealSession],
        memory: Optional[ConversationMemory] = None,
    ) -> str:
        self._require_credentials()
        prompt = meal_query_prompt(question, meals, self.now(), memory)
        logger.info(f"💬 Meal question over {len(meals)} meal(s)")
        return self._answer(prompt)
