import json
from datetime import datetime, timedelta, timezone

import pytest

from shared.database import (
    NutritionRepository,
    WorkoutRepository,
    build_engine,
    build_session_factory,
    create_all_tables,
)

from parser_app.agents.credentials import StaticCredentialProvider
from parser_app.agents.parser_service import FitnessLogService


# Sunday, 08:30 in UTC-7
FIXED_NOW = datetime(2026, 10, 18, 15, 30, tzinfo=timezone.utc)
UTC_MINUS_8 = timezone(timedelta(hours=-8))


class FakeCompletion:
    """Stands in for CompletionClient; replays canned replies and records calls."""

    def __init__(self, replies=None):
        self.replies = list(replies or [])
        self.calls = []

    @property
    def call_count(self):
        return len(self.calls)

    def queue(self, reply):
        self.replies.append(reply)

    def complete(self, prompt, *, system, json_response=False, temperature=None, max_completion_tokens=None):
        self.calls.append(
            {
                "prompt": prompt,
                "system": system,
                "json_response": json_response,
                "temperature": temperature,
                "max_completion_tokens": max_completion_tokens,
            }
        )
        if not self.replies:
            raise AssertionError("unexpected completion call")
        reply = self.replies.pop(0)
        if isinstance(reply, BaseException):
            raise reply
        if isinstance(reply, dict):
            return json.dumps(reply)
        return reply


@pytest.fixture
def fake_completion():
    return FakeCompletion()


@pytest.fixture
def make_service(fake_completion):
    def _make(api_key="sk-test", zone=UTC_MINUS_8, completion=None):
        return FitnessLogService(
            completion or fake_completion,
            StaticCredentialProvider(api_key),
            local_zone=zone,
            clock=lambda: FIXED_NOW,
        )

    return _make


@pytest.fixture
def session_factory():
    engine = build_engine("sqlite://")
    create_all_tables(engine)
    yield build_session_factory(engine)
    engine.dispose()


@pytest.fixture
def workout_repo(session_factory):
    return WorkoutRepository(session_factory)


@pytest.fixture
def meal_repo(session_factory):
    return NutritionRepository(session_factory)
