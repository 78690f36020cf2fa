"""Chat sessions for asking questions about logged history.

A session owns what is shown (``messages``) and what the model gets to see
(``memory``). Error replies are shown to the user but never enter the memory,
so a failed turn does not pollute the next prompt.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import List, Optional, Sequence

from shared.domain import ConversationTurn

from parser_app.agents.errors import FitLogError
from parser_app.agents.memory import DEFAULT_WINDOW, ConversationMemory
from parser_app.agents.parser_service import FitnessLogService


logger = logging.getLogger(__name__)


class HistoryChat(ABC):
    welcome_message = "Hi! Ask me anything about your history."
    no_data_message = "I don't see any data yet."
    example_questions: Sequence[str] = ()

    def __init__(self, service: FitnessLogService, repository, window: int = DEFAULT_WINDOW) -> None:
        self.service = service
        self.repository = repository
        self.memory = ConversationMemory(window=window)
        self.messages: List[ConversationTurn] = []
        self.last_error: Optional[FitLogError] = None
        self._welcome()

    def _welcome(self) -> None:
        self.messages.append(ConversationTurn(content=self.welcome_message, is_user=False))

    def _history(self) -> list:
        return self.repository.fetch_all(exclude_templates=True)

    @abstractmethod
    def _query(self, question: str, history: list) -> str:
        """Ask the model about ``history``."""

    def _reply(self, text: str) -> ConversationTurn:
        turn = self.memory.add_assistant_reply(text)
        self.messages.append(turn)
        return turn

    def ask(self, question: str) -> Optional[ConversationTurn]:
        """Answer ``question`` and return the assistant turn (None for blank input)."""
        question = (question or "").strip()
        if not question:
            return None

        self.messages.append(self.memory.add_user_message(question))
        self.last_error = None

        try:
            history = self._history()
            if not history:
                logger.info("📭 No history yet, answering without the model")
                return self._reply(self.no_data_message)
            answer = self._query(question, history)
        except FitLogError as e:
            logger.warning(f"⚠️ Chat question failed: {e.message}")
            self.last_error = e
            error_turn = ConversationTurn(
                content=f"Sorry, I encountered an error: {e.message} Please try again.",
                is_user=False,
            )
            self.messages.append(error_turn)
            return error_turn

        return self._reply(answer)

    def new_conversation(self) -> None:
        self.messages.clear()
        self.memory.clear()
        self.last_error = None
        self._welcome()


class WorkoutHistoryChat(HistoryChat):
    welcome_message = (
        "Hi! Ask me anything about your workout history. "
        "You can pick an example question or type/speak your own question."
    )
    no_data_message = "I don't see any workout data yet. Start logging workouts to ask questions about your progress!"
    example_questions = (
        "What exercises did I do most last month?",
        "Show me my bench press progress",
        "How many workouts this week?",
        "What was my heaviest squat?",
    )

    def _query(self, question: str, history: list) -> str:
        return self.service.query_workouts(question, history, self.memory)


class MealHistoryChat(HistoryChat):
    welcome_message = (
        "Hi! Ask me anything about your nutrition history. "
        "You can pick an example question or type/speak your own question."
    )
    no_data_message = "I don't see any meal data yet. Start logging meals to ask questions about your nutrition!"
    example_questions = (
        "How much protein did I eat today?",
        "What's my average daily calories this week?",
        "What do I usually eat for breakfast?",
        "Am I eating enough protein?",
    )

    def _query(self, question: str, history: list) -> str:
        return self.service.query_meals(question, history, self.memory)
