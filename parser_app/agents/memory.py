from __future__ import annotations

from typing import List

from shared.domain import ConversationTurn

DEFAULT_WINDOW = 10


class ConversationMemory:
    """Chat turns for one session.

    - Keeps the full transcript until cleared
    - Only the last ``window`` turns ever reach a prompt, which bounds token use
    - Owned by a single session; turns are added by explicit calls only
    """

    def __init__(self, window: int = DEFAULT_WINDOW) -> None:
        if window < 1:
            raise ValueError("window must be at least 1")
        self.window = window
        self._turns: List[ConversationTurn] = []

    def __len__(self) -> int:
        return len(self._turns)

    def append(self, turn: ConversationTurn) -> None:
        self._turns.append(turn)

    def add_user_message(self, text: str) -> ConversationTurn:
        turn = ConversationTurn(content=text, is_user=True)
        self.append(turn)
        return turn

    def add_assistant_reply(self, text: str) -> ConversationTurn:
        turn = ConversationTurn(content=text, is_user=False)
        self.append(turn)
        return turn

    def recent(self, limit: int | None = None) -> List[ConversationTurn]:
        """Last ``limit`` turns in chronological order (capped at the window)."""
        limit = self.window if limit is None else min(limit, self.window)
        if limit <= 0:
            return []
        return list(self._turns[-limit:])

    def transcript(self) -> List[ConversationTurn]:
        return list(self._turns)

    def clear(self) -> None:
        self._turns.clear()

    def format_for_prompt(self) -> str:
        return "\n".join(f"{turn.speaker}: {turn.content}" for turn in self.recent())
