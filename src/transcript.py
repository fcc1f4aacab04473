"""Append-only record of every message exchanged during a run."""

import logging
from collections.abc import Callable
from datetime import datetime

from src.models import Agent, Turn

logger = logging.getLogger(__name__)

USER_ROLE = "user"


class Transcript:
    """Ordered, write-once log of turns.

    Turns are frozen dataclasses and only ever appended, so the order of
    ``turns`` is the order in which calls completed.
    """

    def __init__(
        self,
        problem: str,
        agents: list[Agent],
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.problem = problem
        self.agents = list(agents)
        self._turns: list[Turn] = []
        self._clock = clock
        self._listeners: list[Callable[[Turn], None]] = []

    @property
    def turns(self) -> tuple[Turn, ...]:
        return tuple(self._turns)

    def __len__(self) -> int:
        return len(self._turns)

    def subscribe(self, listener: Callable[[Turn], None]) -> None:
        """Call ``listener`` with every turn appended from now on."""
        self._listeners.append(listener)

    def record(self, agent: Agent, prompt: str, text: str, kind: str = "turn") -> Turn:
        turn = Turn(
            role=agent.role.value,
            label=agent.label,
            prompt=prompt,
            text=text,
            timestamp=self._clock(),
            kind=kind,
        )
        self._append(turn)
        return turn

    def record_user(self, text: str) -> Turn:
        turn = Turn(role=USER_ROLE, label="You", prompt="", text=text, timestamp=self._clock(), kind="chat")
        self._append(turn)
        return turn

    def _append(self, turn: Turn) -> None:
        self._turns.append(turn)
        logger.debug("Transcript +%s (%s, %d chars)", turn.label, turn.kind, len(turn.text))
        for listener in self._listeners:
            listener(turn)
