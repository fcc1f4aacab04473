"""Per-agent continuation tokens for resuming backend conversations."""

import logging

from src.models import Agent, Role

logger = logging.getLogger(__name__)


class SessionRegistry:
    """Maps each agent role to the session token its backend handed out.

    A token is recorded once, from the agent's first successful response,
    and is never replaced for the rest of the run. Only the agent's own
    calls write its entry, so round-0's two concurrent first calls never
    touch the same key.
    """

    def __init__(self) -> None:
        self._tokens: dict[Role, str] = {}

    def get(self, agent: Agent) -> str | None:
        return self._tokens.get(agent.role)

    def set(self, agent: Agent, token: str) -> None:
        if agent.role in self._tokens:
            logger.debug("Session for %s already set, ignoring %s", agent.label, token)
            return
        self._tokens[agent.role] = token
        logger.debug("Session for %s: %s", agent.label, token)

    def __contains__(self, agent: Agent) -> bool:
        return agent.role in self._tokens
