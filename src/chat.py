"""Follow-up chat with a single agent once the debate is over."""

import logging

from src.gateway import AgentGateway
from src.models import Agent
from src.transcript import Transcript

logger = logging.getLogger(__name__)


async def chat_with_agent(
    gateway: AgentGateway,
    agent: Agent,
    text: str,
    transcript: Transcript,
) -> str:
    """Send a user message to ``agent`` in its existing session.

    The user turn and the reply are appended together, only after the
    call succeeds.
    """
    if not text.strip():
        raise ValueError("Chat message must not be empty")
    reply = await gateway.call(agent, text)
    transcript.record_user(text)
    transcript.record(agent, text, reply, kind="chat")
    logger.debug("Chat with %s: %d chars in, %d chars out", agent.label, len(text), len(reply))
    return reply
