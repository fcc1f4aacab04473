"""Round 0: both agents answer the opening prompt concurrently."""

import asyncio
import logging

from src.backends.base import AgentError, EmptyResponse, RoundZeroError
from src.gateway import AgentGateway
from src.models import Agent, DebateState, Phase
from src.transcript import Transcript

logger = logging.getLogger(__name__)


async def _opening_call(gateway: AgentGateway, agent: Agent, prompt: str) -> str:
    """One round-0 task. Rate-limit retries run here, inside the parallel region."""
    text = await gateway.call(agent, prompt)
    logger.debug("%s finished round 0", agent.label)
    return text


async def run_round_zero(
    gateway: AgentGateway,
    agent_a: Agent,
    agent_b: Agent,
    opening_prompt: str,
    transcript: Transcript,
    state: DebateState,
) -> tuple[str, str]:
    """Send ``opening_prompt`` to both agents at once and wait for both.

    A failing call does not cancel its sibling: both tasks run to
    completion before any failure is raised. Turns are appended A then B,
    after the join.

    Returns:
        (agent A's response, agent B's response)

    Raises:
        RoundZeroError: Either call failed or returned a blank response.
    """
    logger.info("Round 0: both agents thinking in parallel...")

    results = await asyncio.gather(
        _opening_call(gateway, agent_a, opening_prompt),
        _opening_call(gateway, agent_b, opening_prompt),
        return_exceptions=True,
    )

    failures: list[AgentError] = []
    for agent, result in zip((agent_a, agent_b), results):
        if isinstance(result, AgentError):
            failures.append(result)
        elif isinstance(result, BaseException):
            raise result
        elif not result.strip():
            failures.append(EmptyResponse(agent.label))

    for failure in failures:
        logger.error("%s round 0 failed: %s", failure.label, failure)
    if failures:
        raise RoundZeroError(failures[0]) from failures[0]

    response_a, response_b = results
    transcript.record(agent_a, opening_prompt, response_a, kind="opening")
    transcript.record(agent_b, opening_prompt, response_b, kind="opening")

    state.message_count = 2
    state.last_messages[agent_a.role] = response_a
    state.last_messages[agent_b.role] = response_b
    state.phase = Phase.ROUND0_DONE
    return response_a, response_b
