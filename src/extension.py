"""Budget extension after a debate runs out of messages."""

import logging
from collections.abc import Callable
from dataclasses import dataclass

from src.models import DebateState, Phase, Role

logger = logging.getLogger(__name__)


@dataclass
class ExtensionDecision:
    increment: int
    context: str | None = None


# Called with the exhausted state; returns None to end the debate.
ExtensionPrompt = Callable[[DebateState], ExtensionDecision | None]


def apply_extension(state: DebateState, decision: ExtensionDecision, template: str) -> None:
    """Raise the budget and queue one-shot context for both agents.

    The state leaves EXHAUSTED and resumes at the turn it stopped on.
    """
    if decision.increment <= 0:
        raise ValueError(f"Extension increment must be positive, got {decision.increment}")

    state.message_budget += decision.increment
    if decision.context and decision.context.strip():
        text = template.format(increment=decision.increment, context=decision.context.strip())
        state.extension_context = {Role.A: text, Role.B: text}

    if state.phase is Phase.EXHAUSTED:
        state.phase = Phase.TURN_A if state.next_role is Role.A else Phase.TURN_B
    logger.info(
        "Debate extended by %d messages (%d/%d used)",
        decision.increment, state.message_count, state.message_budget,
    )


def negotiate_extension(
    state: DebateState,
    ask: ExtensionPrompt | None,
    template: str,
) -> bool:
    """Offer an extension for an exhausted debate. Returns True if accepted."""
    if ask is None or state.phase is not Phase.EXHAUSTED:
        return False
    decision = ask(state)
    if decision is None:
        logger.info("Extension declined")
        return False
    apply_extension(state, decision, template)
    return True
