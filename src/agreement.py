"""Agreement detection and the confirmation round."""

import logging
import re

from src.gateway import AgentGateway
from src.models import Agent, AgreementProposal, DebateState, Phase, ProposalOutcome, Role
from src.transcript import Transcript

logger = logging.getLogger(__name__)

AGREEMENT_KEYWORD = "AGREED"

# Keyword at the start of a line, after optional indentation and up to two
# emphasis characters ("**AGREED:", "_AGREED:").
_MARKER_RE = re.compile(
    rf"^[ \t]*[*_]{{0,2}}{AGREEMENT_KEYWORD}:(?P<rest>.*)$",
    re.IGNORECASE | re.MULTILINE,
)
_EDGE_RE = re.compile(r"^[\s*_]+|[\s*_]+$")


def has_agreement_marker(text: str) -> bool:
    return _MARKER_RE.search(text) is not None


def extract_conclusion(text: str) -> str | None:
    """Return the conclusion following the first agreement marker, or None.

    Emphasis and whitespace around the conclusion are dropped, so
    ``extract_conclusion(f"AGREED: {c}") == c`` for any extracted ``c``.
    """
    match = _MARKER_RE.search(text)
    if match is None:
        return None
    return _EDGE_RE.sub("", match.group("rest"))


def detect_proposal(role: Role, text: str) -> AgreementProposal | None:
    conclusion = extract_conclusion(text)
    if conclusion is None:
        return None
    return AgreementProposal(proposer=role, conclusion=conclusion)


def take_extension_context(state: DebateState, role: Role, message: str) -> str:
    """Prepend the one-shot extension context for ``role`` and consume it."""
    if not state.extension_context or role not in state.extension_context:
        return message
    context = state.extension_context.pop(role)
    if not state.extension_context:
        state.extension_context = None
    return f"{context}\n\n{message}"


async def confirm_agreement(
    proposal: AgreementProposal,
    proposer: Agent,
    confirmer: Agent,
    gateway: AgentGateway,
    transcript: Transcript,
    state: DebateState,
    template: str,
) -> AgreementProposal:
    """Ask ``confirmer`` to re-confirm ``proposal``; resolves it either way.

    On confirmation the state moves to AGREED with the confirmer's
    (possibly adjusted) conclusion. On rejection the reply becomes the
    confirmer's latest message and the proposer takes the next turn.
    Gateway failures propagate.
    """
    logger.info("%s proposes agreement. Asking %s to confirm...", proposer.label, confirmer.label)
    state.pending_proposal = proposal

    message = template.format(proposer=proposer.label, conclusion=proposal.conclusion)
    message = take_extension_context(state, confirmer.role, message)

    reply = await gateway.call(confirmer, message)
    state.message_count += 1
    transcript.record(confirmer, message, reply, kind="confirmation")
    state.last_messages[confirmer.role] = reply
    state.pending_proposal = None

    conclusion = extract_conclusion(reply)
    if conclusion is not None:
        proposal.outcome = ProposalOutcome.CONFIRMED
        state.conclusion = conclusion
        state.phase = Phase.AGREED
        logger.info("%s confirmed agreement", confirmer.label)
    else:
        proposal.outcome = ProposalOutcome.REJECTED
        state.next_role = proposer.role
        state.phase = Phase.TURN_A if proposer.role is Role.A else Phase.TURN_B
        logger.info("%s rejected the proposal; debate continues", confirmer.label)
    return proposal
