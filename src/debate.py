"""Debate orchestration: round 0, alternating turns, agreement, extensions."""

import logging

from config.config_loader import MIN_MESSAGE_BUDGET, PromptsConfig
from src.agreement import confirm_agreement, detect_proposal, take_extension_context
from src.dispatcher import run_round_zero
from src.extension import ExtensionPrompt, negotiate_extension
from src.gateway import AgentGateway
from src.models import (
    Agent,
    AgreementProposal,
    DebateOutcome,
    DebateState,
    Phase,
    ProposalOutcome,
    Role,
)
from src.transcript import Transcript

logger = logging.getLogger(__name__)


class DebateEngine:
    """Runs one debate between agent A and agent B.

    The engine owns the ``DebateState`` and the ``Transcript``; both stay
    readable after ``run`` returns or raises. Every turn after round 0 is
    strictly sequential because each agent answers the other's latest
    message.
    """

    def __init__(
        self,
        gateway: AgentGateway,
        agent_a: Agent,
        agent_b: Agent,
        prompts: PromptsConfig,
        problem: str,
        message_budget: int,
        system_prompt: str | None = None,
        critical: bool = False,
    ) -> None:
        if message_budget < MIN_MESSAGE_BUDGET:
            raise ValueError(f"Message budget must be at least {MIN_MESSAGE_BUDGET}, got {message_budget}")
        if agent_a.role is not Role.A or agent_b.role is not Role.B:
            raise ValueError("agent_a and agent_b must hold roles A and B")
        self._gateway = gateway
        self._agents = {Role.A: agent_a, Role.B: agent_b}
        self._prompts = prompts
        self._system_prompt = system_prompt
        self._confirm_template = prompts.confirm_critical if critical else prompts.confirm
        self.problem = problem
        self.state = DebateState(message_budget=message_budget)
        self.transcript = Transcript(problem, [agent_a, agent_b])

    def agent(self, role: Role) -> Agent:
        return self._agents[role]

    def opening_prompt(self) -> str:
        system = self._system_prompt
        if system is None:
            system = self._prompts.system.format(max_messages=self.state.message_budget)
        return self._prompts.opening.format(
            system=system,
            problem=self.problem,
            remaining=self.state.message_budget,
        )

    async def run(self, ask_extension: ExtensionPrompt | None = None) -> DebateOutcome:
        """Run the debate to AGREED or to a declined extension.

        Args:
            ask_extension: Called whenever the budget runs out without
                agreement; returns an ``ExtensionDecision`` or None to stop.

        Raises:
            AgentError: Any fatal gateway failure; the run is abandoned.
        """
        response_a, response_b = await run_round_zero(
            self._gateway,
            self.agent(Role.A),
            self.agent(Role.B),
            self.opening_prompt(),
            self.transcript,
            self.state,
        )
        await self._check_opening_agreement(response_a, response_b)

        while True:
            await self._run_turns()
            if self.state.phase is Phase.AGREED:
                break
            if not negotiate_extension(self.state, ask_extension, self._prompts.extension):
                break

        return self.outcome()

    def outcome(self) -> DebateOutcome:
        return DebateOutcome(
            agreed=self.state.phase is Phase.AGREED,
            conclusion=self.state.conclusion,
            final_positions=dict(self.state.last_messages),
            messages_used=self.state.message_count,
            message_budget=self.state.message_budget,
        )

    async def _check_opening_agreement(self, response_a: str, response_b: str) -> None:
        proposal_a = detect_proposal(Role.A, response_a)
        proposal_b = detect_proposal(Role.B, response_b)

        if proposal_a and proposal_b:
            # Independent agreement needs no confirmation round
            proposal_a.outcome = ProposalOutcome.CONFIRMED
            self.state.conclusion = proposal_a.conclusion
            self.state.phase = Phase.AGREED
            logger.info("Both agents agreed in round 0")
        elif proposal_a:
            await self._resolve_proposal(proposal_a)
        elif proposal_b:
            await self._resolve_proposal(proposal_b)

    async def _resolve_proposal(self, proposal: AgreementProposal) -> None:
        if self.state.message_count >= self.state.message_budget:
            # No message left for the confirmation; settle it after an extension
            self.state.pending_proposal = proposal
            logger.info("Proposal by %s pending: message budget spent", self.agent(proposal.proposer).label)
            return
        await confirm_agreement(
            proposal,
            proposer=self.agent(proposal.proposer),
            confirmer=self.agent(proposal.proposer.counterpart),
            gateway=self._gateway,
            transcript=self.transcript,
            state=self.state,
            template=self._confirm_template,
        )

    async def _run_turns(self) -> None:
        state = self.state
        if state.phase is Phase.AGREED:
            return

        if state.pending_proposal is not None:
            pending, state.pending_proposal = state.pending_proposal, None
            await self._resolve_proposal(pending)
            if state.phase is Phase.AGREED:
                return

        while state.message_count < state.message_budget:
            state.phase = Phase.TURN_A if state.next_role is Role.A else Phase.TURN_B
            await self._take_turn(state.next_role)
            if state.phase is Phase.AGREED:
                return

        state.phase = Phase.EXHAUSTED
        logger.info("No agreement after %d messages", state.message_count)

    async def _take_turn(self, role: Role) -> None:
        state = self.state
        agent = self.agent(role)
        counterpart = self.agent(role.counterpart)

        message = self._prompts.turn.format(
            counterpart=counterpart.label,
            message=state.last_messages.get(counterpart.role, ""),
            remaining=state.message_budget - state.message_count - 1,
        )
        message = take_extension_context(state, role, message)

        reply = await self._gateway.call(agent, message)
        state.message_count += 1
        self.transcript.record(agent, message, reply)
        state.last_messages[role] = reply
        state.next_role = role.counterpart

        proposal = detect_proposal(role, reply)
        if proposal is not None:
            await self._resolve_proposal(proposal)
