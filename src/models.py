"""Dataclasses for the AI debate engine. No I/O, no deps."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class Role(str, Enum):
    A = "A"
    B = "B"

    @property
    def counterpart(self) -> "Role":
        return Role.B if self is Role.A else Role.A


class Phase(str, Enum):
    ROUND0_DONE = "round0_done"
    TURN_A = "turn_a"
    TURN_B = "turn_b"
    EXHAUSTED = "exhausted"
    AGREED = "agreed"


class ProposalOutcome(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    REJECTED = "rejected"


@dataclass
class Agent:
    role: Role
    backend: str           # "claude", "codex", "gemini"
    model: str
    label: str             # "Claude", "Codex (2)", ...
    turn_count: int = 0


@dataclass(frozen=True)
class Turn:
    role: str              # "A", "B" or "user"
    label: str
    prompt: str
    text: str
    timestamp: datetime
    kind: str = "turn"     # "opening", "turn", "confirmation", "chat"


@dataclass
class AgreementProposal:
    proposer: Role
    conclusion: str
    outcome: ProposalOutcome = ProposalOutcome.PENDING


@dataclass
class DebateState:
    message_budget: int
    message_count: int = 0
    phase: Phase = Phase.ROUND0_DONE
    next_role: Role = Role.A       # whose turn comes next, kept across exhaustion
    last_messages: dict[Role, str] = field(default_factory=dict)
    pending_proposal: AgreementProposal | None = None
    extension_context: dict[Role, str] | None = None
    conclusion: str | None = None

    @property
    def remaining(self) -> int:
        return self.message_budget - self.message_count


@dataclass
class DebateOutcome:
    agreed: bool
    conclusion: str | None
    final_positions: dict[Role, str]
    messages_used: int
    message_budget: int
