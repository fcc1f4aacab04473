"""Shared pytest fixtures."""

import asyncio
import json
from collections.abc import Callable
from pathlib import Path

import pytest

from config.config_loader import AppConfig, BackendConfig, DefaultsConfig, PromptsConfig
from src.gateway import AgentGateway, ProcessResult, RetryPolicy
from src.models import Agent, Role
from src.sessions import SessionRegistry
from src.agents import ADAPTER_CLASSES


@pytest.fixture
def sample_prompts_config() -> PromptsConfig:
    return PromptsConfig(
        system="Debate. Max {max_messages} messages. Write AGREED: when you agree.",
        opening="{system}\n\nThe problem to solve:\n{problem}\n\nRemaining messages: {remaining}",
        turn="{counterpart}'s message:\n{message}\n\nRemaining messages: {remaining}",
        confirm="{proposer} proposes:\nAGREED: {conclusion}\n\nDo you agree?",
        confirm_critical="{proposer} proposes:\nAGREED: {conclusion}\n\nReview this critically first.",
        extension="Extended by {increment} messages. Context: {context}",
    )


@pytest.fixture
def sample_defaults_config(tmp_path: Path) -> DefaultsConfig:
    return DefaultsConfig(
        max_messages=10,
        timeout_sec=60,
        max_retries=3,
        retry_base_delay_sec=2,
        extension_increment=5,
        output_dir=tmp_path / "output",
    )


@pytest.fixture
def sample_app_config(sample_defaults_config: DefaultsConfig, sample_prompts_config: PromptsConfig) -> AppConfig:
    return AppConfig(
        defaults=sample_defaults_config,
        backends={
            "claude": BackendConfig("claude", "claude", "Claude", ["haiku", "sonnet", "opus"]),
            "codex": BackendConfig("codex", "codex", "Codex", ["gpt-5.1-codex-mini", "gpt-5.2-codex"]),
            "gemini": BackendConfig("gemini", "gemini", "Gemini", ["gemini-2.5-flash", "gemini-3-flash-preview"]),
        },
        prompts=sample_prompts_config,
        available_backends={"claude", "codex"},
    )


@pytest.fixture
def agent_a() -> Agent:
    return Agent(role=Role.A, backend="claude", model="sonnet", label="Claude")


@pytest.fixture
def agent_b() -> Agent:
    return Agent(role=Role.B, backend="codex", model="gpt-5.2-codex", label="Codex")


class ScriptedGateway:
    """Test double for AgentGateway: replays canned replies per role.

    Each script item is a reply string or an exception instance to raise.
    Every message sent is captured in ``calls`` as (role, message).
    """

    def __init__(self, replies: dict[Role, list], delays: dict[Role, float] | None = None) -> None:
        self._replies = {role: list(items) for role, items in replies.items()}
        self._delays = delays or {}
        self.calls: list[tuple[Role, str]] = []

    async def call(self, agent: Agent, message: str) -> str:
        self.calls.append((agent.role, message))
        delay = self._delays.get(agent.role)
        if delay:
            await asyncio.sleep(delay)
        script = self._replies.get(agent.role) or []
        if not script:
            raise AssertionError(f"No scripted reply left for agent {agent.role.value}")
        item = script.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item

    def messages_for(self, role: Role) -> list[str]:
        return [message for r, message in self.calls if r is role]


class FakeRunner:
    """Replaces run_process: returns queued ProcessResults and records argv."""

    def __init__(self, results: list[ProcessResult] | Callable[[int, list[str]], ProcessResult]) -> None:
        self._results = results
        self.argvs: list[list[str]] = []

    @property
    def calls(self) -> int:
        return len(self.argvs)

    async def __call__(self, argv: list[str], timeout: float) -> ProcessResult:
        self.argvs.append(list(argv))
        if callable(self._results):
            return self._results(len(self.argvs), argv)
        return self._results[len(self.argvs) - 1]


def claude_ok(text: str, session: str = "sid-1") -> ProcessResult:
    return ProcessResult(0, json.dumps({"session_id": session, "result": text}), "")


RATE_LIMITED = ProcessResult(0, "rate limit 429 quota exceeded", "")


class RecordingSleep:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


def make_gateway(
    runner: FakeRunner,
    sleep: RecordingSleep | None = None,
    max_retries: int = 3,
    base_delay: float = 2,
    timeout_sec: float = 60,
) -> AgentGateway:
    return AgentGateway(
        adapters={name: cls() for name, cls in ADAPTER_CLASSES.items()},
        sessions=SessionRegistry(),
        timeout_sec=timeout_sec,
        retry_policy=RetryPolicy(max_retries=max_retries, base_delay=base_delay),
        runner=runner,
        sleep=sleep or RecordingSleep(),
    )
