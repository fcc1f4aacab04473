"""Agent gateway: runs a backend CLI, normalizes its envelope, retries rate limits."""

import asyncio
import logging
import re
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from pathlib import Path

from src.backends.base import (
    AgentTimeout,
    BackendAdapter,
    EnvelopeError,
    MalformedResponse,
    RateLimited,
    RateLimitExhausted,
    TransportError,
)
from src.models import Agent
from src.sessions import SessionRegistry

logger = logging.getLogger(__name__)

# Exit status used by coreutils `timeout` and by wrappers that imitate it
_TIMEOUT_EXIT_CODE = 124

_RATE_LIMIT_RE = re.compile(
    r"\b429\b|rate[ _-]?limit|quota exceeded|resource[ _]exhausted|too many requests",
    re.IGNORECASE,
)


@dataclass(frozen=True)
class ProcessResult:
    returncode: int
    stdout: str
    stderr: str
    timed_out: bool = False


Runner = Callable[[list[str], float], Awaitable[ProcessResult]]


async def run_process(argv: list[str], timeout: float) -> ProcessResult:
    """Run ``argv`` to completion, killing it once ``timeout`` seconds elapse.

    A missing executable is reported as exit 127 rather than raised.
    """
    try:
        proc = await asyncio.create_subprocess_exec(
            *argv,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as exc:
        return ProcessResult(returncode=127, stdout="", stderr=str(exc))

    try:
        stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
    except TimeoutError:
        try:
            proc.terminate()
            await asyncio.wait_for(proc.wait(), timeout=5)
        except TimeoutError:
            proc.kill()
            await proc.wait()
        except ProcessLookupError:
            pass
        return ProcessResult(returncode=-1, stdout="", stderr=f"timed out after {timeout}s", timed_out=True)

    return ProcessResult(
        returncode=proc.returncode if proc.returncode is not None else -1,
        stdout=stdout.decode("utf-8", errors="replace"),
        stderr=stderr.decode("utf-8", errors="replace"),
    )


def is_rate_limited(output: str) -> bool:
    return bool(_RATE_LIMIT_RE.search(output))


@dataclass(frozen=True)
class RetryPolicy:
    """Exponential backoff for rate-limited calls.

    ``max_retries`` counts retries, so a call makes at most
    ``max_retries + 1`` attempts.
    """

    max_retries: int
    base_delay: float

    def delay(self, attempt: int) -> float:
        """Delay before the retry that follows failed ``attempt`` (1-indexed)."""
        return self.base_delay * 2 ** (attempt - 1)


class AgentGateway:
    """Uniform ``call(agent, message) -> text`` over every backend kind."""

    def __init__(
        self,
        adapters: dict[str, BackendAdapter],
        sessions: SessionRegistry,
        timeout_sec: float,
        retry_policy: RetryPolicy,
        runner: Runner = run_process,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        debug_dir: Path | None = None,
    ) -> None:
        self._adapters = adapters
        self._sessions = sessions
        self._timeout_sec = timeout_sec
        self._retry = retry_policy
        self._runner = runner
        self._sleep = sleep
        self._debug_dir = debug_dir
        self._debug_counter = 0

    @property
    def sessions(self) -> SessionRegistry:
        return self._sessions

    async def call(self, agent: Agent, message: str) -> str:
        """Send ``message`` to ``agent`` and return its reply text.

        Rate limits are retried with backoff; every other failure is raised
        on the first attempt.

        Raises:
            AgentTimeout: The process exceeded the time bound.
            TransportError: Non-zero exit unrelated to rate limiting.
            MalformedResponse: The envelope could not be decoded.
            RateLimitExhausted: Still rate limited after ``max_retries`` retries.
        """
        attempt = 1
        while True:
            try:
                return await self._call_once(agent, message)
            except RateLimited as exc:
                if attempt > self._retry.max_retries:
                    logger.error("%s: gave up after %d retries", agent.label, self._retry.max_retries)
                    raise RateLimitExhausted(agent.label, attempt, self._retry.max_retries) from exc
                delay = self._retry.delay(attempt)
                logger.warning(
                    "%s: retrying in %gs (rate limited, retry %d/%d)",
                    agent.label, delay, attempt, self._retry.max_retries,
                )
                await self._sleep(delay)
                attempt += 1

    async def _call_once(self, agent: Agent, message: str) -> str:
        adapter = self._adapters[agent.backend]
        session = self._sessions.get(agent)
        argv = adapter.encode_request(message, agent.model, session)

        logger.debug("Calling %s (%s, session=%s)", agent.label, agent.model, session)
        result = await self._runner(argv, self._timeout_sec)
        self._save_debug(agent, result)

        if result.timed_out or result.returncode == _TIMEOUT_EXIT_CODE:
            raise AgentTimeout(agent.label, self._timeout_sec)

        if result.returncode != 0:
            if is_rate_limited(result.stderr) or is_rate_limited(result.stdout):
                raise RateLimited(agent.label, f"rate limited (exit {result.returncode})")
            raise TransportError(agent.label, result.returncode, result.stderr or result.stdout)

        try:
            new_session, text = adapter.decode_response(result.stdout)
        except EnvelopeError as exc:
            if is_rate_limited(result.stdout):
                raise RateLimited(agent.label, "rate limited") from exc
            raise MalformedResponse(agent.label, str(exc)) from exc

        if session is None and new_session:
            self._sessions.set(agent, new_session)
        agent.turn_count += 1
        return text

    def _save_debug(self, agent: Agent, result: ProcessResult) -> None:
        if self._debug_dir is None:
            return
        self._debug_counter += 1
        path = self._debug_dir / f"{self._debug_counter}_agent_{agent.role.value.lower()}.raw"
        self._debug_dir.mkdir(parents=True, exist_ok=True)
        path.write_text(result.stdout, encoding="utf-8")
