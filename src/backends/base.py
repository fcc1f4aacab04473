"""Abstract base for agent CLI backends, plus the gateway error taxonomy."""

from abc import ABC, abstractmethod


class AgentError(Exception):
    """Raised when a call to an agent fails."""

    def __init__(self, label: str, message: str) -> None:
        self.label = label
        super().__init__(f"[{label}] {message}")


class AgentTimeout(AgentError):
    """The agent process exceeded the per-call time bound. Never retried."""

    def __init__(self, label: str, timeout_sec: float) -> None:
        self.timeout_sec = timeout_sec
        super().__init__(label, f"API call timed out after {timeout_sec:g}s")


class TransportError(AgentError):
    """Non-zero exit that is not a rate limit. Never retried."""

    def __init__(self, label: str, exit_code: int, stderr: str) -> None:
        self.exit_code = exit_code
        self.stderr = stderr
        detail = stderr.strip().splitlines()[-1][:200] if stderr.strip() else "no output"
        super().__init__(label, f"API call failed (exit {exit_code}): {detail}")


class RateLimited(AgentError):
    """The backend reported a rate limit. Retried inside the gateway."""


class RateLimitExhausted(AgentError):
    def __init__(self, label: str, attempts: int, retries: int) -> None:
        self.attempts = attempts
        self.retries = retries
        super().__init__(label, f"rate limited, gave up after {retries} retries ({attempts} attempts)")


class MalformedResponse(AgentError):
    """Envelope could not be parsed or carried no response text."""


class EmptyResponse(AgentError):
    def __init__(self, label: str) -> None:
        super().__init__(label, "returned an empty response")


class RoundZeroError(AgentError):
    """A round-0 call failed; wraps the underlying AgentError."""

    def __init__(self, cause: AgentError) -> None:
        self.cause = cause
        super().__init__(cause.label, f"round 0 failed: {cause}")


class EnvelopeError(ValueError):
    """Raised by adapters when stdout does not decode to a usable response."""


class BackendAdapter(ABC):
    """Uniform request/response contract for one kind of agent CLI."""

    name: str = ""

    def __init__(self, command: str | None = None) -> None:
        self._command = command or self.name

    @property
    def command(self) -> str:
        return self._command

    @abstractmethod
    def encode_request(self, prompt: str, model: str, session: str | None) -> list[str]:
        """Return the argv that sends ``prompt`` to ``model``, resuming ``session`` if given."""
        ...

    @abstractmethod
    def decode_response(self, stdout: str) -> tuple[str | None, str]:
        """Extract ``(session_token, text)`` from the process stdout.

        Raises:
            EnvelopeError: If stdout is not a valid envelope or carries no text.
        """
        ...
