"""Agent selection: which installed CLIs debate, and with which models."""

import logging

from config.config_loader import AppConfig
from src.backends.base import BackendAdapter
from src.backends.claude import ClaudeAdapter
from src.backends.codex import CodexAdapter
from src.backends.gemini import GeminiAdapter
from src.models import Agent, Role

logger = logging.getLogger(__name__)

ADAPTER_CLASSES: dict[str, type[BackendAdapter]] = {
    "claude": ClaudeAdapter,
    "codex": CodexAdapter,
    "gemini": GeminiAdapter,
}

# Preferred pairings, first match wins
_PAIRINGS: list[tuple[str, str]] = [
    ("claude", "codex"),
    ("claude", "gemini"),
    ("codex", "gemini"),
]

_SOLO_ORDER = ["claude", "codex", "gemini"]


class AgentSetupError(Exception):
    """Raised when no usable pair of agents can be assembled."""


def choose_backends(available: set[str]) -> tuple[str, str]:
    """Return (backend for A, backend for B) from the installed CLIs.

    Two different tools are preferred; with a single tool installed it
    plays both sides.
    """
    for first, second in _PAIRINGS:
        if first in available and second in available:
            return first, second
    for name in _SOLO_ORDER:
        if name in available:
            logger.warning("Only '%s' found. Using %s for both agents.", name, name)
            return name, name
    raise AgentSetupError("No AI tools found ('claude', 'codex', or 'gemini')")


def validate_model(config: AppConfig, backend: str, model: str) -> str:
    allowed = config.backends[backend].models
    if model not in allowed:
        raise AgentSetupError(f"Unknown {backend} model '{model}'. Choose one of: {', '.join(allowed)}")
    return model


def build_agents(config: AppConfig, backend_a: str, backend_b: str, models: dict[str, str]) -> tuple[Agent, Agent]:
    """Create agents A and B. ``models`` maps backend name to the selected model."""
    for backend in {backend_a, backend_b}:
        if backend not in models:
            raise AgentSetupError(f"No model selected for {backend}")
        validate_model(config, backend, models[backend])

    label_a = config.backends[backend_a].label
    label_b = config.backends[backend_b].label
    if backend_a == backend_b:
        label_a, label_b = f"{label_a} (1)", f"{label_b} (2)"

    return (
        Agent(role=Role.A, backend=backend_a, model=models[backend_a], label=label_a),
        Agent(role=Role.B, backend=backend_b, model=models[backend_b], label=label_b),
    )


def build_adapters(config: AppConfig, backends: set[str]) -> dict[str, BackendAdapter]:
    return {name: ADAPTER_CLASSES[name](config.backends[name].command) for name in backends}
