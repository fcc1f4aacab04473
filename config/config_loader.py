"""Load settings.yaml into typed dataclasses. Detects installed agent CLIs at startup."""

import logging
import shutil
from dataclasses import dataclass, field
from pathlib import Path

import yaml

logger = logging.getLogger(__name__)

_SETTINGS_PATH = Path(__file__).parent / "settings.yaml"

# Round 0 alone sends one message to each agent
MIN_MESSAGE_BUDGET = 2


@dataclass
class BackendConfig:
    name: str                  # "claude", "codex", "gemini"
    command: str               # executable looked up on PATH
    label: str                 # display name, e.g. "Claude"
    models: list[str] = field(default_factory=list)


@dataclass
class PromptsConfig:
    system: str
    opening: str
    turn: str
    confirm: str
    confirm_critical: str
    extension: str


@dataclass
class DefaultsConfig:
    max_messages: int
    timeout_sec: int
    max_retries: int
    retry_base_delay_sec: int
    extension_increment: int
    output_dir: Path
    export_format: str = "md"


@dataclass
class AppConfig:
    defaults: DefaultsConfig
    backends: dict[str, BackendConfig]
    prompts: PromptsConfig
    available_backends: set[str] = field(default_factory=set)


def _require_positive(name: str, value: int, allow_zero: bool = False) -> int:
    if value < 0 or (value == 0 and not allow_zero):
        raise ValueError(f"Setting '{name}' must be {'non-negative' if allow_zero else 'positive'}, got {value}")
    return value


def validate_message_budget(value: int, name: str = "max_messages") -> int:
    if value < MIN_MESSAGE_BUDGET:
        raise ValueError(f"Setting '{name}' must be at least {MIN_MESSAGE_BUDGET}, got {value}")
    return value


def load_config(settings_path: Path = _SETTINGS_PATH) -> AppConfig:
    """Load and validate configuration from settings.yaml.

    Raises FileNotFoundError if settings file missing, ValueError on
    out-of-range numeric defaults. Missing agent CLIs are logged, not
    raised: callers check ``available_backends``.
    """
    if not settings_path.exists():
        raise FileNotFoundError(f"Settings file not found: {settings_path}")

    with settings_path.open("r", encoding="utf-8") as f:
        raw = yaml.safe_load(f)

    defaults_raw = raw["defaults"]
    defaults = DefaultsConfig(
        max_messages=validate_message_budget(int(defaults_raw["max_messages"])),
        timeout_sec=_require_positive("timeout_sec", int(defaults_raw["timeout_sec"])),
        max_retries=_require_positive("max_retries", int(defaults_raw["max_retries"]), allow_zero=True),
        retry_base_delay_sec=_require_positive("retry_base_delay_sec", int(defaults_raw["retry_base_delay_sec"])),
        extension_increment=_require_positive("extension_increment", int(defaults_raw["extension_increment"])),
        output_dir=Path(defaults_raw["output_dir"]),
        export_format=str(defaults_raw.get("export_format", "md")),
    )

    prompts_raw = raw["prompts"]
    prompts = PromptsConfig(
        system=prompts_raw["system"],
        opening=prompts_raw["opening"],
        turn=prompts_raw["turn"],
        confirm=prompts_raw["confirm"],
        confirm_critical=prompts_raw["confirm_critical"],
        extension=prompts_raw["extension"],
    )

    backends: dict[str, BackendConfig] = {}
    available_backends: set[str] = set()

    for backend_name, backend_raw in raw["backends"].items():
        backend_cfg = BackendConfig(
            name=backend_name,
            command=backend_raw.get("command", backend_name),
            label=backend_raw["label"],
            models=[str(m) for m in backend_raw["models"]],
        )
        backends[backend_name] = backend_cfg

        if shutil.which(backend_cfg.command):
            available_backends.add(backend_name)
            logger.debug("Agent CLI available: %s", backend_name)
        else:
            logger.debug("Agent CLI not found on PATH: %s", backend_cfg.command)

    return AppConfig(
        defaults=defaults,
        backends=backends,
        prompts=prompts,
        available_backends=available_backends,
    )
