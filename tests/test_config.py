"""Tests for config/config_loader.py."""

from pathlib import Path

import pytest
import yaml

from config.config_loader import AppConfig, BackendConfig, PromptsConfig, load_config


def _settings(**defaults_overrides) -> dict:
    defaults = {
        "max_messages": 10,
        "timeout_sec": 60,
        "max_retries": 3,
        "retry_base_delay_sec": 2,
        "extension_increment": 5,
        "output_dir": "./output",
    }
    defaults.update(defaults_overrides)
    return {
        "defaults": defaults,
        "backends": {
            "claude": {
                "command": "test-claude-cli-not-installed",
                "label": "Claude",
                "models": ["haiku", "sonnet", "opus"],
            },
            "gemini": {
                "label": "Gemini",
                "models": ["gemini-2.5-flash"],
            },
        },
        "prompts": {
            "system": "Max {max_messages} messages.",
            "opening": "{system}\n{problem}\n{remaining}",
            "turn": "{counterpart}: {message} ({remaining})",
            "confirm": "{proposer}: AGREED: {conclusion}",
            "confirm_critical": "{proposer}: AGREED: {conclusion} (review)",
            "extension": "+{increment}: {context}",
        },
    }


@pytest.fixture
def minimal_settings(tmp_path: Path) -> Path:
    """Write a minimal valid settings.yaml to a temp path."""
    path = tmp_path / "settings.yaml"
    path.write_text(yaml.dump(_settings()), encoding="utf-8")
    return path


def test_load_config_returns_app_config(minimal_settings):
    config = load_config(minimal_settings)
    assert isinstance(config, AppConfig)


def test_load_config_defaults(minimal_settings):
    config = load_config(minimal_settings)
    assert config.defaults.max_messages == 10
    assert config.defaults.timeout_sec == 60
    assert config.defaults.max_retries == 3
    assert config.defaults.retry_base_delay_sec == 2
    assert config.defaults.extension_increment == 5
    assert config.defaults.export_format == "md"
    assert isinstance(config.defaults.output_dir, Path)


def test_load_config_backends(minimal_settings):
    config = load_config(minimal_settings)
    assert isinstance(config.backends["claude"], BackendConfig)
    assert config.backends["claude"].models == ["haiku", "sonnet", "opus"]
    assert config.backends["claude"].command == "test-claude-cli-not-installed"


def test_backend_command_defaults_to_name(minimal_settings):
    config = load_config(minimal_settings)
    assert config.backends["gemini"].command == "gemini"


def test_load_config_prompts(minimal_settings):
    config = load_config(minimal_settings)
    assert isinstance(config.prompts, PromptsConfig)
    assert "{conclusion}" in config.prompts.confirm


def test_available_backends_follow_path(minimal_settings, monkeypatch):
    monkeypatch.setattr(
        "config.config_loader.shutil.which",
        lambda cmd: "/usr/bin/gemini" if cmd == "gemini" else None,
    )
    config = load_config(minimal_settings)
    assert config.available_backends == {"gemini"}


def test_load_config_missing_file():
    with pytest.raises(FileNotFoundError):
        load_config(Path("/nonexistent/settings.yaml"))


@pytest.mark.parametrize(
    "override",
    [{"max_messages": 0}, {"max_messages": 1}, {"timeout_sec": -1}, {"max_retries": -1}, {"retry_base_delay_sec": 0}],
)
def test_load_config_rejects_out_of_range(tmp_path: Path, override):
    path = tmp_path / "settings.yaml"
    path.write_text(yaml.dump(_settings(**override)), encoding="utf-8")
    with pytest.raises(ValueError):
        load_config(path)


def test_zero_retries_allowed(tmp_path: Path):
    path = tmp_path / "settings.yaml"
    path.write_text(yaml.dump(_settings(max_retries=0)), encoding="utf-8")
    assert load_config(path).defaults.max_retries == 0


def test_shipped_settings_load():
    config = load_config()
    assert set(config.backends) == {"claude", "codex", "gemini"}
    assert config.defaults.max_messages == 10
    assert "AGREED:" in config.prompts.system
    assert config.prompts.system.format(max_messages=4).count("Max 4 messages") == 1
