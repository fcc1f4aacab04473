"""Tests for the click entry point in src/cli.py."""

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from src.backends.base import TransportError
from src.cli import _select_models, main
from src.models import Role
from tests.conftest import ScriptedGateway


@pytest.fixture
def patched_cli(monkeypatch, sample_app_config):
    """Run main() against the sample config with a scripted gateway."""
    holder: dict = {}

    def install(replies: dict[Role, list]) -> ScriptedGateway:
        gateway = ScriptedGateway(replies)
        holder["gateway"] = gateway
        return gateway

    monkeypatch.setattr("src.cli.load_config", lambda: sample_app_config)
    monkeypatch.setattr("src.cli.AgentGateway", lambda **kwargs: holder["gateway"])
    return install


def _agreeing_replies() -> dict[Role, list]:
    return {
        Role.A: ["Tabs.", "AGREED: spaces, four of them"],
        Role.B: ["Spaces.", "AGREED: spaces, four of them"],
    }


def test_select_models_explicit_and_default(sample_app_config):
    models = _select_models(sample_app_config, {"claude", "codex"}, {"claude": "opus", "codex": None})
    assert models == {"claude": "opus", "codex": "gpt-5.1-codex-mini"}


def test_main_agreed_run_exports_json(patched_cli, tmp_path: Path):
    gateway = patched_cli(_agreeing_replies())
    out_dir = tmp_path / "out"

    result = CliRunner().invoke(
        main, ["--export", "--format", "json", "--output", str(out_dir), "Tabs", "or", "spaces?"]
    )

    assert result.exit_code == 0, result.output
    assert "Tabs or spaces?" in gateway.calls[0][1]
    saved = list(out_dir.glob("*.json"))
    assert len(saved) == 1
    data = json.loads(saved[0].read_text(encoding="utf-8"))
    assert data["conclusion"] == "spaces, four of them"
    assert len(data["turns"]) == 4


def test_main_no_export_writes_nothing(patched_cli, tmp_path: Path):
    patched_cli(_agreeing_replies())
    out_dir = tmp_path / "out"

    result = CliRunner().invoke(main, ["--no-export", "--output", str(out_dir), "Tabs or spaces?"])

    assert result.exit_code == 0, result.output
    assert not out_dir.exists()


def test_main_round_zero_failure_exits_nonzero(patched_cli):
    patched_cli({Role.A: [TransportError("Claude", 1, "boom")], Role.B: ["Spaces."]})

    result = CliRunner().invoke(main, ["--no-export", "Tabs or spaces?"])

    assert result.exit_code == 1


def test_main_frontmatter_sets_budget(patched_cli, tmp_path: Path):
    gateway = patched_cli(_agreeing_replies())
    problem = tmp_path / "indent.md"
    problem.write_text("---\nmax_messages: 4\n---\nTabs or spaces?\n", encoding="utf-8")

    result = CliRunner().invoke(main, ["--no-export", "--file", str(problem)])

    assert result.exit_code == 0, result.output
    assert "Max 4 messages" in gateway.calls[0][1]


def test_main_flag_beats_frontmatter(patched_cli, tmp_path: Path):
    gateway = patched_cli(_agreeing_replies())
    problem = tmp_path / "indent.md"
    problem.write_text("---\nmax_messages: 4\n---\nTabs or spaces?\n", encoding="utf-8")

    result = CliRunner().invoke(main, ["--no-export", "--max-messages", "8", "--file", str(problem)])

    assert result.exit_code == 0, result.output
    assert "Max 8 messages" in gateway.calls[0][1]


def test_main_critical_uses_critical_confirmation(patched_cli):
    gateway = patched_cli(_agreeing_replies())

    result = CliRunner().invoke(main, ["--no-export", "--critical", "Tabs or spaces?"])

    assert result.exit_code == 0, result.output
    assert "critically" in gateway.messages_for(Role.B)[-1]


def test_main_unknown_model_exits_nonzero(patched_cli):
    patched_cli(_agreeing_replies())

    result = CliRunner().invoke(main, ["--claude-model", "gpt-4", "Tabs or spaces?"])

    assert result.exit_code == 1


def test_main_rejects_zero_budget(patched_cli):
    patched_cli(_agreeing_replies())
    result = CliRunner().invoke(main, ["--max-messages", "0", "Tabs or spaces?"])
    assert result.exit_code == 2


def test_main_rejects_single_message_budget(patched_cli):
    patched_cli(_agreeing_replies())
    result = CliRunner().invoke(main, ["--max-messages", "1", "Tabs or spaces?"])
    assert result.exit_code == 2


@pytest.mark.parametrize("value", ["0", "1", "ten", "null"])
def test_main_invalid_frontmatter_budget(patched_cli, tmp_path: Path, value):
    gateway = patched_cli(_agreeing_replies())
    problem = tmp_path / "indent.md"
    problem.write_text(f"---\nmax_messages: {value}\n---\nTabs or spaces?\n", encoding="utf-8")

    result = CliRunner().invoke(main, ["--no-export", "--file", str(problem)])

    assert result.exit_code == 1
    assert "Error:" in result.output
    assert gateway.calls == []


def test_main_reports_call_counts(patched_cli):
    patched_cli(_agreeing_replies())
    result = CliRunner().invoke(main, ["--no-export", "Tabs or spaces?"])
    assert result.exit_code == 0, result.output
    assert "Successful calls: Claude" in result.output
