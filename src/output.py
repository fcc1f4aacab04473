"""Rich console output and transcript export for debate results."""

import json
import logging
import re
from datetime import datetime
from pathlib import Path

from rich.console import Console
from rich.panel import Panel
from rich.rule import Rule
from rich.text import Text

from src.models import Agent, DebateOutcome, Role, Turn
from src.transcript import USER_ROLE, Transcript

logger = logging.getLogger(__name__)

console = Console(legacy_windows=False)

NO_AGREEMENT = "No agreement reached"

_ROLE_STYLES = {"A": "bold blue", "B": "bold green", USER_ROLE: "bold yellow"}


def _slug(text: str, max_len: int = 40) -> str:
    """Convert text to a filename-safe slug."""
    slug = re.sub(r"[^\w\s-]", "", text.lower())
    slug = re.sub(r"[\s_-]+", "-", slug).strip("-")
    return slug[:max_len]


def _head(text: str, lines: int = 3) -> str:
    """First N lines of a message."""
    return "\n".join(text.splitlines()[:lines])


def _role_tag(role: str) -> str:
    return f"agent_{role.lower()}" if role in ("A", "B") else role


def print_banner(agent_a: Agent, agent_b: Agent, problem: str, budget: int) -> None:
    title = f"AI DEBATE: {agent_a.label} ({agent_a.model}) vs {agent_b.label} ({agent_b.model})"
    console.print(Panel(Text(title, justify="center", style="bold"), expand=False))
    console.print(f"[yellow]Problem:[/yellow] {problem}")
    console.print(f"[dim]Max {budget} messages total[/dim]")


def print_turn(turn: Turn, number: int, budget: int) -> None:
    """Print one transcript turn; ``number`` is its message count so far."""
    style = _ROLE_STYLES.get(turn.role, "bold")
    if turn.kind == "chat":
        console.print(Rule(f"[{style}]{turn.label}[/{style}]", style="dim"))
    else:
        console.print(
            Rule(
                f"[{style}]{turn.label} [message {number}/{budget}, {budget - number} remaining][/{style}]",
                style="dim",
            )
        )
    console.print(turn.text)


def print_outcome(outcome: DebateOutcome, agents: dict[Role, Agent]) -> None:
    if outcome.agreed:
        console.print(Panel(Text("AGREEMENT REACHED", justify="center"), style="yellow", expand=False))
        console.print(f"[bold]Conclusion:[/bold] {outcome.conclusion}")
    else:
        console.print(Panel(Text("DEBATE IS OVER", justify="center"), style="yellow", expand=False))
        console.print(f"No agreement after {outcome.message_budget} messages.")
        console.print("[bold]Final positions:[/bold]")
        for role, agent in agents.items():
            style = _ROLE_STYLES[role.value]
            console.print(f"  [{style}]{agent.label}:[/{style}] {_head(outcome.final_positions.get(role, ''))}")
    console.print(f"[dim]Messages used: {outcome.messages_used}/{outcome.message_budget}[/dim]")
    calls = ", ".join(f"{agent.label} {agent.turn_count}" for agent in agents.values())
    console.print(f"[dim]Successful calls: {calls}[/dim]")


def _export_name(transcript: Transcript, suffix: str, slug_override: str | None) -> str:
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    slug = slug_override if slug_override is not None else _slug(transcript.problem)
    return f"{timestamp}_{slug}.{suffix}"


def save_to_file(
    transcript: Transcript,
    outcome: DebateOutcome,
    output_dir: Path,
    slug_override: str | None = None,
) -> Path:
    """Save the full debate transcript as a markdown file.

    Args:
        transcript: The recorded turns, problem and agents.
        outcome: The final outcome of the run.
        output_dir: Directory to save the file in.
        slug_override: If provided, use this as the filename stem instead of
            deriving one from the problem text.

    Returns:
        Path to the saved file.
    """
    output_dir.mkdir(parents=True, exist_ok=True)
    filepath = output_dir / _export_name(transcript, "md", slug_override)

    agents_str = " vs ".join(f"{a.label} ({a.backend}, {a.model})" for a in transcript.agents)
    conclusion = outcome.conclusion if outcome.agreed else NO_AGREEMENT

    lines: list[str] = [
        f"# AI Debate: {transcript.problem.splitlines()[0][:80] if transcript.problem else ''}",
        "",
        f"**Date:** {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}",
        f"**Agents:** {agents_str}",
        f"**Messages:** {outcome.messages_used}/{outcome.message_budget}",
        f"**Result:** {'agreed' if outcome.agreed else 'exhausted'}",
        "",
        "## Problem",
        "",
        transcript.problem,
        "",
        "---",
        "",
    ]

    for index, turn in enumerate(transcript.turns, start=1):
        lines.append(f"### {index}. {turn.label} [{_role_tag(turn.role)}, {turn.kind}]")
        lines.append("")
        lines.append(f"*{turn.timestamp.isoformat(timespec='seconds')}*")
        lines.append("")
        lines.append(turn.text)
        lines.append("")

    lines += [
        "## Conclusion",
        "",
        conclusion or "",
        "",
    ]

    filepath.write_text("\n".join(lines), encoding="utf-8")
    logger.info("Debate saved to: %s", filepath)
    return filepath


def transcript_to_dict(transcript: Transcript, outcome: DebateOutcome) -> dict:
    return {
        "problem": transcript.problem,
        "agents": [
            {
                "role": a.role.value,
                "label": a.label,
                "backend": a.backend,
                "model": a.model,
                "calls": a.turn_count,
            }
            for a in transcript.agents
        ],
        "turns": [
            {
                "role": _role_tag(t.role),
                "label": t.label,
                "kind": t.kind,
                "text": t.text,
                "timestamp": t.timestamp.isoformat(),
            }
            for t in transcript.turns
        ],
        "agreed": outcome.agreed,
        "conclusion": outcome.conclusion if outcome.agreed else NO_AGREEMENT,
        "messages_used": outcome.messages_used,
        "message_budget": outcome.message_budget,
    }


def export_json(
    transcript: Transcript,
    outcome: DebateOutcome,
    output_dir: Path,
    slug_override: str | None = None,
) -> Path:
    """Save the transcript as a JSON document. Returns the saved path."""
    output_dir.mkdir(parents=True, exist_ok=True)
    filepath = output_dir / _export_name(transcript, "json", slug_override)
    filepath.write_text(
        json.dumps(transcript_to_dict(transcript, outcome), indent=2, ensure_ascii=False),
        encoding="utf-8",
    )
    logger.info("Debate saved to: %s", filepath)
    return filepath
