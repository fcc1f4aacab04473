"""Click CLI — orchestrates config loading, agent selection, the debate, chat and export."""

import asyncio
import logging
import sys
import tempfile
from pathlib import Path

import click
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler

from config.config_loader import MIN_MESSAGE_BUDGET, AppConfig, load_config, validate_message_budget
from src.agents import AgentSetupError, build_adapters, build_agents, choose_backends
from src.backends.base import AgentError, RateLimitExhausted, RoundZeroError
from src.chat import chat_with_agent
from src.debate import DebateEngine
from src.extension import ExtensionDecision, ExtensionPrompt
from src.gateway import AgentGateway, RetryPolicy
from src.models import DebateOutcome, DebateState, Role, Turn
from src.output import console, export_json, print_banner, print_outcome, print_turn, save_to_file
from src.problem import parse_problem_file, read_system_prompt
from src.sessions import SessionRegistry

logger = logging.getLogger(__name__)

_err_console = Console(stderr=True, legacy_windows=False)


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=_err_console, rich_tracebacks=True, show_path=False)],
    )


def _interactive() -> bool:
    return sys.stdin.isatty()


def _problem_from_editor() -> str:
    """Open the user's editor for a multi-line problem statement."""
    if not _interactive():
        console.print("[bold red]Error:[/bold red] No problem provided. Pass PROBLEM or --file.")
        sys.exit(1)
    console.print("No problem provided. Opening your editor...")
    text = click.edit("") or ""
    if not text.strip():
        console.print("[bold red]Error:[/bold red] No problem provided. Aborting.")
        sys.exit(1)
    return text.strip()


def _select_models(
    config: AppConfig,
    backends: set[str],
    requested: dict[str, str | None],
) -> dict[str, str]:
    """Resolve one model per backend in use. Prompts for any not given on the command line."""
    models: dict[str, str] = {}
    for backend in sorted(backends):
        choices = config.backends[backend].models
        model = requested.get(backend)
        if not model:
            if _interactive():
                model = click.prompt(
                    f"Select {config.backends[backend].label} model",
                    type=click.Choice(choices),
                    default=choices[0],
                )
            else:
                model = choices[0]
        models[backend] = model
    return models


def _extension_prompt(increment: int) -> ExtensionPrompt | None:
    if not _interactive():
        return None

    def ask(state: DebateState) -> ExtensionDecision | None:
        console.print(f"\n[yellow]Message budget spent ({state.message_count}/{state.message_budget}).[/yellow]")
        if not click.confirm(f"Extend the debate by {increment} messages?", default=False):
            return None
        context = click.prompt(
            "Additional context for both agents (empty for none)",
            default="",
            show_default=False,
        )
        return ExtensionDecision(increment=increment, context=context or None)

    return ask


def _report_failure(exc: AgentError) -> None:
    cause = exc.cause if isinstance(exc, RoundZeroError) else exc
    console.print(f"[bold red]Error:[/bold red] {exc}")
    if isinstance(cause, RateLimitExhausted):
        console.print(f"[dim]{cause.label}: {cause.attempts} attempts made[/dim]")


def _chat_loop(gateway: AgentGateway, engine: DebateEngine) -> None:
    if not _interactive():
        return
    while click.confirm("\nChat with one of the agents?", default=False):
        choice = click.prompt("Agent", type=click.Choice(["A", "B"], case_sensitive=False), default="A")
        agent = engine.agent(Role(choice.upper()))
        text = click.prompt(f"Message for {agent.label}")
        try:
            asyncio.run(chat_with_agent(gateway, agent, text, engine.transcript))
        except AgentError as exc:
            _report_failure(exc)
            return


def _export(
    engine: DebateEngine,
    outcome: DebateOutcome,
    export: bool | None,
    export_format: str,
    output_dir: Path,
    slug_override: str | None,
) -> None:
    if export is None:
        export = _interactive() and click.confirm("Export transcript?", default=False)
    if not export:
        return
    if export_format == "json":
        saved = export_json(engine.transcript, outcome, output_dir, slug_override=slug_override)
    else:
        saved = save_to_file(engine.transcript, outcome, output_dir, slug_override=slug_override)
    console.print(f"\n[dim]Saved to: {saved}[/dim]")


@click.command()
@click.argument("problem", nargs=-1)
@click.option("--file", "problem_file", type=click.Path(exists=True, dir_okay=False),
              help="Read the problem from a .md file (frontmatter may set max_messages, critical)")
@click.option("--max-messages", "--max-rounds", "max_messages", default=None,
              type=click.IntRange(min=MIN_MESSAGE_BUDGET),
              help="Max number of messages (default: from config)")
@click.option("--timeout", "timeout_sec", default=None, type=click.IntRange(min=1),
              help="Per-call timeout in seconds (default: from config)")
@click.option("--max-retries", default=None, type=click.IntRange(min=0),
              help="Retries for rate-limited calls (default: from config)")
@click.option("--retry-delay", default=None, type=click.IntRange(min=1),
              help="Base delay in seconds for retry backoff (default: from config)")
@click.option("--system-prompt-file", type=click.Path(dir_okay=False), default=None,
              help="Read the opening instructions from a file")
@click.option("--claude-model", default=None, help="Claude model (haiku, sonnet, opus)")
@click.option("--codex-model", default=None, help="Codex model (gpt-5.1-codex-mini, gpt-5.2-codex)")
@click.option("--gemini-model", default=None, help="Gemini model (gemini-2.5-flash, gemini-3-flash-preview)")
@click.option("--critical", is_flag=True, default=False,
              help="Ask the confirming agent for a critical review before agreeing")
@click.option("--output", "output_path", default=None, help="Export directory (default: from config)")
@click.option("--export/--no-export", default=None, help="Export the transcript without asking")
@click.option("--format", "export_format", type=click.Choice(["md", "json"]), default=None,
              help="Transcript export format (default: from config)")
@click.option("--debug", is_flag=True, help="Keep raw agent responses in a temp directory")
@click.option("--verbose", is_flag=True, help="Enable DEBUG-level logging")
def main(
    problem: tuple[str, ...],
    problem_file: str | None,
    max_messages: int | None,
    timeout_sec: int | None,
    max_retries: int | None,
    retry_delay: int | None,
    system_prompt_file: str | None,
    claude_model: str | None,
    codex_model: str | None,
    gemini_model: str | None,
    critical: bool,
    output_path: str | None,
    export: bool | None,
    export_format: str | None,
    debug: bool,
    verbose: bool,
) -> None:
    """AI Debate -- two AI agents argue a problem until they agree.

    \b
    Examples:
      python -m src.cli "Why does this regex backtrack?"
      python -m src.cli --max-messages 6 --claude-model sonnet "Tabs or spaces?"
      python -m src.cli --file problem.md --critical --export
    """
    load_dotenv()
    _setup_logging(verbose)

    try:
        config = load_config()
    except (FileNotFoundError, ValueError) as exc:
        console.print(f"[bold red]Config error:[/bold red] {exc}")
        sys.exit(1)

    meta: dict = {}
    slug_override: str | None = None
    if problem_file:
        try:
            problem_text, meta = parse_problem_file(Path(problem_file))
            if "max_messages" in meta:
                meta["max_messages"] = validate_message_budget(int(meta["max_messages"]), "frontmatter max_messages")
        except (ValueError, TypeError) as exc:
            console.print(f"[bold red]Error:[/bold red] {exc}")
            sys.exit(1)
        slug_override = Path(problem_file).stem
    elif problem:
        problem_text = " ".join(problem)
    else:
        problem_text = _problem_from_editor()

    # CLI flags always win; frontmatter only fills in when CLI flag not set
    effective_budget = (
        max_messages if max_messages is not None
        else meta["max_messages"] if "max_messages" in meta
        else config.defaults.max_messages
    )
    effective_critical = critical or bool(meta.get("critical", False))
    effective_timeout = timeout_sec if timeout_sec is not None else config.defaults.timeout_sec
    effective_retries = max_retries if max_retries is not None else config.defaults.max_retries
    effective_delay = retry_delay if retry_delay is not None else config.defaults.retry_base_delay_sec
    effective_output = Path(output_path) if output_path else config.defaults.output_dir
    effective_format = export_format or config.defaults.export_format

    system_prompt: str | None = None
    if system_prompt_file:
        try:
            system_prompt = read_system_prompt(Path(system_prompt_file))
        except FileNotFoundError as exc:
            console.print(f"[bold red]Error:[/bold red] {exc}")
            sys.exit(1)

    try:
        backend_a, backend_b = choose_backends(config.available_backends)
        models = _select_models(
            config,
            {backend_a, backend_b},
            {"claude": claude_model, "codex": codex_model, "gemini": gemini_model},
        )
        agent_a, agent_b = build_agents(config, backend_a, backend_b, models)
    except AgentSetupError as exc:
        console.print(f"[bold red]Error:[/bold red] {exc}")
        sys.exit(1)

    debug_dir: Path | None = None
    if debug:
        debug_dir = Path(tempfile.mkdtemp(prefix="aidebate-"))
        console.print(f"[dim]Debug: raw responses in {debug_dir}[/dim]")

    gateway = AgentGateway(
        adapters=build_adapters(config, {backend_a, backend_b}),
        sessions=SessionRegistry(),
        timeout_sec=effective_timeout,
        retry_policy=RetryPolicy(max_retries=effective_retries, base_delay=effective_delay),
        debug_dir=debug_dir,
    )
    engine = DebateEngine(
        gateway=gateway,
        agent_a=agent_a,
        agent_b=agent_b,
        prompts=config.prompts,
        problem=problem_text,
        message_budget=effective_budget,
        system_prompt=system_prompt,
        critical=effective_critical,
    )

    print_banner(agent_a, agent_b, problem_text, effective_budget)
    shown = 0

    def on_turn(turn: Turn) -> None:
        nonlocal shown
        if turn.kind != "chat":
            shown += 1
        print_turn(turn, shown, engine.state.message_budget)

    engine.transcript.subscribe(on_turn)

    try:
        outcome = asyncio.run(engine.run(_extension_prompt(config.defaults.extension_increment)))
    except AgentError as exc:
        _report_failure(exc)
        sys.exit(1)

    print_outcome(outcome, {Role.A: agent_a, Role.B: agent_b})
    _chat_loop(gateway, engine)
    _export(engine, outcome, export, effective_format, effective_output, slug_override)
    if debug_dir is not None:
        console.print(f"[dim]Debug files: {debug_dir}/[/dim]")


if __name__ == "__main__":
    main()
