"""Click CLI: loads config, builds the provider chain, runs deliberations."""

import asyncio
import logging
import signal
import sys
from pathlib import Path

import click
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler

from config.config_loader import TIERS, AppConfig, load_config
from duet.conversation import Conversation
from duet.deliberation import DeliberationOrchestrator, build_orchestrator
from duet.healthcheck import run_health_checks
from duet.models import DebateTurn, FinalResult, Query
from duet.output import print_result, print_turn, save_to_file
from duet.personas import personas_from_config
from duet.providers.anthropic import AnthropicClient
from duet.providers.base import GenerationClient
from duet.providers.chain import ProviderChain
from duet.providers.gemini import GeminiClient
from duet.providers.openai_provider import OpenAIClient
from duet.query_file import load_query

logger = logging.getLogger(__name__)

console = Console(legacy_windows=False)

CLIENT_CLASSES: dict[str, type[GenerationClient]] = {
    "gemini": GeminiClient,
    "openai": OpenAIClient,
    "anthropic": AnthropicClient,
}

_EXIT_WORDS = {"exit", "quit", ":q"}


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
    )


def _build_clients(config: AppConfig) -> dict[str, GenerationClient]:
    """Build a client for every tier that has an API key. Keyed by tier name."""
    clients: dict[str, GenerationClient] = {}
    for tier in TIERS:
        if tier not in config.available_tiers:
            continue
        model_cfg = config.models[tier]
        if model_cfg.sdk not in CLIENT_CLASSES:
            logging.warning("Tier '%s' uses unknown sdk '%s', skipping", tier, model_cfg.sdk)
            continue
        try:
            clients[tier] = CLIENT_CLASSES[model_cfg.sdk](model_cfg)
        except Exception as exc:
            logging.warning("Failed to instantiate tier '%s': %s", tier, exc)
    return clients


def _build_chain(clients: dict[str, GenerationClient]) -> ProviderChain:
    """Order clients primary first. Raises ValueError when there are none."""
    return ProviderChain([clients[t] for t in TIERS if t in clients])


def _check_and_filter_clients(clients: dict[str, GenerationClient]) -> dict[str, GenerationClient]:
    """Run health checks, print results, and ask what to do on failures.

    Returns the working clients. Exits if the user declines to continue or
    nothing passes.
    """
    console.print("\n[bold]Checking providers...[/bold]")
    results: dict[str, tuple[bool, str]] = asyncio.run(run_health_checks(clients))

    failed_names: list[str] = []
    for name in TIERS:
        if name not in results:
            continue
        ok, err = results[name]
        if ok:
            console.print(f"  [green]OK  [/green] {name}")
        else:
            short_err = err.splitlines()[0][:120] if err else "unknown error"
            console.print(f"  [red]FAIL[/red] {name}: {short_err}")
            failed_names.append(name)

    if not failed_names:
        console.print()
        return clients

    working = {n: c for n, c in clients.items() if n not in failed_names}
    if not working:
        console.print("\n[bold red]Error:[/bold red] No providers passed the health check.")
        sys.exit(1)

    console.print(f"\n[yellow]Failed:[/yellow] {', '.join(failed_names)}")
    if not click.confirm("Continue without fallback?", default=True):
        sys.exit(0)

    console.print()
    return working


async def _answer(
    orchestrator: DeliberationOrchestrator,
    query: Query,
    on_turn,
) -> FinalResult:
    """Run one deliberation; Ctrl-C ends it gracefully between turns."""
    cancel_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, cancel_event.set)
        handler_installed = True
    except (NotImplementedError, RuntimeError):
        # Windows event loops do not support signal handlers.
        handler_installed = False
    try:
        return await orchestrator.run(query, cancel_event=cancel_event, on_turn=on_turn)
    finally:
        if handler_installed:
            loop.remove_signal_handler(signal.SIGINT)


async def _run_single(
    query: Query,
    config: AppConfig,
    orchestrator: DeliberationOrchestrator,
    output_dir: Path | None,
    slug_override: str | None = None,
) -> FinalResult:
    personas = personas_from_config(config.personas)
    console.print(f"\n[bold cyan]duet[/bold cyan]: {personas.a.name} & {personas.b.name}")
    console.print(f"Question: [italic]{query.text[:80]}{'...' if len(query.text) > 80 else ''}[/italic]\n")

    def on_turn(turn: DebateTurn) -> None:
        print_turn(turn, personas)

    result = await _answer(orchestrator, query, on_turn)
    print_result(result, personas)

    if output_dir is not None:
        saved_path = save_to_file(query, result, personas, output_dir, slug_override=slug_override)
        console.print(f"\n[dim]Saved to: {saved_path}[/dim]")
    return result


async def _run_interactive(
    config: AppConfig,
    orchestrator: DeliberationOrchestrator,
    user_name: str | None,
) -> None:
    """Multi-turn chat; history and the pending question carry between queries."""
    personas = personas_from_config(config.personas)
    conversation = Conversation(user_name=user_name)
    console.print("[dim]Type 'exit' to leave. Ctrl-C stops a running debate.[/dim]")

    def on_turn(turn: DebateTurn) -> None:
        print_turn(turn, personas)

    while True:
        text = await asyncio.to_thread(click.prompt, "You", default="", show_default=False)
        text = text.strip()
        if not text or text.lower() in _EXIT_WORDS:
            return
        query = conversation.build_query(text)
        result = await _answer(orchestrator, query, on_turn)
        conversation.record(query, result, personas.display_name(result.final_answer.persona))


@click.command()
@click.argument("question", required=False)
@click.option("--file", "query_file", type=click.Path(exists=True), help="Read query and context from a .md file")
@click.option("--interactive", is_flag=True, help="Chat continuously, keeping conversation history")
@click.option("--turn-budget", default=None, type=int, help="Maximum debate rounds (default: from config)")
@click.option("--output", "output_path", default=None, help="Transcript directory (default: from config)")
@click.option("--no-save", is_flag=True, default=False, help="Do not write a transcript file")
@click.option("--user-name", default=None, help="Name to address the user by")
@click.option("--verbose", is_flag=True, help="Enable DEBUG-level logging")
@click.option("--skip-health-check", is_flag=True, default=False,
              help="Skip the API connectivity check at startup")
def main(
    question: str | None,
    query_file: str | None,
    interactive: bool,
    turn_budget: int | None,
    output_path: str | None,
    no_save: bool,
    user_name: str | None,
    verbose: bool,
    skip_health_check: bool,
) -> None:
    """duet -- two personas, one answer.

    \b
    Examples:
      duet "hi"
      duet "Should I quit my job to start a business?"
      duet --file query.md --turn-budget 4
      duet --interactive --user-name Sam
    """
    # Model responses can contain characters the Windows ANSI path cannot encode.
    if sys.platform == "win32":
        if hasattr(sys.stdout, "reconfigure"):
            sys.stdout.reconfigure(encoding="utf-8", errors="replace")
        if hasattr(sys.stderr, "reconfigure"):
            sys.stderr.reconfigure(encoding="utf-8", errors="replace")

    load_dotenv()
    _setup_logging(verbose)

    try:
        config = load_config()
    except (FileNotFoundError, KeyError) as exc:
        console.print(f"[bold red]Config error:[/bold red] {exc}")
        sys.exit(1)

    if turn_budget is not None:
        if turn_budget < 1:
            console.print("[bold red]Error:[/bold red] --turn-budget must be at least 1.")
            sys.exit(1)
        config.defaults.turn_budget = turn_budget

    clients = _build_clients(config)
    if not clients:
        console.print("[bold red]Error:[/bold red] No providers available. Check API keys in .env.")
        sys.exit(1)

    if not skip_health_check:
        clients = _check_and_filter_clients(clients)

    orchestrator = build_orchestrator(config, _build_chain(clients))
    output_dir = None if no_save else (Path(output_path) if output_path else config.defaults.output_dir)

    if interactive:
        asyncio.run(_run_interactive(config, orchestrator, user_name))
        return

    if query_file:
        try:
            query = load_query(Path(query_file))
        except ValueError as exc:
            console.print(f"[bold red]Error:[/bold red] {exc}")
            sys.exit(1)
        slug = Path(query_file).stem
    elif question:
        query = Conversation(user_name=user_name).build_query(question)
        slug = None
    else:
        console.print("[bold red]Error:[/bold red] Provide a QUESTION argument, --file, or --interactive.")
        sys.exit(1)

    asyncio.run(_run_single(query, config, orchestrator, output_dir, slug_override=slug))


if __name__ == "__main__":
    main()
