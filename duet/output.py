"""Rich console playback and markdown file save for deliberation results."""

import logging
import re
from datetime import datetime
from pathlib import Path

from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.rule import Rule
from rich.text import Text

from duet.models import DebateTurn, FinalResult, PersonaId, Query
from duet.personas import PersonaPair

logger = logging.getLogger(__name__)

console = Console(legacy_windows=False)

_STYLES = {
    PersonaId.A: "magenta",
    PersonaId.B: "cyan",
    PersonaId.UNIFIED: "green",
}


def _slug(text: str, max_len: int = 40) -> str:
    """Convert text to a filename-safe slug."""
    slug = re.sub(r"[^\w\s-]", "", text.lower())
    slug = re.sub(r"[\s_-]+", "-", slug).strip("-")
    return slug[:max_len]


def _turn_subtitle(turn: DebateTurn) -> str:
    parts = [f"#{turn.sequence_number}"]
    if turn.emotion:
        parts.append(turn.emotion)
    parts.append(turn.provider or "no provider")
    if turn.used_fallback and turn.provider:
        parts.append("fallback")
    return " · ".join(parts)


def print_turn(turn: DebateTurn, personas: PersonaPair) -> None:
    """Print one turn as it arrives."""
    console.print(
        Panel(
            turn.text,
            title=f"[bold]{personas.display_name(turn.persona)}[/bold]",
            subtitle=_turn_subtitle(turn),
            border_style=_STYLES[turn.persona],
        )
    )


def print_result(result: FinalResult, personas: PersonaPair) -> None:
    """Print the final answer with a one-line outcome summary."""
    console.print(Rule("[bold green]Final Answer[/bold green]"))
    console.print(
        Text(
            f"By: {personas.display_name(result.final_answer.persona)} | "
            f"Routing: {result.routing.value} | "
            f"Outcome: {result.terminal_reason.value} | "
            f"Consensus: {'yes' if result.consensus_reached else 'no'} | "
            f"Turns: {len(result.turns)} | "
            f"Duration: {result.duration_sec:.1f}s",
            style="dim",
        )
    )
    console.print(Markdown(result.final_answer.text))


def save_to_file(
    query: Query,
    result: FinalResult,
    personas: PersonaPair,
    output_dir: Path,
    slug_override: str | None = None,
) -> Path:
    """Save the full transcript as a markdown file, turns in playback order.

    Returns:
        Path to the saved file.
    """
    output_dir.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    slug = slug_override if slug_override is not None else _slug(query.text)
    filepath = output_dir / f"{timestamp}_{slug}.md"

    lines: list[str] = [
        f"# Deliberation: {query.text[:80]}",
        "",
        f"**Date:** {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}",
        f"**Routing:** {result.routing.value}",
        f"**Outcome:** {result.terminal_reason.value}",
        f"**Consensus:** {'yes' if result.consensus_reached else 'no'}",
        f"**Turns:** {len(result.turns)}",
        f"**Duration:** {result.duration_sec:.1f}s",
        "",
        "---",
        "",
    ]

    for turn in result.turns:
        lines.append(f"## {turn.sequence_number}. {personas.display_name(turn.persona)}")
        lines.append("")
        lines.append(turn.text)
        lines.append("")
        meta = f"*Emotion: {turn.emotion or 'n/a'} | Provider: {turn.provider or 'none'}"
        if turn.used_fallback:
            meta += " (fallback)"
        lines.append(meta + "*")
        lines.append("")

    lines += [
        f"## Final Answer (by {personas.display_name(result.final_answer.persona)})",
        "",
        result.final_answer.text,
        "",
    ]

    filepath.write_text("\n".join(lines), encoding="utf-8")
    logger.info("Transcript saved to: %s", filepath)
    return filepath
