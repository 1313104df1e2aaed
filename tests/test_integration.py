"""Integration tests. Real API calls, no mocks. Requires .env with at least one tier key."""

import os
from pathlib import Path

import pytest
from dotenv import load_dotenv

load_dotenv()

# Skip entire module if no tier key is set
_AVAILABLE_KEYS = [k for k in ["GEMINI_API_KEY", "OPENAI_API_KEY"] if os.environ.get(k, "").strip()]
pytestmark = pytest.mark.integration

if not _AVAILABLE_KEYS:
    pytestmark = pytest.mark.skip(reason="Need GEMINI_API_KEY or OPENAI_API_KEY")


async def test_full_deliberation_pipeline(tmp_path: Path):
    """Run a real short deliberation with the available tiers, verify no crash."""
    from config.config_loader import load_config
    from duet.cli import _build_chain, _build_clients
    from duet.conversation import Conversation
    from duet.deliberation import build_orchestrator
    from duet.models import PersonaId, RoutingDecision
    from duet.output import save_to_file
    from duet.personas import personas_from_config

    config = load_config()
    config.defaults.turn_budget = 1
    clients = _build_clients(config)
    assert clients, "No clients could be built"

    orchestrator = build_orchestrator(config, _build_chain(clients))
    query = Conversation(user_name="Sam").build_query("Should I quit my job to start a business?")

    result = await orchestrator.run(query)

    assert result.routing is RoutingDecision.BOTH
    assert result.turns[0].persona is PersonaId.A
    assert result.turns[1].persona is PersonaId.B
    assert len(result.turns) <= 2 + 2 * 1 + 1
    assert result.final_answer.text.strip()
    assert [t.sequence_number for t in result.turns] == list(range(1, len(result.turns) + 1))

    personas = personas_from_config(config.personas)
    saved = save_to_file(query, result, personas, tmp_path / "output")
    content = saved.read_text(encoding="utf-8")
    assert "# Deliberation:" in content
    assert "## Final Answer" in content


async def test_greeting_is_single_turn():
    from config.config_loader import load_config
    from duet.cli import _build_chain, _build_clients
    from duet.deliberation import build_orchestrator
    from duet.models import Query, TerminalReason

    config = load_config()
    orchestrator = build_orchestrator(config, _build_chain(_build_clients(config)))

    result = await orchestrator.run(Query(text="hi"))

    assert len(result.turns) == 1
    assert result.terminal_reason is TerminalReason.SINGLE_PERSONA
    assert result.final_answer.text.strip()
