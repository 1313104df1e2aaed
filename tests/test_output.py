"""Tests for duet/output.py."""

from pathlib import Path

import pytest

from duet.models import DebateTurn, FinalResult, PersonaId, Query, RoutingDecision, TerminalReason
from duet.output import _slug, _turn_subtitle, print_result, save_to_file


def test_slug_basic():
    assert _slug("Should I quit my job?") == "should-i-quit-my-job"


def test_slug_max_len():
    assert len(_slug("a" * 100)) <= 40


def test_slug_special_chars():
    result = _slug("Rent vs. buy (2025)")
    assert "." not in result
    assert "(" not in result
    assert ")" not in result


def test_turn_subtitle_marks_fallback():
    turn = DebateTurn(PersonaId.B, "Save first.", 2, emotion="neutral", provider="secondary", used_fallback=True)
    assert _turn_subtitle(turn) == "#2 · neutral · secondary · fallback"


@pytest.fixture
def sample_result() -> FinalResult:
    turns = (
        DebateTurn(PersonaId.A, "Follow what excites you.", 1, emotion="excited", provider="primary"),
        DebateTurn(PersonaId.B, "Check six months of runway.", 2, emotion="neutral", provider="secondary", used_fallback=True),
        DebateTurn(PersonaId.UNIFIED, "Test the idea on weekends first.", 3, provider="primary"),
    )
    return FinalResult(
        turns=turns,
        final_answer=turns[-1],
        consensus_reached=False,
        routing=RoutingDecision.BOTH,
        terminal_reason=TerminalReason.NO_DEBATE,
        duration_sec=4.2,
    )


def test_save_to_file_creates_file(tmp_path: Path, sample_query: Query, sample_result, personas):
    saved = save_to_file(sample_query, sample_result, personas, tmp_path / "output")
    assert saved.exists()
    assert saved.suffix == ".md"


def test_save_to_file_creates_output_dir(tmp_path: Path, sample_query, sample_result, personas):
    output_dir = tmp_path / "nested" / "output"
    assert not output_dir.exists()
    save_to_file(sample_query, sample_result, personas, output_dir)
    assert output_dir.exists()


def test_save_to_file_content(tmp_path: Path, sample_query, sample_result, personas):
    content = save_to_file(sample_query, sample_result, personas, tmp_path).read_text(encoding="utf-8")
    assert "# Deliberation: Should I quit my job" in content
    assert "**Routing:** both" in content
    assert "**Outcome:** no_debate" in content
    assert "**Consensus:** no" in content
    assert "## 1. Mi" in content
    assert "## 2. Ra" in content
    assert "## 3. Unified" in content
    assert "(fallback)" in content
    assert "## Final Answer (by Unified)" in content


def test_save_to_file_turns_in_order(tmp_path: Path, sample_query, sample_result, personas):
    content = save_to_file(sample_query, sample_result, personas, tmp_path).read_text(encoding="utf-8")
    assert content.index("## 1. Mi") < content.index("## 2. Ra") < content.index("## 3. Unified")


def test_save_to_file_filename_has_slug(tmp_path: Path, sample_query, sample_result, personas):
    saved = save_to_file(sample_query, sample_result, personas, tmp_path)
    assert "should-i-quit" in saved.name


def test_save_to_file_slug_override(tmp_path: Path, sample_query, sample_result, personas):
    saved = save_to_file(sample_query, sample_result, personas, tmp_path, slug_override="career")
    assert saved.name.endswith("_career.md")


def test_print_result_shows_final_answer(sample_result, personas, capsys):
    print_result(sample_result, personas)
    out = capsys.readouterr().out
    assert "Test the idea on weekends first." in out
    assert "Outcome: no_debate" in out
