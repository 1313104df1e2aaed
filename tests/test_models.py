"""Tests for duet/models.py dataclasses."""

import dataclasses

import pytest

from duet.models import (
    Context,
    DebateTurn,
    FinalResult,
    GuardVerdict,
    PersonaId,
    Query,
    RoutingDecision,
    TerminalReason,
)


def test_query_defaults():
    q = Query(text="hi")
    assert q.context == Context()
    assert q.language is None
    assert q.history == ()


def test_query_is_immutable():
    q = Query(text="hi")
    with pytest.raises(dataclasses.FrozenInstanceError):
        q.text = "hello"  # type: ignore[misc]


def test_debate_turn_is_immutable(sample_turn):
    with pytest.raises(dataclasses.FrozenInstanceError):
        sample_turn.text = "changed"  # type: ignore[misc]


def test_debate_turn_optional_fields():
    turn = DebateTurn(persona=PersonaId.B, text="Check the numbers.", sequence_number=2)
    assert turn.emotion is None
    assert turn.provider is None
    assert turn.used_fallback is False


def test_guard_verdict_defaults_to_clear():
    verdict = GuardVerdict()
    assert not verdict.is_loop
    assert not verdict.is_agreement
    assert verdict.rule is None


def test_final_result_fields(sample_turn):
    result = FinalResult(
        turns=(sample_turn,),
        final_answer=sample_turn,
        consensus_reached=False,
        routing=RoutingDecision.PERSONA_A,
        terminal_reason=TerminalReason.SINGLE_PERSONA,
    )
    assert result.final_answer is sample_turn
    assert result.duration_sec == 0.0
