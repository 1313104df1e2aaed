"""Tests for duet/providers/base.py and duet/providers/chain.py. No real API calls."""

import pytest

from duet.models import GenerationOptions, ReasonCode
from duet.providers.base import ProviderError, is_refusal
from duet.providers.chain import ProviderChain
from tests.conftest import MockClient, failing_client


@pytest.mark.parametrize(
    "text",
    [
        "I can't help with that request.",
        "I'm not able to discuss this.",
        "As an AI, I cannot provide medical advice.",
        "I'm sorry, but I won't do that.",
        "I must decline.",
    ],
)
def test_is_refusal_detects_refusals(text):
    assert is_refusal(text)


def test_is_refusal_ignores_normal_answers():
    assert not is_refusal("You can start by listing your savings and monthly costs.")


async def test_generate_ok():
    client = MockClient("primary", ["  Sounds good.  "])
    result = await client.generate("hello")
    assert result.ok
    assert result.text == "Sounds good."
    assert result.provider == "primary"
    assert result.reason is None
    assert result.token_count == 10


async def test_generate_maps_provider_error_to_unavailable():
    result = await failing_client("primary").generate("hello")
    assert result.ok is False
    assert result.reason is ReasonCode.UNAVAILABLE
    assert result.text == ""


async def test_generate_maps_timeout_reason():
    client = MockClient("primary", [ProviderError("primary", "Request timed out after 30s", ReasonCode.TIMEOUT)])
    result = await client.generate("hello")
    assert result.ok is False
    assert result.reason is ReasonCode.TIMEOUT


async def test_generate_never_raises_on_unexpected_error():
    client = MockClient("primary", [RuntimeError("socket closed")])
    result = await client.generate("hello")
    assert result.ok is False
    assert result.reason is ReasonCode.UNAVAILABLE


async def test_generate_flags_refusal():
    client = MockClient("primary", ["I'm sorry, but I can't help with that."])
    result = await client.generate("hello")
    assert result.ok is False
    assert result.reason is ReasonCode.REFUSED
    assert "can't help" in result.text


async def test_generate_treats_blank_text_as_unavailable():
    client = MockClient("primary", ["   "])
    result = await client.generate("hello")
    assert result.ok is False
    assert result.reason is ReasonCode.UNAVAILABLE


async def test_chain_returns_primary_when_ok():
    primary = MockClient("primary", ["Primary answer"])
    secondary = MockClient("secondary", ["Secondary answer"])
    chain = ProviderChain([primary, secondary])

    result, used_fallback = await chain.generate("q")

    assert result.text == "Primary answer"
    assert used_fallback is False
    assert secondary.calls == []


async def test_chain_falls_back_on_refusal_with_nudge():
    primary = MockClient("primary", ["I cannot help with that."])
    secondary = MockClient("secondary", ["Here is a direct answer."])
    chain = ProviderChain([primary, secondary])

    result, used_fallback = await chain.generate(
        "q",
        options=GenerationOptions(system_instruction="Be warm."),
        nudge="Answer directly.",
    )

    assert result.ok
    assert result.provider == "secondary"
    assert used_fallback is True
    _, _, options = secondary.calls[0]
    assert options.system_instruction.startswith("Be warm.")
    assert options.system_instruction.endswith("Answer directly.")
    # the primary tier never sees the nudge
    _, _, primary_options = primary.calls[0]
    assert "Answer directly." not in primary_options.system_instruction


async def test_chain_returns_last_failure_when_all_fail():
    chain = ProviderChain([failing_client("primary"), failing_client("secondary")])
    result, used_fallback = await chain.generate("q")
    assert result.ok is False
    assert result.provider == "secondary"
    assert used_fallback is True


def test_chain_requires_a_client():
    with pytest.raises(ValueError):
        ProviderChain([])


async def test_chain_with_no_clients_left_raises():
    chain = ProviderChain([MockClient("primary")])
    chain._clients.clear()
    with pytest.raises(RuntimeError, match="no clients"):
        await chain.generate("q")
