"""Shared pytest fixtures."""

from pathlib import Path

import pytest

from config.config_loader import (
    AppConfig,
    DefaultsConfig,
    ModelConfig,
    PersonaConfig,
    PersonasConfig,
    PromptsConfig,
)
from duet.models import Context, DebateTurn, GenerationOptions, HistoryEntry, Memory, PersonaId, Query
from duet.personas import PersonaPair, personas_from_config
from duet.providers.base import GenerationClient, ProviderError


class MockClient(GenerationClient):
    """Test double GenerationClient.

    ``replies`` is consumed in order; once exhausted the last reply repeats.
    A reply that is an exception is raised from ``_complete`` so the real
    ``generate`` conversion logic runs.
    """

    def __init__(self, client_name: str = "mock", replies: list | None = None) -> None:
        self._name = client_name
        self._replies = list(replies) if replies is not None else ["Mock response"]
        self.calls: list[tuple[str, list[HistoryEntry], GenerationOptions]] = []

    def name(self) -> str:
        return self._name

    def model_string(self) -> str:
        return "mock-model"

    async def _complete(
        self,
        prompt: str,
        history: list[HistoryEntry],
        options: GenerationOptions,
    ) -> tuple[str, int | None]:
        self.calls.append((prompt, history, options))
        reply = self._replies.pop(0) if len(self._replies) > 1 else self._replies[0]
        if isinstance(reply, Exception):
            raise reply
        return reply, 10


def failing_client(name: str = "down") -> MockClient:
    return MockClient(name, [ProviderError(name, "503 Service Unavailable")])


@pytest.fixture
def sample_model_config() -> ModelConfig:
    return ModelConfig(
        name="primary",
        sdk="test",
        model="test-model-1",
        api_key_env="TEST_API_KEY",
        timeout_sec=30,
        max_tokens=1024,
        base_url=None,
    )


@pytest.fixture
def sample_prompts_config() -> PromptsConfig:
    return PromptsConfig(
        router="Route: {message} ({persona_a}/{persona_b})",
        debate_analysis="Debate? {message} | {persona}: {answer} | {persona_a} vs {persona_b}",
        rebuttal="Q: {question}\n{other} said: {last_turn}\nReply:",
        synthesis="Q: {question}\n{persona_a} & {persona_b}, {turn_count} turns:\n{full_transcript}\nMerge:",
        direct_answer_nudge="Answer directly.",
        apology="Sorry, I could not answer that.",
        list_instruction="Use a numbered list.",
        code_instruction="Use code blocks.",
    )


@pytest.fixture
def sample_defaults_config(tmp_path: Path) -> DefaultsConfig:
    return DefaultsConfig(
        turn_budget=3,
        consensus_threshold=3,
        output_dir=tmp_path / "transcripts",
    )


@pytest.fixture
def sample_personas_config() -> PersonasConfig:
    return PersonasConfig(
        a=PersonaConfig(name="Mi", role="empathetic", instruction="Be warm."),
        b=PersonaConfig(name="Ra", role="analytical", instruction="Be logical."),
        unified_name="Unified",
    )


@pytest.fixture
def personas(sample_personas_config: PersonasConfig) -> PersonaPair:
    return personas_from_config(sample_personas_config)


@pytest.fixture
def sample_app_config(
    sample_defaults_config: DefaultsConfig,
    sample_personas_config: PersonasConfig,
    sample_prompts_config: PromptsConfig,
) -> AppConfig:
    return AppConfig(
        defaults=sample_defaults_config,
        models={
            "primary": ModelConfig("primary", "gemini", "gemini-2.0-flash", "GEMINI_API_KEY", 30, 1024),
            "secondary": ModelConfig("secondary", "openai", "gpt-4o-mini", "OPENAI_API_KEY", 30, 1024),
        },
        personas=sample_personas_config,
        prompts=sample_prompts_config,
        available_tiers={"primary", "secondary"},
    )


@pytest.fixture
def sample_query() -> Query:
    return Query(
        text="Should I quit my job to start a business?",
        context=Context(
            memories=(Memory(kind="fact", content="User works as an accountant", importance=8),),
            location="Pune, India",
            date_time="Saturday 10:00",
            user_name="Sam",
        ),
        language="en",
    )


@pytest.fixture
def sample_turn() -> DebateTurn:
    return DebateTurn(
        persona=PersonaId.A,
        text="Follow what excites you, but keep a safety net.",
        sequence_number=1,
        emotion="excited",
        provider="primary",
    )


@pytest.fixture
def mock_client() -> MockClient:
    return MockClient()

