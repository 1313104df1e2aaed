"""OpenAI-compatible client using openai SDK with native async."""

import asyncio
import logging
import os

from openai import AsyncOpenAI

from config.config_loader import ModelConfig
from duet.models import GenerationOptions, HistoryEntry, ReasonCode
from duet.providers.base import GenerationClient, ProviderError

logger = logging.getLogger(__name__)


def _to_messages(
    prompt: str,
    history: list[HistoryEntry],
    system_instruction: str | None,
) -> list[dict[str, str]]:
    messages: list[dict[str, str]] = []
    if system_instruction:
        messages.append({"role": "system", "content": system_instruction})
    for entry in history:
        role = "user" if entry.speaker == "user" else "assistant"
        messages.append({"role": role, "content": entry.text})
    messages.append({"role": "user", "content": prompt})
    return messages


class OpenAIClient(GenerationClient):
    """OpenAI client via openai SDK. ``base_url`` selects any compatible API."""

    def __init__(self, config: ModelConfig) -> None:
        self._config = config
        api_key = os.environ.get(config.api_key_env, "").strip()
        if not api_key:
            raise ProviderError(config.name, f"Missing API key: {config.api_key_env}")
        if config.base_url:
            self._client = AsyncOpenAI(api_key=api_key, base_url=config.base_url)
        else:
            self._client = AsyncOpenAI(api_key=api_key)

    def name(self) -> str:
        return self._config.name

    def model_string(self) -> str:
        return self._config.model

    async def _complete(
        self,
        prompt: str,
        history: list[HistoryEntry],
        options: GenerationOptions,
    ) -> tuple[str, int | None]:
        try:
            response = await asyncio.wait_for(
                self._client.chat.completions.create(
                    model=self._config.model,
                    messages=_to_messages(prompt, history, options.system_instruction),
                    temperature=options.temperature,
                    max_tokens=options.max_tokens or self._config.max_tokens,
                ),
                timeout=self._config.timeout_sec,
            )
        except TimeoutError as exc:
            raise ProviderError(
                self._config.name,
                f"Request timed out after {self._config.timeout_sec}s",
                ReasonCode.TIMEOUT,
            ) from exc
        except Exception as exc:
            raise ProviderError(self._config.name, f"API call failed: {exc}") from exc

        choice = response.choices[0] if response.choices else None
        if not choice or not choice.message.content:
            raise ProviderError(self._config.name, "Empty response content")

        token_count: int | None = None
        if response.usage:
            token_count = response.usage.total_tokens

        logger.info("OpenAI %s: %s tokens", self._config.model, token_count)
        return choice.message.content, token_count
