"""Anthropic Claude client using anthropic SDK with native async."""

import asyncio
import logging
import os

import anthropic as anthropic_sdk

from config.config_loader import ModelConfig
from duet.models import GenerationOptions, HistoryEntry, ReasonCode
from duet.providers.base import GenerationClient, ProviderError

logger = logging.getLogger(__name__)


def _to_messages(prompt: str, history: list[HistoryEntry]) -> list[dict[str, str]]:
    """Build an alternating user/assistant message list.

    The Messages API rejects two consecutive turns with the same role, so
    adjacent entries of the same role are merged.
    """
    messages: list[dict[str, str]] = []
    for role, text in [
        ("user" if e.speaker == "user" else "assistant", e.text) for e in history
    ] + [("user", prompt)]:
        if messages and messages[-1]["role"] == role:
            messages[-1]["content"] += "\n\n" + text
        else:
            messages.append({"role": role, "content": text})
    if messages[0]["role"] != "user":
        messages.insert(0, {"role": "user", "content": "(conversation so far)"})
    return messages


class AnthropicClient(GenerationClient):
    """Anthropic Claude client via anthropic SDK."""

    def __init__(self, config: ModelConfig) -> None:
        self._config = config
        api_key = os.environ.get(config.api_key_env, "").strip()
        if not api_key:
            raise ProviderError(config.name, f"Missing API key: {config.api_key_env}")
        self._client = anthropic_sdk.AsyncAnthropic(api_key=api_key)

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
        kwargs = {
            "model": self._config.model,
            "max_tokens": options.max_tokens or self._config.max_tokens,
            "temperature": options.temperature,
            "messages": _to_messages(prompt, history),
        }
        if options.system_instruction:
            kwargs["system"] = options.system_instruction
        try:
            response = await asyncio.wait_for(
                self._client.messages.create(**kwargs),
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

        if not response.content:
            raise ProviderError(self._config.name, "Empty response content")

        text_blocks = [b.text for b in response.content if b.type == "text"]
        if not text_blocks:
            raise ProviderError(self._config.name, "No text blocks in response")

        token_count: int | None = None
        if response.usage:
            token_count = response.usage.input_tokens + response.usage.output_tokens

        logger.info("Anthropic %s: %s tokens", self._config.model, token_count)
        return "\n".join(text_blocks), token_count
