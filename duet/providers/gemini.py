"""Gemini client using google-genai SDK with native async."""

import asyncio
import logging
import os

from google import genai
from google.genai import types as genai_types

from config.config_loader import ModelConfig
from duet.models import GenerationOptions, HistoryEntry, ReasonCode
from duet.providers.base import GenerationClient, ProviderError

logger = logging.getLogger(__name__)

_SAFETY_CATEGORIES = (
    "HARM_CATEGORY_HARASSMENT",
    "HARM_CATEGORY_HATE_SPEECH",
    "HARM_CATEGORY_SEXUALLY_EXPLICIT",
    "HARM_CATEGORY_DANGEROUS_CONTENT",
)


def _to_contents(prompt: str, history: list[HistoryEntry]) -> list[genai_types.Content]:
    contents = [
        genai_types.Content(
            role="user" if entry.speaker == "user" else "model",
            parts=[genai_types.Part(text=entry.text)],
        )
        for entry in history
    ]
    contents.append(genai_types.Content(role="user", parts=[genai_types.Part(text=prompt)]))
    return contents


class GeminiClient(GenerationClient):
    """Google Gemini client via google-genai SDK."""

    def __init__(self, config: ModelConfig) -> None:
        self._config = config
        api_key = os.environ.get(config.api_key_env, "").strip()
        if not api_key:
            raise ProviderError(config.name, f"Missing API key: {config.api_key_env}")
        self._client = genai.Client(api_key=api_key)

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
                self._client.aio.models.generate_content(
                    model=self._config.model,
                    contents=_to_contents(prompt, history),
                    config=genai_types.GenerateContentConfig(
                        system_instruction=options.system_instruction,
                        temperature=options.temperature,
                        max_output_tokens=options.max_tokens or self._config.max_tokens,
                        top_p=0.95,
                        top_k=40,
                        safety_settings=[
                            genai_types.SafetySetting(category=c, threshold="BLOCK_ONLY_HIGH")
                            for c in _SAFETY_CATEGORIES
                        ],
                    ),
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

        if not response.text:
            raise ProviderError(self._config.name, "Empty response text")

        token_count: int | None = None
        if response.usage_metadata:
            token_count = response.usage_metadata.total_token_count

        logger.info("Gemini %s: %s tokens", self._config.model, token_count)
        return response.text, token_count
