"""Abstract base for all text-generation clients."""

import logging
import re
import time
from abc import ABC, abstractmethod

from duet.models import GenerationOptions, GenerationResult, HistoryEntry, ReasonCode

logger = logging.getLogger(__name__)

_REFUSAL_PATTERNS = [
    re.compile(p, re.IGNORECASE)
    for p in (
        r"i can'?t (help|assist|provide|generate|create|discuss|analyze)",
        r"i'?m not able to",
        r"i cannot (help|assist|provide|generate|create|discuss|analyze)",
        r"as an ai,? i (can'?t|cannot|am not able to)",
        r"i'?m sorry,? but i (can'?t|cannot|won'?t)",
        r"this (request|topic|content) (is|goes) (against|beyond)",
        r"i don'?t (feel comfortable|think i should)",
        r"my (guidelines|policies|safety) (prevent|don'?t allow)",
        r"i'?m designed to (avoid|not|refuse)",
        r"violates? (my|content) (policies|guidelines)",
        r"i must (decline|refuse)",
    )
]


def is_refusal(text: str) -> bool:
    """Heuristic: does the generated text read like a provider refusal?"""
    return any(p.search(text) for p in _REFUSAL_PATTERNS)


class ProviderError(Exception):
    """Raised inside a client when a provider call fails."""

    def __init__(
        self,
        provider_name: str,
        message: str,
        reason: ReasonCode = ReasonCode.UNAVAILABLE,
    ) -> None:
        self.provider_name = provider_name
        self.reason = reason
        super().__init__(f"[{provider_name}] {message}")


class GenerationClient(ABC):
    """Abstract base for all text-generation providers.

    Subclasses implement ``_complete``; callers only ever use ``generate``,
    which never raises on provider-side failure.
    """

    @abstractmethod
    def name(self) -> str:
        """Return the short client name (e.g. 'primary', 'secondary')."""
        ...

    @abstractmethod
    def model_string(self) -> str:
        """Return the actual model identifier string."""
        ...

    @abstractmethod
    async def _complete(
        self,
        prompt: str,
        history: list[HistoryEntry],
        options: GenerationOptions,
    ) -> tuple[str, int | None]:
        """Run one provider call.

        Returns:
            (text, token_count)

        Raises:
            ProviderError: On API failure, timeout, or empty response.
        """
        ...

    async def generate(
        self,
        prompt: str,
        history: list[HistoryEntry] | None = None,
        options: GenerationOptions | None = None,
    ) -> GenerationResult:
        """Generate text for the prompt. Failures come back as ok=False."""
        options = options or GenerationOptions()
        start = time.monotonic()
        try:
            text, token_count = await self._complete(prompt, list(history or []), options)
        except ProviderError as exc:
            logger.warning("Provider %s failed (%s): %s", self.name(), exc.reason.value, exc)
            return self._failure(exc.reason, start)
        except Exception as exc:
            logger.warning("Provider %s unexpected failure: %s", self.name(), exc)
            return self._failure(ReasonCode.UNAVAILABLE, start)

        latency = time.monotonic() - start

        if not text or not text.strip():
            logger.warning("Provider %s returned empty text", self.name())
            return self._failure(ReasonCode.UNAVAILABLE, start)

        if is_refusal(text):
            logger.info("Provider %s refused: %.80s", self.name(), text)
            return GenerationResult(
                text=text,
                ok=False,
                provider=self.name(),
                model=self.model_string(),
                reason=ReasonCode.REFUSED,
                latency_sec=latency,
                token_count=token_count,
            )

        return GenerationResult(
            text=text.strip(),
            ok=True,
            provider=self.name(),
            model=self.model_string(),
            latency_sec=latency,
            token_count=token_count,
        )

    def _failure(self, reason: ReasonCode, start: float) -> GenerationResult:
        return GenerationResult(
            text="",
            ok=False,
            provider=self.name(),
            model=self.model_string(),
            reason=reason,
            latency_sec=time.monotonic() - start,
        )
