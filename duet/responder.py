"""PersonaResponder: one persona's answer, with refusal fallback. Never fails."""

import logging
import re

from config.config_loader import DefaultsConfig, PromptsConfig
from duet.language import detect_language, language_instruction
from duet.models import DebateTurn, GenerationOptions, HistoryEntry, Query
from duet.personas import Persona, detect_emotion, format_context
from duet.providers.chain import ProviderChain

logger = logging.getLogger(__name__)

_LAST_RESORT = "Sorry, I could not answer that right now."

_LONG_OUTPUT = re.compile(
    r"\b(create|build|make|write|generate|code|html|css|javascript|python|website|app|"
    r"script|program|function|list|ideas|steps|plan|schedule)\b",
    re.IGNORECASE,
)
_CODE_REQUEST = re.compile(
    r"\b(create|build|make|write|generate)\b.*\b(website|html|page|app|code|script)\b",
    re.IGNORECASE,
)
_LIST_REQUEST = re.compile(
    r"\b(give|list|suggest|recommend|ideas?|tips?|ways?|options?|steps?)\b",
    re.IGNORECASE,
)


class PersonaResponder:
    """Builds a persona's system instruction and runs it through the provider chain."""

    def __init__(self, chain: ProviderChain, prompts: PromptsConfig, defaults: DefaultsConfig) -> None:
        self._chain = chain
        self._prompts = prompts
        self._defaults = defaults

    def build_instruction(self, persona: Persona, query: Query) -> str:
        parts = [persona.instruction]

        language = query.language or detect_language(query.text)
        parts.append(language_instruction(language, query.text))

        if _CODE_REQUEST.search(query.text) and self._prompts.code_instruction:
            parts.append(self._prompts.code_instruction)
        elif _LIST_REQUEST.search(query.text) and self._prompts.list_instruction:
            parts.append(self._prompts.list_instruction)

        context_block = format_context(query.context)
        if context_block:
            parts.append(f"Context:\n{context_block}")
        return "\n\n".join(parts)

    def _max_tokens(self, query: Query) -> int:
        if _LONG_OUTPUT.search(query.text):
            return self._defaults.long_answer_tokens
        return self._defaults.short_answer_tokens

    async def respond(
        self,
        persona: Persona,
        query: Query,
        history: list[HistoryEntry] | None = None,
        *,
        sequence_number: int,
        prompt: str | None = None,
    ) -> DebateTurn:
        """Produce one turn for ``persona``.

        Args:
            persona: Who is speaking.
            query: The user's query (text, context, language, prior history).
            history: Conversation to continue; defaults to ``query.history``.
            sequence_number: Position of this turn in the session transcript.
            prompt: What to answer; defaults to the query text. Debate turns
                pass a rebuttal prompt here.

        Returns:
            A non-empty DebateTurn. When every provider fails the turn carries
            the configured apology text.
        """
        options = GenerationOptions(
            temperature=self._defaults.temperature,
            max_tokens=self._max_tokens(query),
            system_instruction=self.build_instruction(persona, query),
        )
        result, used_fallback = await self._chain.generate(
            prompt or query.text,
            list(query.history) if history is None else history,
            options,
            nudge=self._prompts.direct_answer_nudge,
        )

        if result.ok:
            text = result.text
            provider: str | None = result.provider
        else:
            logger.warning(
                "All providers failed for %s (turn %d), using apology text",
                persona.name,
                sequence_number,
            )
            text = self._prompts.apology.strip() or _LAST_RESORT
            provider = None

        logger.info(
            "%s answered turn %d via %s%s",
            persona.name,
            sequence_number,
            provider or "fallback text",
            " (fallback tier)" if used_fallback and provider else "",
        )

        return DebateTurn(
            persona=persona.id,
            text=text,
            sequence_number=sequence_number,
            emotion=detect_emotion(text),
            provider=provider,
            used_fallback=used_fallback,
        )
