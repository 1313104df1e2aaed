"""Final synthesis: format the transcript, ask for one merged answer."""

import logging

from config.config_loader import DefaultsConfig, PromptsConfig
from duet.language import detect_language, language_instruction
from duet.models import DebateTurn, GenerationOptions, PersonaId, Query
from duet.personas import PersonaPair, detect_emotion, format_context
from duet.providers.chain import ProviderChain

logger = logging.getLogger(__name__)


def _format_full_transcript(turns: list[DebateTurn], personas: PersonaPair) -> str:
    """Format every turn into a single transcript string for synthesis."""
    return "\n\n".join(
        f"{personas.display_name(t.persona)}: {t.text}"
        for t in turns
        if t.persona is not PersonaId.UNIFIED
    )


async def synthesize(
    query: Query,
    turns: list[DebateTurn],
    chain: ProviderChain,
    personas: PersonaPair,
    prompts: PromptsConfig,
    defaults: DefaultsConfig,
) -> DebateTurn | None:
    """Merge both perspectives into one Unified turn.

    Args:
        query: The original query.
        turns: Every persona turn of the session, in order.
        chain: Providers to generate with (fallback tiers get the nudge).
        personas: Persona names for the transcript.
        prompts: Prompt templates from config.
        defaults: Generation defaults from config.

    Returns:
        The Unified DebateTurn numbered after the last turn, or None when no
        provider produced usable text.
    """
    transcript = _format_full_transcript(turns, personas)
    synthesis_prompt = prompts.synthesis.format(
        question=query.text,
        persona_a=personas.a.name,
        persona_b=personas.b.name,
        turn_count=len(turns),
        full_transcript=transcript,
    )

    language = query.language or detect_language(query.text)
    instruction = language_instruction(language, query.text)
    context_block = format_context(query.context)
    if context_block:
        instruction += f"\n\nContext:\n{context_block}"

    logger.info("Running synthesis over %d turns via %s", len(turns), chain.primary.name())

    result, used_fallback = await chain.generate(
        synthesis_prompt,
        options=GenerationOptions(
            temperature=defaults.temperature,
            max_tokens=defaults.short_answer_tokens,
            system_instruction=instruction,
        ),
        nudge=prompts.direct_answer_nudge,
    )

    if not result.ok:
        logger.warning("Synthesis failed on every provider (%s)", result.reason)
        return None

    return DebateTurn(
        persona=PersonaId.UNIFIED,
        text=result.text,
        sequence_number=len(turns) + 1,
        emotion=detect_emotion(result.text),
        provider=result.provider,
        used_fallback=used_fallback,
    )
