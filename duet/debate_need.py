"""Decide whether a query deserves a multi-turn exchange between the personas."""

import logging
import re
from dataclasses import dataclass

from config.config_loader import PromptsConfig
from duet.models import DebateTurn, GenerationOptions, Query
from duet.personas import Persona, PersonaPair
from duet.providers.base import GenerationClient

logger = logging.getLogger(__name__)

_WAKE_WORDS = re.compile(r"\b(hey |hi )?(mi|ra|mira|meera|mera|maya|myra)\b[,!]?", re.IGNORECASE)

_SIMPLE_PATTERNS = [
    re.compile(p, re.IGNORECASE)
    for p in (
        r"^(hi|hey|hello|yo|sup|hola|howdy|hii+)[!?.,\s]*$",
        r"^(good\s*(morning|afternoon|evening|night))[!?.,\s]*$",
        r"^(how\s*are\s*you|what'?s\s*up|how'?s\s*it\s*going)[!?.,\s]*$",
        r"^(thanks?|thank\s*you|thx|ty)[!?.,\s]*$",
        r"^(bye|goodbye|see\s*you|later|cya)[!?.,\s]*$",
        r"^(ok|okay|sure|yes|no|yeah|nope|yep|nah)[!?.,\s]*$",
        r"^(cool|nice|great|awesome|perfect|good|fine)[!?.,\s]*$",
        r"^(namaste|namaskar)[!?.,\s]*$",
    )
]

_VISUAL_QUERY = re.compile(
    r"^(what|who)('?s| is| are| do you)\s+(visible|in front|on (the )?(screen|camera)|"
    r"this|that|here|around|see|you see)\b|\b(what|who) (can|do) you see\b|\blook at (this|me)\b",
    re.IGNORECASE,
)

_DEBATE_YES = re.compile(r"DEBATE:\s*YES", re.IGNORECASE)
_REASON = re.compile(r"REASON:\s*(.+)", re.IGNORECASE)


def strip_wake_words(text: str) -> str:
    return re.sub(r"\s+", " ", _WAKE_WORDS.sub("", text.lower())).strip(" ,!")


def is_simple_message(text: str) -> bool:
    lower = text.lower().strip()
    cleaned = strip_wake_words(lower)
    return any(p.search(cleaned) or p.search(lower) for p in _SIMPLE_PATTERNS) or len(cleaned) < 3


@dataclass(frozen=True)
class DebateAssessment:
    needed: bool
    reason: str | None = None
    source: str = "heuristic"  # "heuristic", "analyzer" or "failure"


class DebateNeedClassifier:
    """Cheap short-circuits first, a conservative model analyzer after."""

    def __init__(
        self,
        analyzer: GenerationClient,
        prompts: PromptsConfig,
        personas: PersonaPair,
        min_chars: int = 15,
    ) -> None:
        self._analyzer = analyzer
        self._prompts = prompts
        self._personas = personas
        self._min_chars = min_chars

    def short_circuit(self, text: str) -> str | None:
        """Return why the message needs no debate, or None to ask the analyzer."""
        if is_simple_message(text):
            return "simple message"
        if len(strip_wake_words(text)) < self._min_chars:
            return "message too short"
        if _VISUAL_QUERY.search(text.strip()):
            return "visual query"
        return None

    async def assess(self, query: Query, first_answer: DebateTurn, persona: Persona) -> DebateAssessment:
        skip = self.short_circuit(query.text)
        if skip:
            logger.debug("No debate: %s", skip)
            return DebateAssessment(needed=False, reason=skip)

        prompt = self._prompts.debate_analysis.format(
            message=query.text,
            answer=first_answer.text,
            persona=persona.name,
            persona_a=self._personas.a.name,
            persona_b=self._personas.b.name,
        )
        result = await self._analyzer.generate(
            prompt, options=GenerationOptions(temperature=0.2, max_tokens=100)
        )
        if not result.ok:
            logger.warning("Debate analyzer failed (%s), skipping debate", result.reason)
            return DebateAssessment(needed=False, source="failure")

        needed = bool(_DEBATE_YES.search(result.text))
        match = _REASON.search(result.text)
        reason = match.group(1).strip() if match else None
        logger.info("Debate analysis: needed=%s reason=%s", needed, reason)
        return DebateAssessment(needed=needed, reason=reason, source="analyzer")

    async def needs_debate(self, query: Query, first_answer: DebateTurn, persona: Persona) -> bool:
        return (await self.assess(query, first_answer, persona)).needed
