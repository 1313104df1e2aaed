"""Router: decide whether persona A, persona B, or both answer a query."""

import logging
import re

from config.config_loader import PromptsConfig
from duet.models import GenerationOptions, Query, RoutingDecision
from duet.personas import PersonaPair
from duet.providers.base import GenerationClient

logger = logging.getLogger(__name__)

_SMALL_TALK = [
    re.compile(p, re.IGNORECASE)
    for p in (
        r"^(hi|hey|hello|yo|sup|hola|howdy|hii+)\b[!?.,\s]*$",
        r"^good\s*(morning|afternoon|evening|night)\b[!?.,\s]*$",
        r"^(how\s*are\s*you|what'?s\s*up|how'?s\s*it\s*going)[!?.,\s]*$",
        r"^(thanks?|thank\s*you|thx|ty)\b.{0,20}$",
        r"^(bye|goodbye|see\s*you|later|cya|good\s*night)\b[!?.,\s]*$",
        r"^(namaste|namaskar)[!?.,\s]*$",
    )
]

# Consequential decisions where the user wants both perspectives weighed.
_MAJOR_DECISION = [
    re.compile(p, re.IGNORECASE)
    for p in (
        r"\bshould\s+i\s+(resign|marry|divorce|break\s+up|propose|drop\s+out|retire)\b",
        r"\bshould\s+i\b.*\b(job|career|business|startup|company|relationship|marriage|"
        r"partner|boyfriend|girlfriend|house|apartment|mortgage|degree|college|"
        r"university|masters|phd|savings|retirement|offer|abroad)\b",
        r"\bpros\s+and\s+cons\b",
        r"\b(balanced|honest)\s+(opinion|view|take)\b",
        r"\bweigh\s+(in|up|the)\b",
        r"\bboth\s+sides\b",
        r"\b(life|career)[-\s]changing\b",
    )
]

_EMOTIONAL = re.compile(
    r"\b(feel|feeling|felt|sad|lonely|happy|anxious|anxiety|stressed|worried|scared|"
    r"upset|angry|hurt|miss|love|heartbroken|depressed|excited|nervous|relationship|"
    r"friend|family|cry|crying)\b",
    re.IGNORECASE,
)

_FACTUAL = re.compile(
    r"\b(what\s+is|what\s+are|how\s+does|how\s+do|how\s+to|why\s+does|calculate|convert|"
    r"define|explain|code|python|javascript|sql|api|algorithm|formula|math|equation|"
    r"difference\s+between|compare|error|bug|install|configure)\b",
    re.IGNORECASE,
)

_LABELS = {
    "A": RoutingDecision.PERSONA_A,
    "B": RoutingDecision.PERSONA_B,
    "BOTH": RoutingDecision.BOTH,
}


def heuristic_route(text: str) -> RoutingDecision | None:
    """Cheap pattern routing; None when no heuristic applies."""
    stripped = text.strip()
    if not stripped:
        return RoutingDecision.PERSONA_A
    if any(p.search(stripped) for p in _SMALL_TALK):
        return RoutingDecision.PERSONA_A
    if any(p.search(stripped) for p in _MAJOR_DECISION):
        return RoutingDecision.BOTH
    if _EMOTIONAL.search(stripped):
        return RoutingDecision.PERSONA_A
    if _FACTUAL.search(stripped):
        return RoutingDecision.PERSONA_B
    return None


class Router:
    """Pattern routing with a model-based classifier behind it."""

    def __init__(self, classifier: GenerationClient, prompts: PromptsConfig, personas: PersonaPair) -> None:
        self._classifier = classifier
        self._prompts = prompts
        self._personas = personas

    def _parse_label(self, raw: str) -> RoutingDecision | None:
        label = raw.strip().strip(".!\"'`*").upper()
        if label in _LABELS:
            return _LABELS[label]
        if label == self._personas.a.name.upper():
            return RoutingDecision.PERSONA_A
        if label == self._personas.b.name.upper():
            return RoutingDecision.PERSONA_B
        return None

    async def route(self, query: Query) -> RoutingDecision:
        decision = heuristic_route(query.text)
        if decision is not None:
            logger.info("Routed by heuristic: %s", decision.value)
            return decision

        prompt = self._prompts.router.format(
            message=query.text,
            persona_a=self._personas.a.name,
            persona_b=self._personas.b.name,
        )
        result = await self._classifier.generate(
            prompt, options=GenerationOptions(temperature=0.1, max_tokens=10)
        )
        if not result.ok:
            logger.warning("Routing classifier failed (%s), defaulting to persona A", result.reason)
            return RoutingDecision.PERSONA_A

        decision = self._parse_label(result.text)
        if decision is None:
            logger.warning("Routing classifier returned unknown label %r, defaulting to persona A", result.text)
            return RoutingDecision.PERSONA_A

        logger.info("Routed by classifier: %s", decision.value)
        return decision
