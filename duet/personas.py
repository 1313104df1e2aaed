"""Persona profiles, context serialization, and emotion tagging."""

from dataclasses import dataclass

from config.config_loader import PersonasConfig
from duet.models import Context, PersonaId


@dataclass(frozen=True)
class Persona:
    id: PersonaId
    name: str
    role: str
    instruction: str


@dataclass(frozen=True)
class PersonaPair:
    a: Persona
    b: Persona
    unified_name: str = "Unified"

    def get(self, persona_id: PersonaId) -> Persona:
        if persona_id is PersonaId.A:
            return self.a
        if persona_id is PersonaId.B:
            return self.b
        raise ValueError(f"{persona_id} has no generating persona")

    def other(self, persona_id: PersonaId) -> Persona:
        return self.b if persona_id is PersonaId.A else self.a

    def display_name(self, persona_id: PersonaId) -> str:
        if persona_id is PersonaId.UNIFIED:
            return self.unified_name
        return self.get(persona_id).name


def personas_from_config(config: PersonasConfig) -> PersonaPair:
    return PersonaPair(
        a=Persona(PersonaId.A, config.a.name, config.a.role, config.a.instruction.strip()),
        b=Persona(PersonaId.B, config.b.name, config.b.role, config.b.instruction.strip()),
        unified_name=config.unified_name,
    )


def format_context(context: Context) -> str:
    """Serialize the context record into the block appended to the system prompt."""
    lines: list[str] = []
    if context.date_time:
        lines.append(f"Current time: {context.date_time}")
    if context.user_name:
        lines.append(f"User: {context.user_name}")
    if context.location:
        lines.append(f"Location: {context.location}")
    if context.visual_scene:
        lines.append(f"Visible right now: {context.visual_scene}")

    if context.ambient_transcript:
        lines.append("")
        lines.append("Recent ambient conversation:")
        lines.extend(context.ambient_transcript)

    if context.memories:
        lines.append("")
        lines.append("Relevant memories:")
        for i, m in enumerate(context.memories, start=1):
            flag = " (IMPORTANT)" if m.importance >= 8 else ""
            lines.append(f"{i}. [{m.kind}] {m.content}{flag}")

    if context.pending_question:
        lines.append("")
        lines.append(f'You last asked the user: "{context.pending_question}"')

    return "\n".join(lines).strip()


_EMOTION_KEYWORDS: dict[str, tuple[str, ...]] = {
    "caring": ("care", "support", "here for you", "understand"),
    "excited": ("excited", "wonderful", "amazing", "great"),
    "concerned": ("worried", "concern", "careful", "important"),
    "warm": ("warm", "love", "appreciate", "grateful"),
    "thoughtful": ("consider", "think", "reflect", "ponder"),
}


def detect_emotion(text: str) -> str:
    """First matching emotion group wins; 'neutral' when nothing matches."""
    lower = text.lower()
    for emotion, keywords in _EMOTION_KEYWORDS.items():
        if any(k in lower for k in keywords):
            return emotion
    return "neutral"
