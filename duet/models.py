"""Pure dataclasses and enums for the deliberation engine. No logic, no deps."""

from dataclasses import dataclass, field
from enum import Enum


class PersonaId(Enum):
    A = "A"
    B = "B"
    UNIFIED = "UNIFIED"  # synthesized answers only, never generates on its own


class RoutingDecision(Enum):
    PERSONA_A = "persona_a"
    PERSONA_B = "persona_b"
    BOTH = "both"


class ReasonCode(Enum):
    UNAVAILABLE = "unavailable"
    REFUSED = "refused"
    TIMEOUT = "timeout"


class TerminalReason(Enum):
    SINGLE_PERSONA = "single_persona"
    NO_DEBATE = "no_debate"
    CONSENSUS = "consensus"
    AGREEMENT = "agreement"
    LOOP = "loop"
    BUDGET_EXHAUSTED = "budget_exhausted"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class HistoryEntry:
    speaker: str  # "user" for the human, anything else is an assistant voice
    text: str


@dataclass(frozen=True)
class Memory:
    kind: str
    content: str
    importance: int = 5


@dataclass(frozen=True)
class Context:
    memories: tuple[Memory, ...] = ()
    ambient_transcript: tuple[str, ...] = ()
    location: str | None = None
    date_time: str | None = None
    visual_scene: str | None = None
    user_name: str | None = None
    pending_question: str | None = None


@dataclass(frozen=True)
class Query:
    text: str
    context: Context = field(default_factory=Context)
    language: str | None = None
    history: tuple[HistoryEntry, ...] = ()


@dataclass
class GenerationOptions:
    temperature: float = 0.7
    max_tokens: int | None = None
    system_instruction: str | None = None


@dataclass
class GenerationResult:
    text: str
    ok: bool
    provider: str
    model: str
    reason: ReasonCode | None = None
    latency_sec: float = 0.0
    token_count: int | None = None


@dataclass(frozen=True)
class DebateTurn:
    persona: PersonaId
    text: str
    sequence_number: int
    emotion: str | None = None
    provider: str | None = None
    used_fallback: bool = False


@dataclass(frozen=True)
class GuardVerdict:
    is_loop: bool = False
    is_agreement: bool = False
    rule: str | None = None  # name of the rule that fired


@dataclass(frozen=True)
class FinalResult:
    turns: tuple[DebateTurn, ...]
    final_answer: DebateTurn
    consensus_reached: bool
    routing: RoutingDecision
    terminal_reason: TerminalReason
    duration_sec: float = 0.0
