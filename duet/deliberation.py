"""Deliberation orchestration: routing, initial answers, debate loop, finalize."""

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field

from config.config_loader import AppConfig, DefaultsConfig, PromptsConfig
from duet.consensus import ConsensusScorer
from duet.debate_need import DebateNeedClassifier
from duet.models import (
    DebateTurn,
    FinalResult,
    HistoryEntry,
    PersonaId,
    Query,
    RoutingDecision,
    TerminalReason,
)
from duet.personas import Persona, PersonaPair, personas_from_config
from duet.providers.chain import ProviderChain
from duet.repetition import RepetitionGuard
from duet.responder import PersonaResponder
from duet.router import Router
from duet.synthesis import synthesize

logger = logging.getLogger(__name__)

TurnCallback = Callable[[DebateTurn], None]

_SYNTHESIZED_ENDINGS = (
    TerminalReason.CONSENSUS,
    TerminalReason.AGREEMENT,
    TerminalReason.LOOP,
    TerminalReason.NO_DEBATE,
)
_CONSENSUS_ENDINGS = (TerminalReason.CONSENSUS, TerminalReason.AGREEMENT)


@dataclass
class DeliberationSession:
    """State of one query's exchange. Created per query, never shared."""

    query: Query
    routing: RoutingDecision
    guard: RepetitionGuard = field(default_factory=RepetitionGuard)
    scorer: ConsensusScorer = field(default_factory=ConsensusScorer)
    turns: list[DebateTurn] = field(default_factory=list)
    rounds_completed: int = 0
    terminal_reason: TerminalReason | None = None

    @property
    def last_turn(self) -> DebateTurn:
        return self.turns[-1]

    def last_persona_turn(self) -> DebateTurn:
        return next(t for t in reversed(self.turns) if t.persona is not PersonaId.UNIFIED)

    def next_sequence(self) -> int:
        return len(self.turns) + 1

    def append(self, turn: DebateTurn, on_turn: TurnCallback | None = None) -> None:
        self.turns.append(turn)
        if on_turn:
            on_turn(turn)


class DeliberationOrchestrator:
    """Drives one query from routing to a FinalResult."""

    def __init__(
        self,
        router: Router,
        responder: PersonaResponder,
        need_classifier: DebateNeedClassifier,
        chain: ProviderChain,
        personas: PersonaPair,
        prompts: PromptsConfig,
        defaults: DefaultsConfig,
    ) -> None:
        self._router = router
        self._responder = responder
        self._need = need_classifier
        self._chain = chain
        self._personas = personas
        self._prompts = prompts
        self._defaults = defaults

    @property
    def turn_budget(self) -> int:
        return self._defaults.turn_budget

    async def run(
        self,
        query: Query,
        *,
        cancel_event: asyncio.Event | None = None,
        on_turn: TurnCallback | None = None,
    ) -> FinalResult:
        """Answer one query.

        Args:
            query: The user's query.
            cancel_event: Checked before each debate turn; when set the session
                finalizes with the last persona turn.
            on_turn: Optional callback invoked with every turn as it is appended.

        Returns:
            FinalResult with the ordered transcript and a non-empty final answer.
        """
        start = time.monotonic()
        routing = await self._router.route(query)
        session = DeliberationSession(
            query=query,
            routing=routing,
            scorer=ConsensusScorer(self._defaults.consensus_threshold),
        )

        if routing is not RoutingDecision.BOTH:
            persona = self._personas.a if routing is RoutingDecision.PERSONA_A else self._personas.b
            turn = await self._responder.respond(persona, query, sequence_number=1)
            session.append(turn, on_turn)
            session.terminal_reason = TerminalReason.SINGLE_PERSONA
            return self._result(session, turn, start)

        first_a, first_b = await asyncio.gather(
            self._responder.respond(self._personas.a, query, sequence_number=1),
            self._responder.respond(self._personas.b, query, sequence_number=2),
        )
        for turn in (first_a, first_b):
            session.append(turn, on_turn)
            session.guard.record(turn)

        if first_a.provider is None and first_b.provider is None:
            logger.warning(
                "WARNING: Both personas fell back to apology text. "
                "Deliberation quality is degraded; check provider health."
            )

        if await self._need.needs_debate(query, first_a, self._personas.a):
            await self._debate(session, cancel_event, on_turn)
        else:
            session.terminal_reason = TerminalReason.NO_DEBATE

        return await self._finalize(session, start, on_turn)

    def _history_for(self, session: DeliberationSession, speaker: Persona) -> list[HistoryEntry]:
        """Running transcript as seen by ``speaker``; the last turn goes in the prompt."""
        history = list(session.query.history)
        history.append(HistoryEntry(speaker="user", text=session.query.text))
        for turn in session.turns[:-1]:
            if turn.persona is speaker.id:
                history.append(HistoryEntry(speaker=speaker.name, text=turn.text))
            else:
                name = self._personas.display_name(turn.persona)
                history.append(HistoryEntry(speaker="user", text=f"{name}: {turn.text}"))
        return history

    async def _debate(
        self,
        session: DeliberationSession,
        cancel_event: asyncio.Event | None,
        on_turn: TurnCallback | None,
    ) -> None:
        logger.info("Debate started (budget %d rounds)", self.turn_budget)

        for round_number in range(1, self.turn_budget + 1):
            for _ in range(2):
                if cancel_event is not None and cancel_event.is_set():
                    logger.info("Deliberation cancelled before turn %d", session.next_sequence())
                    session.terminal_reason = TerminalReason.CANCELLED
                    return

                last = session.last_turn
                speaker = self._personas.other(last.persona)
                prompt = self._prompts.rebuttal.format(
                    question=session.query.text,
                    other=self._personas.display_name(last.persona),
                    last_turn=last.text,
                )
                turn = await self._responder.respond(
                    speaker,
                    session.query,
                    self._history_for(session, speaker),
                    sequence_number=session.next_sequence(),
                    prompt=prompt,
                )
                session.append(turn, on_turn)

                verdict = session.guard.check(turn)
                session.scorer.score(turn)

                if verdict.is_loop:
                    logger.info("Loop detected at turn %d (%s)", turn.sequence_number, verdict.rule)
                    session.terminal_reason = TerminalReason.LOOP
                    return
                if verdict.is_agreement:
                    logger.info("Explicit agreement at turn %d", turn.sequence_number)
                    session.terminal_reason = TerminalReason.AGREEMENT
                    return
                if session.scorer.reached:
                    logger.info(
                        "Consensus reached at turn %d (score %d)",
                        turn.sequence_number,
                        session.scorer.total,
                    )
                    session.terminal_reason = TerminalReason.CONSENSUS
                    return

            session.rounds_completed = round_number
            logger.info("Round %d complete: %d turns so far", round_number, len(session.turns))

        session.terminal_reason = TerminalReason.BUDGET_EXHAUSTED
        logger.info("Turn budget exhausted without consensus")

    async def _finalize(
        self,
        session: DeliberationSession,
        start: float,
        on_turn: TurnCallback | None,
    ) -> FinalResult:
        final = session.last_persona_turn()

        if session.terminal_reason in _SYNTHESIZED_ENDINGS:
            unified = await synthesize(
                query=session.query,
                turns=list(session.turns),
                chain=self._chain,
                personas=self._personas,
                prompts=self._prompts,
                defaults=self._defaults,
            )
            if unified is not None:
                session.append(unified, on_turn)
                final = unified
            else:
                logger.warning(
                    "Synthesis unavailable, final answer falls back to %s",
                    self._personas.display_name(final.persona),
                )

        return self._result(session, final, start)

    def _result(self, session: DeliberationSession, final: DebateTurn, start: float) -> FinalResult:
        if session.terminal_reason is None:
            raise RuntimeError("Deliberation finished without a terminal reason")
        consensus = session.terminal_reason in _CONSENSUS_ENDINGS
        logger.info(
            "Deliberation done: %s, %d turns, consensus=%s",
            session.terminal_reason.value,
            len(session.turns),
            consensus,
        )
        return FinalResult(
            turns=tuple(session.turns),
            final_answer=final,
            consensus_reached=consensus,
            routing=session.routing,
            terminal_reason=session.terminal_reason,
            duration_sec=time.monotonic() - start,
        )


def build_orchestrator(config: AppConfig, chain: ProviderChain) -> DeliberationOrchestrator:
    """Wire every component from configuration around one provider chain."""
    personas = personas_from_config(config.personas)
    return DeliberationOrchestrator(
        router=Router(chain.primary, config.prompts, personas),
        responder=PersonaResponder(chain, config.prompts, config.defaults),
        need_classifier=DebateNeedClassifier(
            chain.primary,
            config.prompts,
            personas,
            min_chars=config.defaults.min_debate_chars,
        ),
        chain=chain,
        personas=personas,
        prompts=config.prompts,
        defaults=config.defaults,
    )
