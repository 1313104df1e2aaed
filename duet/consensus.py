"""Agreement-strength scoring across a deliberation session."""

import logging
import re

from duet.models import DebateTurn

logger = logging.getLogger(__name__)

STRONG_WEIGHT = 2
WEAK_WEIGHT = 1

# Any single strong indicator is enough to call consensus on its own.
_STRONG = [
    re.compile(p, re.IGNORECASE)
    for p in (
        r"\bwe (both |all )?agree\b",
        r"\bconsensus\b",
        r"\bfinal answer\b",
        r"\bto summari[sz]e\b",
        r"\bin summary\b",
        r"\bcommon ground\b",
    )
]

_WEAK = [
    re.compile(p, re.IGNORECASE)
    for p in (
        r"\bi agree\b",
        r"\bexactly\b",
        r"\btrue\b",
        r"\bright\b",
        r"\bfair point\b",
        r"\bgood point\b",
        r"\babsolutely\b",
    )
]


class ConsensusScorer:
    """Accumulates agreement points for one session; the total never decreases."""

    def __init__(self, threshold: int = 3) -> None:
        self.threshold = threshold
        self._total = 0
        self._strong_seen = False

    @property
    def total(self) -> int:
        return self._total

    @property
    def reached(self) -> bool:
        return self._strong_seen or self._total >= self.threshold

    def score(self, turn: DebateTurn) -> int:
        """Score one turn, add it to the session total, and return the turn's points."""
        strong = sum(1 for p in _STRONG if p.search(turn.text))
        weak = sum(1 for p in _WEAK if p.search(turn.text))
        points = strong * STRONG_WEIGHT + weak * WEAK_WEIGHT

        self._total += points
        if strong:
            self._strong_seen = True

        if points:
            logger.debug(
                "Turn %d consensus points: +%d (total %d/%d)",
                turn.sequence_number,
                points,
                self._total,
                self.threshold,
            )
        return points
