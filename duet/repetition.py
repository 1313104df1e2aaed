"""Per-session loop and explicit-agreement detection over debate turns.

Every turn is fingerprinted several ways (prefix, opening words, keyword set,
content hash, key phrases) and compared against everything the session has
already seen. Rules run in a fixed order and the first match wins; the
turn's fingerprints are recorded afterwards whatever the outcome.

Phrase lists are English only.
"""

import hashlib
import logging
import re
from collections import Counter

from duet.models import DebateTurn, GuardVerdict, PersonaId

logger = logging.getLogger(__name__)

PREFIX_CHARS = 50
SENTENCE_START_WORDS = 4
KEY_PHRASE_WORDS = 6
MIN_KEYWORDS = 3

_STOPWORDS = frozenset(
    """
    a an the and or but if then so of to in on at by for with from as is are was
    were be been being it its this that these those i you we they he she me my
    your our their them us not no do does did have has had will would can could
    should just very really also than too more most much some any all about
    what which who whom when where why how there here into out up down over
    """.split()
)

AGREEMENT_PHRASES = (
    "we both agree",
    "we agree",
    "fair enough",
    "that makes sense",
    "you're right",
    "you are right",
    "i completely agree",
    "i couldn't agree more",
    "agreed",
)

_RHETORICAL = [
    re.compile(p)
    for p in (
        r"\bi think\s+(\w+(?:\s+\w+){0,3})",
        r"\bhowever\s+(\w+(?:\s+\w+){0,3})",
        r"\bgood point\s+(\w+(?:\s+\w+){0,3})",
        r"\bon the other hand\s+(\w+(?:\s+\w+){0,3})",
        r"\bthat said\s+(\w+(?:\s+\w+){0,3})",
        r"\bi understand\s+(\w+(?:\s+\w+){0,3})",
    )
]

_AGREEMENT = [re.compile(rf"\b{re.escape(p)}\b") for p in AGREEMENT_PHRASES]


def normalize(text: str) -> str:
    text = text.lower().replace("’", "'")
    text = re.sub(r"[^\w\s']", " ", text)
    return re.sub(r"\s+", " ", text).strip()


def _fingerprint(normalized: str) -> str:
    """Hash of the content words in order; stopwords and punctuation do not count."""
    content = [w for w in normalized.split() if w not in _STOPWORDS] or normalized.split()
    return hashlib.sha1(" ".join(content).encode("utf-8")).hexdigest()


def _sentence_start(text: str) -> str:
    first_sentence = re.split(r"[.!?]+\s", text.strip(), maxsplit=1)[0]
    words = normalize(first_sentence).split()
    return " ".join(words[:SENTENCE_START_WORDS]) if len(words) >= SENTENCE_START_WORDS else ""


def _keyword_set(normalized: str) -> tuple[str, ...]:
    keywords = {w for w in normalized.split() if len(w) > 3 and w not in _STOPWORDS}
    return tuple(sorted(keywords)) if len(keywords) >= MIN_KEYWORDS else ()


def _key_phrases(normalized: str) -> set[str]:
    phrases: set[str] = set()
    words = normalized.split()
    if len(words) >= KEY_PHRASE_WORDS:
        phrases.add(" ".join(words[:KEY_PHRASE_WORDS]))
    for pattern in _RHETORICAL:
        for match in pattern.finditer(normalized):
            phrases.add(match.group(0))
    return phrases


class RepetitionGuard:
    """Stateful loop detector owned by exactly one deliberation session."""

    def __init__(self) -> None:
        self._prefixes: set[str] = set()
        self._sentence_starts: set[str] = set()
        self._keyword_sets: set[tuple[str, ...]] = set()
        self._fingerprints: Counter[tuple[PersonaId, str]] = Counter()
        self._key_phrases: set[str] = set()

    def check(self, turn: DebateTurn) -> GuardVerdict:
        """Compare the turn against the session so far, then record it."""
        verdict = self._evaluate(turn)
        self.record(turn)
        if verdict.rule:
            logger.debug(
                "Turn %d (%s) hit guard rule %s",
                turn.sequence_number,
                turn.persona.value,
                verdict.rule,
            )
        return verdict

    def _evaluate(self, turn: DebateTurn) -> GuardVerdict:
        normalized = normalize(turn.text)
        fp = _fingerprint(normalized)
        other = PersonaId.B if turn.persona is PersonaId.A else PersonaId.A

        if normalized[:PREFIX_CHARS] in self._prefixes:
            return GuardVerdict(is_loop=True, rule="prefix")

        start = _sentence_start(turn.text)
        if start and start in self._sentence_starts:
            return GuardVerdict(is_loop=True, rule="sentence_start")

        keywords = _keyword_set(normalized)
        if keywords and keywords in self._keyword_sets:
            return GuardVerdict(is_loop=True, rule="keyword_set")

        if self._fingerprints[(turn.persona, fp)] > 1:
            return GuardVerdict(is_loop=True, rule="fingerprint")

        if self._fingerprints[(other, fp)] > 0:
            return GuardVerdict(is_loop=True, rule="cross_persona")

        if any(p.search(normalized) for p in _AGREEMENT):
            return GuardVerdict(is_agreement=True, rule="agreement")

        if _key_phrases(normalized) & self._key_phrases:
            return GuardVerdict(is_loop=True, rule="key_phrase")

        return GuardVerdict()

    def record(self, turn: DebateTurn) -> None:
        """Add the turn's fingerprints to the session state without checking."""
        normalized = normalize(turn.text)
        if normalized:
            self._prefixes.add(normalized[:PREFIX_CHARS])
        start = _sentence_start(turn.text)
        if start:
            self._sentence_starts.add(start)
        keywords = _keyword_set(normalized)
        if keywords:
            self._keyword_sets.add(keywords)
        self._fingerprints[(turn.persona, _fingerprint(normalized))] += 1
        self._key_phrases |= _key_phrases(normalized)
