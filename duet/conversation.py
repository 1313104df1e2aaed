"""Per-conversation state carried between queries."""

import logging
from dataclasses import dataclass, field, replace

from duet.language import detect_language
from duet.models import Context, FinalResult, HistoryEntry, Query

logger = logging.getLogger(__name__)

# Number of history entries handed to the engine with each query.
HISTORY_WINDOW = 6


@dataclass
class Conversation:
    """History and the question the assistant last asked, for one user.

    ``pending_question`` is set when a final answer ends with a question, so
    the next user utterance can be read as a reply to it.
    """

    user_name: str | None = None
    history: list[HistoryEntry] = field(default_factory=list)
    pending_question: str | None = None

    def build_query(self, text: str, context: Context | None = None) -> Query:
        context = context or Context()
        if context.user_name is None and self.user_name:
            context = replace(context, user_name=self.user_name)
        if self.pending_question:
            context = replace(context, pending_question=self.pending_question)
        return Query(
            text=text,
            context=context,
            language=detect_language(text),
            history=tuple(self.history[-HISTORY_WINDOW:]),
        )

    def record(self, query: Query, result: FinalResult, speaker: str) -> None:
        """Append the exchange and update the pending question."""
        answer = result.final_answer.text
        self.history.append(HistoryEntry(speaker="user", text=query.text))
        self.history.append(HistoryEntry(speaker=speaker, text=answer))
        self.pending_question = _trailing_question(answer)
        if self.pending_question:
            logger.debug("Pending question: %s", self.pending_question)


def _trailing_question(text: str) -> str | None:
    stripped = text.strip()
    if not stripped.endswith("?"):
        return None
    for sep in (". ", "! ", "? ", "\n"):
        idx = stripped.rfind(sep, 0, len(stripped) - 1)
        if idx != -1:
            stripped = stripped[idx + len(sep):]
    return stripped.strip()
