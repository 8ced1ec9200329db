"""Rolling conversation context: verbatim recent turns, digests of older ones, and an operation log."""

from __future__ import annotations

import asyncio
import logging
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Literal

from ..services import telemetry

LOGGER = logging.getLogger(__name__)

Summarizer = Callable[[str], Awaitable[str]]
OperationOutcome = Literal["success", "failure", "partial"]

DEFAULT_KEEP_VERBATIM = 6
DEFAULT_MAX_SUMMARY_CHARS = 4000
MAX_OPERATIONS = 50
FAILURE_WINDOW = 10
TURN_RENDER_CHARS = 500


@dataclass(slots=True, frozen=True)
class ConversationTurn:
    role: str
    content: str


@dataclass(slots=True, frozen=True)
class OperationEntry:
    """One logged agent action, used for repeated-failure detection."""

    action: str
    target: str
    result: OperationOutcome
    agent_type: str = "orchestrator"
    notes: str = ""
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "agentType": self.agent_type,
            "action": self.action,
            "target": self.target,
            "result": self.result,
            "notes": self.notes,
        }


class RollingContext:
    """Conversation state split into verbatim turns and summarized digests.

    The most recent ``keep_verbatim`` turns are always available unabridged.
    Older turns wait in ``raw_turns`` until :meth:`maybe_summarize` folds
    them into a digest; turns never move back from a digest.
    """

    def __init__(
        self,
        *,
        keep_verbatim: int = DEFAULT_KEEP_VERBATIM,
        max_summary_chars: int = DEFAULT_MAX_SUMMARY_CHARS,
        max_operations: int = MAX_OPERATIONS,
    ) -> None:
        self._keep_verbatim = max(0, keep_verbatim)
        self._max_summary_chars = max(1, max_summary_chars)
        self._turns: list[ConversationTurn] = []
        self._summaries: list[str] = []
        self._operations: deque[OperationEntry] = deque(maxlen=max(1, max_operations))

    @property
    def keep_verbatim(self) -> int:
        return self._keep_verbatim

    @property
    def raw_turns(self) -> tuple[ConversationTurn, ...]:
        return tuple(self._turns)

    @property
    def summaries(self) -> tuple[str, ...]:
        return tuple(self._summaries)

    @property
    def operations(self) -> tuple[OperationEntry, ...]:
        return tuple(self._operations)

    # ------------------------------------------------------------------
    # Turns
    # ------------------------------------------------------------------

    def add_turn(self, role: str, content: str) -> ConversationTurn:
        turn = ConversationTurn(role=role, content=content or "")
        self._turns.append(turn)
        return turn

    def verbatim_turns(self) -> list[ConversationTurn]:
        if self._keep_verbatim == 0:
            return []
        return self._turns[-self._keep_verbatim :]

    async def maybe_summarize(self, summarize: Summarizer) -> bool:
        """Fold turns older than the verbatim window into a digest.

        Returns ``True`` when a digest was added. A failing or empty
        summarizer leaves every raw turn in place for the next attempt.
        """

        if len(self._turns) <= self._keep_verbatim:
            return False
        older = self._turns[: len(self._turns) - self._keep_verbatim]
        rendered = "\n\n".join(_render_turn(turn) for turn in older)
        try:
            digest = await summarize(rendered)
        except asyncio.CancelledError:
            raise
        except Exception:
            LOGGER.warning("Summarization failed; keeping %d raw turn(s)", len(older), exc_info=True)
            return False

        digest = (digest or "").strip()
        if not digest:
            LOGGER.debug("Summarizer returned an empty digest; keeping raw turns")
            return False

        # Turns appended while the summarizer ran sit after ``older``.
        del self._turns[: len(older)]
        self._summaries.append(digest)
        self._trim_summaries()
        telemetry.emit(
            telemetry.CONTEXT_SUMMARIZED,
            {
                "summarized_turns": len(older),
                "summaries": len(self._summaries),
                "summary_chars": sum(len(item) for item in self._summaries),
            },
        )
        return True

    def _trim_summaries(self) -> None:
        total = sum(len(item) for item in self._summaries)
        while len(self._summaries) > 1 and total > self._max_summary_chars:
            total -= len(self._summaries.pop(0))

    # ------------------------------------------------------------------
    # Operation log
    # ------------------------------------------------------------------

    def add_operation(self, entry: OperationEntry) -> None:
        self._operations.append(entry)

    def record_operation(
        self,
        action: str,
        target: str,
        result: OperationOutcome,
        *,
        agent_type: str = "orchestrator",
        notes: str = "",
    ) -> OperationEntry:
        entry = OperationEntry(action=action, target=target, result=result, agent_type=agent_type, notes=notes)
        self.add_operation(entry)
        return entry

    def has_repeated_failure(self, action: str, threshold: int = 2) -> bool:
        """Return True when ``action`` failed at least ``threshold`` times in the last 10 entries."""

        recent = list(self._operations)[-FAILURE_WINDOW:]
        failures = sum(1 for entry in recent if entry.action == action and entry.result == "failure")
        return failures >= max(1, threshold)

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def build_context(self) -> str:
        """Render the digests and recent failed operations for the prompt."""

        sections: list[str] = []
        if self._summaries:
            sections.append("## Earlier conversation\n" + "\n\n".join(self._summaries))
        recent = list(self._operations)[-FAILURE_WINDOW:]
        failed = [entry for entry in recent if entry.result == "failure"]
        if failed:
            lines = [
                f"- {entry.action} {entry.target}" + (f": {entry.notes}" if entry.notes else "") for entry in failed
            ]
            sections.append("## Recent failed operations\n" + "\n".join(lines))
        return "\n\n".join(sections)


def _render_turn(turn: ConversationTurn) -> str:
    content = turn.content
    if len(content) > TURN_RENDER_CHARS:
        content = content[:TURN_RENDER_CHARS] + "..."
    return f"[{turn.role}]: {content}"


__all__ = [
    "Summarizer",
    "OperationOutcome",
    "ConversationTurn",
    "OperationEntry",
    "RollingContext",
]
