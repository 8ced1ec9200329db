"""Prompt budget enforcement by staged degradation of context components."""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Mapping, Sequence

from ..services import telemetry as telemetry_service
from ..utils.tokens import CHARS_PER_TOKEN, estimate_tokens

DEFAULT_MAX_TOKENS = 56_000
PROTECTED_HISTORY_TURNS = 3
SUMMARY_FLOOR_CHARS = 200
LINE_SNAP_WINDOW = 200
TOOL_RESULTS_MARKER = "... (earlier tool output truncated)\n"
SUMMARY_ELLIPSIS = "..."


@dataclass(slots=True, frozen=True)
class HistoryTurn:
    role: str
    content: str


@dataclass(slots=True, frozen=True)
class BudgetComponents:
    """The five prompt components subject to the budget."""

    system_prompt: str = ""
    summary: str = ""
    skeletons: str = ""
    tool_results: str = ""
    history: tuple[HistoryTurn, ...] = ()

    def __post_init__(self) -> None:
        if not isinstance(self.history, tuple):
            object.__setattr__(self, "history", tuple(self.history))


@dataclass(slots=True, frozen=True)
class BudgetResult:
    """Fitted components, their estimated size, and what was sacrificed, in stage order."""

    system_prompt: str
    summary: str
    skeletons: str
    tool_results: str
    history: tuple[HistoryTurn, ...]
    total_tokens: int
    dropped: tuple[str, ...] = ()

    @property
    def components(self) -> BudgetComponents:
        return BudgetComponents(
            system_prompt=self.system_prompt,
            summary=self.summary,
            skeletons=self.skeletons,
            tool_results=self.tool_results,
            history=self.history,
        )

    def as_payload(self) -> dict[str, Any]:
        return {
            "total_tokens": self.total_tokens,
            "dropped": list(self.dropped),
            "history_turns": len(self.history),
        }


@dataclass(slots=True)
class ContextBudget:
    """Fits prompt components under ``max_tokens``.

    Stages run in a fixed order and only while the estimate is over budget:
    skeletons are dropped, then tool results are cut from the front, then
    the summary is cut from the end, then the oldest history turns go one at
    a time. The system prompt and the last ``protected_history_turns`` turns
    are never touched. ``fit`` is pure apart from the telemetry event.
    """

    max_tokens: int = DEFAULT_MAX_TOKENS
    chars_per_token: float = CHARS_PER_TOKEN
    protected_history_turns: int = PROTECTED_HISTORY_TURNS
    telemetry_emitter: Callable[[str, Mapping[str, Any]], Any] | None = field(
        default_factory=lambda: getattr(telemetry_service, "emit", None)
    )
    last_result: BudgetResult | None = None

    def estimate(self, text: str) -> int:
        return estimate_tokens(text, self.chars_per_token)

    def measure(self, components: BudgetComponents) -> int:
        return (
            self.estimate(components.system_prompt)
            + self.estimate(components.summary)
            + self.estimate(components.skeletons)
            + self.estimate(components.tool_results)
            + self._history_tokens(components.history)
        )

    def fit(self, components: BudgetComponents) -> BudgetResult:
        current = components
        dropped: list[str] = []
        total = self.measure(current)

        if total > self.max_tokens and current.skeletons:
            freed = self.estimate(current.skeletons)
            current = replace(current, skeletons="")
            dropped.append(f"skeletons (~{freed} tokens)")
            total = self.measure(current)

        if total > self.max_tokens and current.tool_results:
            trimmed = self._trim_tool_results(current.tool_results, total - self.max_tokens)
            freed = self.estimate(current.tool_results) - self.estimate(trimmed)
            current = replace(current, tool_results=trimmed)
            dropped.append(f"tool results truncated (~{freed} tokens)")
            total = self.measure(current)

        if total > self.max_tokens:
            trimmed = self._trim_summary(current.summary, total - self.max_tokens)
            if trimmed != current.summary:
                freed = self.estimate(current.summary) - self.estimate(trimmed)
                current = replace(current, summary=trimmed)
                dropped.append(f"summary truncated (~{freed} tokens)")
                total = self.measure(current)

        if total > self.max_tokens:
            history = list(current.history)
            removable = max(0, len(history) - self.protected_history_turns)
            removed = 0
            freed = 0
            while total > self.max_tokens and removed < removable:
                turn = history.pop(0)
                cost = self.estimate(turn.content)
                freed += cost
                total -= cost
                removed += 1
            if removed:
                current = replace(current, history=tuple(history))
                dropped.append(f"{removed} oldest history turn(s) (~{freed} tokens)")
                total = self.measure(current)

        result = BudgetResult(
            system_prompt=current.system_prompt,
            summary=current.summary,
            skeletons=current.skeletons,
            tool_results=current.tool_results,
            history=current.history,
            total_tokens=total,
            dropped=tuple(dropped),
        )
        self.last_result = result
        emitter = self.telemetry_emitter
        if callable(emitter):
            payload = {"max_tokens": self.max_tokens, **result.as_payload()}
            emitter(telemetry_service.CONTEXT_BUDGET_FIT, payload)
        return result

    def _history_tokens(self, history: Sequence[HistoryTurn]) -> int:
        return sum(self.estimate(turn.content) for turn in history)

    def _excess_chars(self, excess_tokens: int) -> int:
        return math.ceil(excess_tokens * self.chars_per_token)

    def _trim_tool_results(self, text: str, excess_tokens: int) -> str:
        keep = len(text) - self._excess_chars(excess_tokens) - len(TOOL_RESULTS_MARKER)
        if keep <= 0:
            return ""
        tail = text[-keep:]
        newline = tail.find("\n")
        if 0 <= newline < LINE_SNAP_WINDOW:
            tail = tail[newline + 1 :]
        return TOOL_RESULTS_MARKER + tail

    def _trim_summary(self, text: str, excess_tokens: int) -> str:
        if len(text) <= SUMMARY_FLOOR_CHARS:
            return text
        keep = max(SUMMARY_FLOOR_CHARS, len(text) - self._excess_chars(excess_tokens) - len(SUMMARY_ELLIPSIS))
        if keep + len(SUMMARY_ELLIPSIS) >= len(text):
            return text
        return text[:keep] + SUMMARY_ELLIPSIS


__all__ = [
    "DEFAULT_MAX_TOKENS",
    "HistoryTurn",
    "BudgetComponents",
    "BudgetResult",
    "ContextBudget",
]
