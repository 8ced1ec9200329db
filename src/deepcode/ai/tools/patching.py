"""Fuzzy find/replace patching for model-authored edits."""

from __future__ import annotations

import difflib
from dataclasses import dataclass, field
from typing import Sequence

_DEFAULT_SNIPPET_CHARS = 80


@dataclass(slots=True, frozen=True)
class Edit:
    """A single find/replace instruction.

    An empty ``old_text`` turns the edit into an append of ``new_text``.
    """

    old_text: str
    new_text: str


@dataclass(slots=True)
class PatchResult:
    """Outcome of applying an edit list to a block of text."""

    content: str
    applied_count: int
    failures: list[str] = field(default_factory=list)

    @property
    def failed_count(self) -> int:
        return len(self.failures)


@dataclass(slots=True)
class PatchEngine:
    """Applies ordered edits with exact, trimmed, and append fallbacks.

    Edits run sequentially against the progressively mutated content, so a
    later edit may depend on an earlier one. Each ``old_text`` replaces only
    its first occurrence; callers are expected to include enough context to
    make it unique. A miss is recorded and the remaining edits still run.
    """

    snippet_chars: int = _DEFAULT_SNIPPET_CHARS

    def apply(self, content: str, edits: Sequence[Edit]) -> PatchResult:
        applied = 0
        failures: list[str] = []
        for edit in edits:
            updated = self._apply_one(content, edit)
            if updated is None:
                failures.append(self._snippet(edit.old_text))
                continue
            content = updated
            applied += 1
        return PatchResult(content=content, applied_count=applied, failures=failures)

    def _apply_one(self, content: str, edit: Edit) -> str | None:
        old_text = edit.old_text or ""
        new_text = edit.new_text or ""
        if not old_text:
            if not new_text:
                return None
            return content + "\n" + new_text
        if old_text in content:
            return content.replace(old_text, new_text, 1)
        trimmed = old_text.strip()
        if trimmed and trimmed in content:
            return content.replace(trimmed, new_text.strip(), 1)
        return None

    def _snippet(self, old_text: str) -> str:
        if not old_text:
            return "(empty oldText and newText)"
        limit = max(1, self.snippet_chars)
        if len(old_text) > limit:
            return old_text[:limit] + "..."
        return old_text


def count_line_changes(before: str, after: str) -> tuple[int, int]:
    """Return ``(added, removed)`` line counts between two texts."""

    matcher = difflib.SequenceMatcher(a=before.splitlines(), b=after.splitlines(), autojunk=False)
    added = removed = 0
    for tag, i1, i2, j1, j2 in matcher.get_opcodes():
        if tag in ("replace", "delete"):
            removed += i2 - i1
        if tag in ("replace", "insert"):
            added += j2 - j1
    return added, removed


__all__ = ["Edit", "PatchResult", "PatchEngine", "count_line_changes"]
