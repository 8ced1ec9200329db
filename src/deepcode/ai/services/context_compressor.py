"""Structure-preserving compression for source code placed in prompts."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Sequence

TRUNCATION_MARKER = "\n... (truncated)"

_TIER0_PREFIXES = ("import ", "export ", "from ", "require(", "module.exports")
_TIER1_PATTERNS = (
    re.compile(r"^\s*(export\s+)?(async\s+)?(function|class|interface|type|enum|const|let|var|def)\s"),
    re.compile(r"^\s*(public|private|protected|static|async)\s"),
    re.compile(r"^\s*/\*\*"),
    re.compile(r"^\s*\*/"),
)


def classify_line(line: str) -> int:
    """Return 0 for module boundaries, 1 for declarations, 2 for everything else."""

    stripped = line.lstrip()
    if stripped.startswith(_TIER0_PREFIXES):
        return 0
    if any(pattern.match(line) for pattern in _TIER1_PATTERNS):
        return 1
    return 2


@dataclass(slots=True)
class ContextCompressor:
    """Trims code to a character budget, keeping structure over bodies.

    Lines are bucketed into imports/exports, declaration signatures, and
    body lines; the output is the first bucket, then as much of the second,
    then as much of the third as fits. Only cutting body lines adds the
    truncation marker, and the marker counts against ``max_chars``.
    """

    marker: str = TRUNCATION_MARKER

    def compress(self, text: str, max_chars: int) -> str:
        if max_chars <= 0:
            return ""
        if len(text) <= max_chars:
            return text

        buckets: list[list[str]] = [[], [], []]
        for line in text.split("\n"):
            buckets[classify_line(line)].append(line)

        result = "\n".join(buckets[0])
        if len(result) >= max_chars:
            return result[:max_chars]

        signatures = "\n".join(buckets[1])
        if buckets[1]:
            joined = _join(result, signatures)
            if len(joined) <= max_chars:
                result = joined
            else:
                room = max_chars - len(_join(result, ""))
                return _join(result, signatures[:room]) if room > 0 else result

        body = "\n".join(buckets[2])
        joined = _join(result, body)
        if len(joined) <= max_chars:
            return joined
        room = max_chars - len(_join(result, "")) - len(self.marker)
        if room > 0:
            return _join(result, body[:room]) + self.marker
        return result

    def compress_many(self, blocks: Sequence[str], max_chars: int) -> list[str]:
        """Compress each block to an equal share of ``max_chars``."""

        if not blocks:
            return []
        share = max(0, max_chars // len(blocks))
        return [self.compress(block, share) for block in blocks]


def _join(head: str, tail: str) -> str:
    return f"{head}\n{tail}" if head else tail


__all__ = ["TRUNCATION_MARKER", "classify_line", "ContextCompressor"]
