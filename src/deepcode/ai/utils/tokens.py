"""Token estimation utilities for context budgeting."""

from __future__ import annotations

import math

# Average characters per token for mixed source code and prose
CHARS_PER_TOKEN = 3.5


def estimate_tokens(text: str | None, chars_per_token: float = CHARS_PER_TOKEN) -> int:
    """Estimate the number of tokens in a text string.

    Uses a character heuristic rather than a tokenizer.

    Args:
        text: The text to estimate tokens for.
        chars_per_token: Characters assumed per token.

    Returns:
        ``ceil(len(text) / chars_per_token)``; 0 for empty text.
    """
    if not text:
        return 0
    ratio = chars_per_token if chars_per_token > 0 else CHARS_PER_TOKEN
    return math.ceil(len(text) / ratio)


__all__ = ["CHARS_PER_TOKEN", "estimate_tokens"]
