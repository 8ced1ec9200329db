"""Tests for structure-preserving code compression."""

from __future__ import annotations

import pytest

from deepcode.ai.services.context_compressor import TRUNCATION_MARKER, ContextCompressor, classify_line

SOURCE = "\n".join(
    [
        "import os",
        "from typing import Any",
        "",
        "class Store:",
        "    def __init__(self):",
        "        self.items = []",
        "        self.count = 0",
        "",
        "    def add(self, item):",
        "        self.items.append(item)",
        "        self.count += 1",
        "        return self.count",
        "",
        "def helper(value):",
        "    return value * 2",
    ]
)


@pytest.mark.parametrize(
    ("line", "tier"),
    [
        ("import os", 0),
        ("  from x import y", 0),
        ("export default App;", 0),
        ("const fs = require('fs');", 1),
        ("require('./setup');", 0),
        ("module.exports = thing;", 0),
        ("export async function run() {", 0),
        ("async function run() {", 1),
        ("class Store:", 1),
        ("    def add(self, item):", 1),
        ("interface Props {", 1),
        ("  private value: number;", 1),
        ("/**", 1),
        (" */", 1),
        ("    return value * 2", 2),
        ("", 2),
    ],
)
def test_classify_line(line: str, tier: int) -> None:
    assert classify_line(line) == tier


def test_short_text_is_returned_unchanged() -> None:
    assert ContextCompressor().compress(SOURCE, len(SOURCE)) == SOURCE


def test_structure_is_kept_before_bodies() -> None:
    compressed = ContextCompressor().compress(SOURCE, 160)

    assert compressed.startswith("import os\nfrom typing import Any\nclass Store:")
    assert "    def add(self, item):" in compressed
    assert "def helper(value):" in compressed
    assert compressed.endswith(TRUNCATION_MARKER)
    assert len(compressed) == 160


def test_marker_only_added_when_bodies_are_cut() -> None:
    compressor = ContextCompressor()
    imports_and_signatures = 113

    compressed = compressor.compress(SOURCE, imports_and_signatures)

    assert TRUNCATION_MARKER not in compressed
    assert "self.items" not in compressed


def test_tier_zero_overflow_is_cut_hard() -> None:
    text = "\n".join(f"import module_{i}" for i in range(20)) + "\nbody()"

    compressed = ContextCompressor().compress(text, 30)

    assert compressed == text[:30]


@pytest.mark.parametrize("max_chars", [1, 10, 25, 50, 81, 82, 100, 120, 150, 199])
def test_compress_is_idempotent_and_bounded(max_chars: int) -> None:
    compressor = ContextCompressor()

    once = compressor.compress(SOURCE, max_chars)

    assert len(once) <= max_chars
    assert compressor.compress(once, max_chars) == once


def test_non_positive_budget_yields_empty_text() -> None:
    assert ContextCompressor().compress(SOURCE, 0) == ""


def test_compress_many_splits_budget_evenly() -> None:
    blocks = ContextCompressor().compress_many([SOURCE, SOURCE], 200)

    assert len(blocks) == 2
    assert all(len(block) <= 100 for block in blocks)
