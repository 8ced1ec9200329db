"""Tests for tool argument normalization."""

from __future__ import annotations

import math

import pytest

from deepcode.ai.tools.arguments import (
    FetchWebpageRequest,
    GrepRequest,
    ListDirectoryRequest,
    MultiEditRequest,
    ReadFileRequest,
    RunCommandRequest,
    SearchFilesRequest,
    WebSearchRequest,
    coerce_bool,
    coerce_int,
    parse_edits,
    pick,
)
from deepcode.ai.tools.errors import ErrorCode, InvalidParameterError, MissingParameterError
from deepcode.ai.tools.patching import Edit


def test_pick_follows_alias_order_and_skips_none() -> None:
    args = {"file_path": "b", "filePath": None, "filename": "c"}

    assert pick(args, ("path", "filePath", "file_path", "filename")) == "b"
    assert pick(args, ("missing",)) is None


@pytest.mark.parametrize(
    ("value", "expected"),
    [(5, 5), (5.9, 5), ("12", 12), (" 7 ", 7), ("3.5", 3), ("", None), (None, None), (True, None)],
)
def test_coerce_int(value, expected) -> None:
    assert coerce_int(value, parameter="n") == expected


@pytest.mark.parametrize("value", ["abc", math.nan, "inf", [1]])
def test_coerce_int_rejects_non_numbers(value) -> None:
    with pytest.raises(InvalidParameterError) as excinfo:
        coerce_int(value, parameter="startLine")

    assert excinfo.value.error_code == ErrorCode.INVALID_PARAMETER
    assert excinfo.value.parameter == "startLine"


def test_coerce_bool() -> None:
    assert coerce_bool("TRUE")
    assert coerce_bool("yes")
    assert coerce_bool(1)
    assert not coerce_bool("false")
    assert not coerce_bool(0)
    assert coerce_bool(None, default=True)


def test_parse_edits_accepts_lists_mappings_and_json() -> None:
    expected = [Edit(old_text="a", new_text="b")]

    assert parse_edits([{"oldText": "a", "newText": "b"}]) == expected
    assert parse_edits({"search": "a", "replace": "b"}) == expected
    assert parse_edits('[{"old_text": "a", "new_text": "b"}]') == expected
    assert parse_edits("") == []
    assert parse_edits(None) == []
    assert parse_edits([{"oldText": "a"}]) == [Edit(old_text="a", new_text="")]


@pytest.mark.parametrize("value", ["{not json", 42, ["plain string"]])
def test_parse_edits_rejects_bad_shapes(value) -> None:
    with pytest.raises(InvalidParameterError):
        parse_edits(value)


def test_read_request_requires_path() -> None:
    with pytest.raises(MissingParameterError) as excinfo:
        ReadFileRequest.from_args({"path": "  "})

    assert excinfo.value.parameter == "path"
    assert "read_file failed" in excinfo.value.message


def test_request_defaults() -> None:
    assert ListDirectoryRequest.from_args({}) == ListDirectoryRequest(path=".", recursive=False)
    assert SearchFilesRequest.from_args({"glob": " **/*.ts "}).pattern == "**/*.ts"
    assert SearchFilesRequest.from_args({"pattern": "*"}).max_results == 30
    assert GrepRequest.from_args({"query": "x", "include": "  "}).include_pattern is None
    assert GrepRequest.from_args({"query": "x"}).max_results == 50
    assert RunCommandRequest.from_args({"command": "ls"}).timeout_ms is None
    assert RunCommandRequest.from_args({"command": "ls", "timeout_ms": 0}).timeout_ms is None
    assert WebSearchRequest.from_args({"query": "x"}).max_results == 5
    assert FetchWebpageRequest.from_args({"link": " https://a.b "}) == FetchWebpageRequest(url="https://a.b")


def test_multi_edit_request_keeps_malformed_entries() -> None:
    request = MultiEditRequest.from_args(
        {
            "files": '[{"path": "a.ts", "edits": [{"oldText": "x", "newText": "y"}]}, "oops", {"path": "b.ts", "edits": 3}]'
        }
    )

    first, second, third = request.files
    assert first.path == "a.ts" and first.edits == (Edit("x", "y"),)
    assert second.error == "entry is not an object"
    assert third.path == "b.ts" and third.error is not None


def test_multi_edit_request_single_mapping() -> None:
    request = MultiEditRequest.from_args({"fileEdits": {"path": "a.ts", "changes": [{"old": "1", "new": "2"}]}})

    assert len(request.files) == 1
    assert request.files[0].edits == (Edit("1", "2"),)
