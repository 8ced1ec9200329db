"""Argument normalization for model-issued tool calls.

Models rarely agree on argument spellings: the same file path arrives as
``path``, ``filePath``, ``file_path`` or ``filename``, numbers arrive as
strings, and edit lists sometimes arrive JSON-encoded. Each tool's raw
argument mapping is resolved once, through the ordered alias tables below,
into a typed request object; handlers never look at raw keys.
"""

from __future__ import annotations

import json
import math
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Sequence

from .errors import InvalidParameterError, MissingParameterError
from .patching import Edit

PATH_KEYS = ("path", "filePath", "filepath", "file_path", "filename", "file", "dirPath", "directory", "dir")
CONTENT_KEYS = ("content", "text", "data", "body")
START_LINE_KEYS = ("startLine", "start_line", "start", "fromLine")
END_LINE_KEYS = ("endLine", "end_line", "end", "toLine")
MAX_RESULTS_KEYS = ("maxResults", "max_results", "limit")
TIMEOUT_KEYS = ("timeout", "timeoutMs", "timeout_ms")
MAX_LENGTH_KEYS = ("maxLength", "max_length")
EDITS_KEYS = ("edits", "changes")
FILES_KEYS = ("files", "fileEdits", "file_edits")
OLD_TEXT_KEYS = ("oldText", "old_text", "old", "search", "find")
NEW_TEXT_KEYS = ("newText", "new_text", "new", "replace", "replacement")
PATTERN_KEYS = ("pattern", "glob")
QUERY_KEYS = ("query", "q", "search")
IS_REGEX_KEYS = ("isRegex", "is_regex", "regex")
INCLUDE_KEYS = ("includePattern", "include_pattern", "include")
RECURSIVE_KEYS = ("recursive",)
COMMAND_KEYS = ("command", "cmd")
URL_KEYS = ("url", "href", "link")

_TRUE_STRINGS = frozenset({"true", "1", "yes", "on"})


# -----------------------------------------------------------------------------
# Coercion helpers
# -----------------------------------------------------------------------------


def pick(args: Mapping[str, Any], keys: Iterable[str]) -> Any:
    """Return the first non-``None`` value among ``keys`` in alias order."""

    for key in keys:
        value = args.get(key)
        if value is not None:
            return value
    return None


def coerce_str(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, str):
        return value
    return str(value)


def coerce_int(value: Any, *, parameter: str) -> int | None:
    """Accept ints, floats and numeric strings; ``None`` and ``""`` mean absent."""

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if math.isnan(value) or math.isinf(value):
            raise InvalidParameterError(message=f'"{parameter}" must be a finite number.', parameter=parameter)
        return int(value)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            return int(text)
        except ValueError:
            pass
        try:
            number = float(text)
        except ValueError:
            raise InvalidParameterError(
                message=f'"{parameter}" must be a number, got {value!r}.',
                parameter=parameter,
            ) from None
        if math.isnan(number) or math.isinf(number):
            raise InvalidParameterError(message=f'"{parameter}" must be a finite number.', parameter=parameter)
        return int(number)
    raise InvalidParameterError(
        message=f'"{parameter}" must be a number, got {type(value).__name__}.',
        parameter=parameter,
    )


def coerce_bool(value: Any, default: bool = False) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_STRINGS
    return bool(value)


def _maybe_json(value: Any, *, parameter: str) -> Any:
    if not isinstance(value, str):
        return value
    text = value.strip()
    if not text:
        return []
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise InvalidParameterError(
            message=f'"{parameter}" was a string but not valid JSON: {exc.msg}.',
            parameter=parameter,
        ) from None


def parse_edits(value: Any, *, parameter: str = "edits") -> list[Edit]:
    """Normalize an edit list given as a list, a single mapping, or JSON text."""

    value = _maybe_json(value, parameter=parameter)
    if value is None:
        return []
    if isinstance(value, Mapping):
        value = [value]
    if not isinstance(value, Sequence) or isinstance(value, (str, bytes)):
        raise InvalidParameterError(
            message=f'"{parameter}" must be an array of {{oldText, newText}} objects.',
            parameter=parameter,
        )
    edits: list[Edit] = []
    for index, entry in enumerate(value):
        if not isinstance(entry, Mapping):
            raise InvalidParameterError(
                message=f'"{parameter}[{index}]" must be an object with oldText and newText.',
                parameter=parameter,
            )
        old_text = coerce_str(pick(entry, OLD_TEXT_KEYS)) or ""
        new_text = coerce_str(pick(entry, NEW_TEXT_KEYS)) or ""
        edits.append(Edit(old_text=old_text, new_text=new_text))
    return edits


def _require_path(args: Mapping[str, Any], tool: str) -> str:
    path = coerce_str(pick(args, PATH_KEYS))
    if not path or not path.strip():
        raise MissingParameterError(
            message=(
                f'{tool} failed: "path" argument is required but was undefined or empty. '
                "Please provide a valid file path."
            ),
            parameter="path",
        )
    return path


def _require_text(args: Mapping[str, Any], keys: Sequence[str], parameter: str, tool: str) -> str:
    value = coerce_str(pick(args, keys))
    if value is None or not value.strip():
        raise MissingParameterError(
            message=f'{tool} failed: "{parameter}" argument is required but was undefined or empty.',
            parameter=parameter,
        )
    return value


# -----------------------------------------------------------------------------
# Typed requests
# -----------------------------------------------------------------------------


@dataclass(slots=True, frozen=True)
class ReadFileRequest:
    path: str
    start_line: int | None = None
    end_line: int | None = None

    @classmethod
    def from_args(cls, args: Mapping[str, Any]) -> "ReadFileRequest":
        return cls(
            path=_require_path(args, "read_file"),
            start_line=coerce_int(pick(args, START_LINE_KEYS), parameter="startLine"),
            end_line=coerce_int(pick(args, END_LINE_KEYS), parameter="endLine"),
        )


@dataclass(slots=True, frozen=True)
class WriteFileRequest:
    path: str
    content: str

    @classmethod
    def from_args(cls, args: Mapping[str, Any]) -> "WriteFileRequest":
        path = _require_path(args, "write_file")
        content = coerce_str(pick(args, CONTENT_KEYS))
        if content is None:
            raise MissingParameterError(
                message=(
                    f'write_file failed for "{path}": "content" argument is required but was undefined. '
                    "Please provide the file content."
                ),
                parameter="content",
            )
        return cls(path=path, content=content)


@dataclass(slots=True, frozen=True)
class EditFileRequest:
    path: str
    edits: tuple[Edit, ...]

    @classmethod
    def from_args(cls, args: Mapping[str, Any]) -> "EditFileRequest":
        path = _require_path(args, "edit_file")
        edits = parse_edits(pick(args, EDITS_KEYS))
        if not edits:
            raise MissingParameterError(
                message=(
                    f'edit_file failed for "{path}": "edits" argument must be a non-empty array '
                    "of {oldText, newText} objects."
                ),
                parameter="edits",
            )
        return cls(path=path, edits=tuple(edits))


@dataclass(slots=True, frozen=True)
class FileEdits:
    """One entry of a multi-file edit; malformed entries keep their problem in ``error``."""

    path: str
    edits: tuple[Edit, ...] = ()
    error: str | None = None

    @classmethod
    def from_entry(cls, entry: Any) -> "FileEdits":
        if not isinstance(entry, Mapping):
            return cls(path="", error="entry is not an object")
        path = (coerce_str(pick(entry, PATH_KEYS)) or "").strip()
        try:
            edits = parse_edits(pick(entry, EDITS_KEYS))
        except InvalidParameterError as exc:
            return cls(path=path, error=exc.message)
        return cls(path=path, edits=tuple(edits))


@dataclass(slots=True, frozen=True)
class MultiEditRequest:
    files: tuple[FileEdits, ...]

    @classmethod
    def from_args(cls, args: Mapping[str, Any]) -> "MultiEditRequest":
        raw = _maybe_json(pick(args, FILES_KEYS), parameter="files")
        if isinstance(raw, Mapping):
            raw = [raw]
        if not raw or not isinstance(raw, Sequence) or isinstance(raw, (str, bytes)):
            raise MissingParameterError(
                message='multi_edit_files failed: "files" must be a non-empty array of {path, edits[]} objects.',
                parameter="files",
            )
        return cls(files=tuple(FileEdits.from_entry(entry) for entry in raw))


@dataclass(slots=True, frozen=True)
class ListDirectoryRequest:
    path: str = "."
    recursive: bool = False

    @classmethod
    def from_args(cls, args: Mapping[str, Any]) -> "ListDirectoryRequest":
        path = coerce_str(pick(args, PATH_KEYS)) or ""
        return cls(
            path=path.strip() or ".",
            recursive=coerce_bool(pick(args, RECURSIVE_KEYS)),
        )


@dataclass(slots=True, frozen=True)
class SearchFilesRequest:
    pattern: str
    max_results: int = 30

    @classmethod
    def from_args(cls, args: Mapping[str, Any]) -> "SearchFilesRequest":
        pattern = _require_text(args, PATTERN_KEYS, "pattern", "search_files")
        limit = coerce_int(pick(args, MAX_RESULTS_KEYS), parameter="maxResults")
        return cls(pattern=pattern.strip(), max_results=limit or 30)


@dataclass(slots=True, frozen=True)
class GrepRequest:
    query: str
    is_regex: bool = False
    include_pattern: str | None = None
    max_results: int = 50

    @classmethod
    def from_args(cls, args: Mapping[str, Any]) -> "GrepRequest":
        query = _require_text(args, QUERY_KEYS, "query", "grep_search")
        include = coerce_str(pick(args, INCLUDE_KEYS))
        limit = coerce_int(pick(args, MAX_RESULTS_KEYS), parameter="maxResults")
        return cls(
            query=query,
            is_regex=coerce_bool(pick(args, IS_REGEX_KEYS)),
            include_pattern=include.strip() if include and include.strip() else None,
            max_results=limit or 50,
        )


@dataclass(slots=True, frozen=True)
class RunCommandRequest:
    command: str
    timeout_ms: int | None = None

    @classmethod
    def from_args(cls, args: Mapping[str, Any]) -> "RunCommandRequest":
        command = _require_text(args, COMMAND_KEYS, "command", "run_command")
        timeout = coerce_int(pick(args, TIMEOUT_KEYS), parameter="timeout")
        return cls(command=command, timeout_ms=timeout or None)


@dataclass(slots=True, frozen=True)
class DiagnosticsRequest:
    path: str | None = None

    @classmethod
    def from_args(cls, args: Mapping[str, Any]) -> "DiagnosticsRequest":
        path = coerce_str(pick(args, PATH_KEYS))
        return cls(path=path.strip() if path and path.strip() else None)


@dataclass(slots=True, frozen=True)
class WebSearchRequest:
    query: str
    max_results: int = 5

    @classmethod
    def from_args(cls, args: Mapping[str, Any]) -> "WebSearchRequest":
        query = _require_text(args, QUERY_KEYS, "query", "web_search")
        limit = coerce_int(pick(args, MAX_RESULTS_KEYS), parameter="maxResults")
        return cls(query=query.strip(), max_results=limit or 5)


@dataclass(slots=True, frozen=True)
class FetchWebpageRequest:
    url: str
    max_length: int = 15_000

    @classmethod
    def from_args(cls, args: Mapping[str, Any]) -> "FetchWebpageRequest":
        url = _require_text(args, URL_KEYS, "url", "fetch_webpage")
        limit = coerce_int(pick(args, MAX_LENGTH_KEYS), parameter="maxLength")
        return cls(url=url.strip(), max_length=limit or 15_000)


__all__ = [
    "PATH_KEYS",
    "CONTENT_KEYS",
    "START_LINE_KEYS",
    "END_LINE_KEYS",
    "MAX_RESULTS_KEYS",
    "TIMEOUT_KEYS",
    "MAX_LENGTH_KEYS",
    "OLD_TEXT_KEYS",
    "NEW_TEXT_KEYS",
    "pick",
    "coerce_str",
    "coerce_int",
    "coerce_bool",
    "parse_edits",
    "ReadFileRequest",
    "WriteFileRequest",
    "EditFileRequest",
    "FileEdits",
    "MultiEditRequest",
    "ListDirectoryRequest",
    "SearchFilesRequest",
    "GrepRequest",
    "RunCommandRequest",
    "DiagnosticsRequest",
    "WebSearchRequest",
    "FetchWebpageRequest",
]
