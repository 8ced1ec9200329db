"""Workspace file tools: read, write, and find/replace editing."""

from __future__ import annotations

import asyncio
import logging
import os
from dataclasses import dataclass

from .arguments import (
    EditFileRequest,
    FileEdits,
    MultiEditRequest,
    ReadFileRequest,
    WriteFileRequest,
)
from .base import BaseTool, ChangedFile, ToolContext, ToolResult
from .errors import ReadError
from .patching import Edit, PatchEngine, PatchResult, count_line_changes
from .workspace import binary_placeholder, decode_text, is_binary_path, looks_binary

LOGGER = logging.getLogger(__name__)

EDIT_HINT = "Hint: oldText must be an EXACT verbatim substring. Read the file again to get precise text."


async def read_text(context: ToolContext, absolute_path: str, display_path: str) -> str:
    """Read and decode a workspace file, raising :class:`ReadError` on failure."""

    try:
        data = await context.file_system.read(absolute_path)
    except (OSError, ValueError) as exc:
        reason = getattr(exc, "strerror", None) or str(exc)
        raise ReadError(
            message=f'could not read "{display_path}": {reason}. Does the file exist?',
            path=display_path,
        ) from exc
    return decode_text(data)


async def _read_existing(context: ToolContext, absolute_path: str) -> str:
    try:
        return decode_text(await context.file_system.read(absolute_path))
    except OSError:
        return ""


async def _ensure_parent(context: ToolContext, absolute_path: str) -> None:
    parent = os.path.dirname(absolute_path)
    try:
        await context.file_system.stat(parent)
    except OSError:
        await context.file_system.create_directory(parent)


async def _write_text(context: ToolContext, absolute_path: str, content: str) -> None:
    await context.file_system.write(absolute_path, content.encode("utf-8"))
    await context.open_in_view(absolute_path)


def _changed(context: ToolContext, absolute_path: str, before: str, after: str) -> ChangedFile:
    added, removed = count_line_changes(before, after)
    return ChangedFile(
        rel_path=context.resolver.relative(absolute_path),
        original_content=before,
        added=added,
        removed=removed,
    )


class ReadFileTool(BaseTool):
    """Returns file content with right-aligned line numbers."""

    name = "read_file"
    request_type = ReadFileRequest

    async def execute(self, context: ToolContext, request: ReadFileRequest) -> ToolResult:
        absolute = context.resolver.resolve(request.path)
        if is_binary_path(absolute):
            return ToolResult(success=True, output=binary_placeholder(absolute))
        text = await read_text(context, absolute, request.path)
        if looks_binary(text):
            return ToolResult(success=True, output=binary_placeholder(absolute))

        lines = text.split("\n")
        start = max(1, request.start_line) if request.start_line else 1
        end = min(len(lines), request.end_line) if request.end_line else len(lines)
        if end < start:
            return ToolResult(
                success=True,
                output=(
                    f"File: {request.path} ({len(lines)} lines total, "
                    f"no lines in requested range {start} to {request.end_line or len(lines)})"
                ),
            )
        numbered = "\n".join(
            f"{start + offset:>4} | {line}" for offset, line in enumerate(lines[start - 1 : end])
        )
        header = f"File: {request.path} ({len(lines)} lines total, showing {start}-{end})"
        return ToolResult(success=True, output=f"{header}\n\n{numbered}")


class WriteFileTool(BaseTool):
    """Creates or overwrites a file, creating parent directories as needed."""

    name = "write_file"
    request_type = WriteFileRequest
    mutates = True

    async def execute(self, context: ToolContext, request: WriteFileRequest) -> ToolResult:
        absolute = context.resolver.resolve(request.path)
        original = await _read_existing(context, absolute)
        await _ensure_parent(context, absolute)
        await _write_text(context, absolute, request.content)
        line_count = len(request.content.split("\n"))
        LOGGER.debug("Wrote %s (%d lines)", absolute, line_count)
        return ToolResult(
            success=True,
            output=f"File created/written: {request.path} ({line_count} lines)",
            changed_files=[_changed(context, absolute, original, request.content)],
        )


class EditFileTool(BaseTool):
    """Applies find/replace edits to a single file."""

    name = "edit_file"
    request_type = EditFileRequest
    mutates = True

    def __init__(self, engine: PatchEngine | None = None) -> None:
        self._engine = engine or PatchEngine(snippet_chars=80)

    async def execute(self, context: ToolContext, request: EditFileRequest) -> ToolResult:
        absolute = context.resolver.resolve(request.path)
        try:
            original = await read_text(context, absolute, request.path)
        except ReadError as exc:
            return ToolResult.failure(f"edit_file failed: {exc.message}")

        patched = self._engine.apply(original, request.edits)
        changed: list[ChangedFile] = []
        if patched.applied_count > 0:
            await _write_text(context, absolute, patched.content)
            changed.append(_changed(context, absolute, original, patched.content))

        output = f"Applied {patched.applied_count}/{len(request.edits)} edit(s) to {request.path}"
        if patched.failures:
            output += "\nFailed to find:\n" + "\n".join(f'  - "{snippet}"' for snippet in patched.failures)
            output += f"\n\n{EDIT_HINT}"
        return ToolResult(
            success=patched.applied_count > 0,
            output=output,
            changed_files=changed,
            partial=patched.applied_count > 0 and patched.failed_count > 0,
        )


@dataclass(slots=True)
class _FileOutcome:
    line: str
    applied: int = 0
    failed: int = 0
    changed: ChangedFile | None = None


class MultiEditFilesTool(BaseTool):
    """Applies independent edit lists to several files in one call.

    A file that cannot be read, or whose edits all miss, never blocks the
    others; the output carries aggregate applied/failed counts.
    """

    name = "multi_edit_files"
    request_type = MultiEditRequest
    mutates = True
    batch_diagnostics = True

    def __init__(self, engine: PatchEngine | None = None) -> None:
        self._engine = engine or PatchEngine(snippet_chars=60)

    async def execute(self, context: ToolContext, request: MultiEditRequest) -> ToolResult:
        outcomes = [await self._edit_one(context, entry) for entry in request.files]
        total_applied = sum(outcome.applied for outcome in outcomes)
        total_failed = sum(outcome.failed for outcome in outcomes)

        output = (
            f"Multi-file edit: {total_applied} applied, {total_failed} failed "
            f"across {len(request.files)} file(s)\n\n"
        )
        output += "\n".join(outcome.line for outcome in outcomes)
        return ToolResult(
            success=total_applied > 0,
            output=output,
            changed_files=[outcome.changed for outcome in outcomes if outcome.changed is not None],
            partial=total_applied > 0 and total_failed > 0,
        )

    async def _edit_one(self, context: ToolContext, entry: FileEdits) -> _FileOutcome:
        if not entry.path:
            return _FileOutcome(line="⚠ Skipped entry with missing path", failed=1)
        if entry.error:
            return _FileOutcome(line=f"⚠ {entry.path}: {entry.error}, skipped", failed=1)
        if not entry.edits:
            return _FileOutcome(line=f"⚠ {entry.path}: no edits provided, skipped", failed=1)

        try:
            absolute = context.resolver.resolve(entry.path)
            original = await read_text(context, absolute, entry.path)
            patched = self._engine.apply(original, entry.edits)
            changed = None
            if patched.applied_count > 0:
                await _write_text(context, absolute, patched.content)
                changed = _changed(context, absolute, original, patched.content)
        except asyncio.CancelledError:
            raise
        except Exception as exc:  # one entry never aborts the batch
            LOGGER.debug("multi_edit_files entry %s failed", entry.path, exc_info=True)
            return _FileOutcome(line=f"{entry.path}: ERROR - {exc}", failed=len(entry.edits))

        return _FileOutcome(
            line=f"{entry.path}: {self._summary(patched, entry.edits)}",
            applied=patched.applied_count,
            failed=patched.failed_count,
            changed=changed,
        )

    @staticmethod
    def _summary(patched: PatchResult, edits: tuple[Edit, ...]) -> str:
        summary = f"{patched.applied_count}/{len(edits)} edit(s) applied"
        if patched.failures:
            summary += " | not found: " + ", ".join(f'"{snippet}"' for snippet in patched.failures)
        return summary


__all__ = [
    "EDIT_HINT",
    "read_text",
    "ReadFileTool",
    "WriteFileTool",
    "EditFileTool",
    "MultiEditFilesTool",
]
